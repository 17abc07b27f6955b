"""Main FastAPI application"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import time

from app.core.config import settings
from app.core.dependencies import create_http_client
from app.core.session import SessionManager
from app.routes import health, auth, predictions, account
from app.routes import settings as settings_routes
from app.utils.logger import logger
from app.utils.exceptions import (
    validation_exception_handler,
    form_validation_exception_handler,
    backend_validation_exception_handler,
    authentication_exception_handler,
    api_exception_handler,
    connectivity_exception_handler,
    no_prediction_data_exception_handler,
    export_exception_handler,
    generic_exception_handler,
    ApiError,
    AuthenticationApiError,
    ConnectivityError,
    ExportError,
    FormValidationError,
    NoPredictionDataError,
    NotAuthenticatedError,
    ValidationApiError
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager - handles startup and shutdown events.

    Startup:
    - Open the connection pool to the prediction backend
    - Prepare the session registry

    Shutdown:
    - Close the connection pool
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info("=" * 60)

    if getattr(app.state, "http_client", None) is None:
        app.state.http_client = create_http_client()
    if getattr(app.state, "sessions", None) is None:
        app.state.sessions = SessionManager(settings.STORAGE_DIR, recents_limit=settings.RECENTS_LIMIT)

    logger.info(f"Prediction backend: {settings.PREDICTION_API_URL}")
    logger.info(f"Portal API is ready at {settings.API_V1_PREFIX}")

    yield

    logger.info("Shutting down application...")
    await app.state.http_client.aclose()
    app.state.http_client = None
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    return response


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"Response: {response.status_code} - {request.method} {request.url.path}")
    return response


# Exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(FormValidationError, form_validation_exception_handler)
app.add_exception_handler(ValidationApiError, backend_validation_exception_handler)
app.add_exception_handler(AuthenticationApiError, authentication_exception_handler)
app.add_exception_handler(NotAuthenticatedError, authentication_exception_handler)
app.add_exception_handler(ApiError, api_exception_handler)
app.add_exception_handler(ConnectivityError, connectivity_exception_handler)
app.add_exception_handler(NoPredictionDataError, no_prediction_data_exception_handler)
app.add_exception_handler(ExportError, export_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


# Include routers
app.include_router(health.router)
app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
app.include_router(predictions.router, prefix=settings.API_V1_PREFIX)
app.include_router(settings_routes.router, prefix=settings.API_V1_PREFIX)
app.include_router(account.router, prefix=settings.API_V1_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )
