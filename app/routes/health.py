"""Health check and status endpoints"""
from datetime import datetime, timezone
import httpx
from fastapi import APIRouter, Depends
from app.core.config import settings
from app.core.dependencies import get_http_client, get_session_manager
from app.core.session import SessionManager
from app.models.schemas import HealthCheck
from app.utils.logger import logger

router = APIRouter(tags=["Health"])


async def backend_reachable(http: httpx.AsyncClient) -> bool:
    """Any HTTP answer from the backend counts as reachable"""
    try:
        await http.get("/", timeout=5.0)
        return True
    except httpx.TransportError as e:
        logger.warning(f"Prediction backend unreachable: {str(e)}")
        return False


@router.get("/", summary="Root Endpoint")
async def root():
    """Root endpoint - portal welcome message"""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health"
    }


@router.get("/health", response_model=HealthCheck, summary="Health Check")
async def health_check(http: httpx.AsyncClient = Depends(get_http_client)):
    """
    Check portal health and whether the prediction backend answers.

    No authentication required.
    """
    reachable = await backend_reachable(http)
    return HealthCheck(
        status="healthy" if reachable else "degraded",
        timestamp=datetime.now(timezone.utc),
        backend_reachable=reachable,
        backend_url=settings.PREDICTION_API_URL,
        version=settings.VERSION
    )


@router.get("/status", summary="Detailed Status")
async def status(
    http: httpx.AsyncClient = Depends(get_http_client),
    sessions: SessionManager = Depends(get_session_manager)
):
    """
    Get detailed service status.

    No authentication required.
    """
    reachable = await backend_reachable(http)

    return {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "operational" if reachable else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": {
            "url": settings.PREDICTION_API_URL,
            "reachable": reachable
        },
        "active_sessions": len(sessions),
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "auth": f"{settings.API_V1_PREFIX}/auth",
            "predictions": f"{settings.API_V1_PREFIX}/predictions",
            "settings": f"{settings.API_V1_PREFIX}/settings",
            "account": f"{settings.API_V1_PREFIX}/account"
        }
    }
