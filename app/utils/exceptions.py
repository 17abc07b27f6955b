"""Custom exceptions and error handlers"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Dict, List, Optional
import traceback
from app.core.config import settings
from app.utils.logger import logger


class ApiError(Exception):
    """Raised when the prediction backend answers with a non-2xx status"""

    def __init__(self, status_code: int, message: str, detail=None):
        self.status_code = status_code
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationApiError(ApiError):
    """Backend rejected the payload with itemized `{loc, msg}` field errors"""

    def __init__(self, status_code: int, message: str, field_errors: List[Dict[str, str]], detail=None):
        super().__init__(status_code, message, detail)
        self.field_errors = field_errors


class AuthenticationApiError(ApiError):
    """Backend rejected the bearer token"""
    pass


class InvalidCredentialsError(AuthenticationApiError):
    """Backend rejected the email/password of a sign-in or sign-up; the session token is untouched"""
    pass


class ConnectivityError(Exception):
    """Raised when the prediction backend cannot be reached at all"""
    pass


class NotAuthenticatedError(Exception):
    """Raised when an operation needs a signed-in session"""
    pass


class NoPredictionDataError(Exception):
    """Raised when a record carries no recognisable prediction values"""
    pass


class ExportError(Exception):
    """Raised when a requested export section has nothing to write"""
    pass


class FormValidationError(Exception):
    """Raised when user input is rejected before any network call"""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


def _error_body(request: Request, error: str, detail, **extra) -> dict:
    body = {
        "error": error,
        "detail": detail,
        "path": str(request.url.path)
    }
    body.update(extra)
    return body


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    fields = [
        {"field": ".".join(str(part) for part in err.get("loc", [])[1:]), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "Validation Error", fields)
    )


async def form_validation_exception_handler(request: Request, exc: FormValidationError):
    """Handle input rejected before reaching the backend"""
    logger.warning(f"Form validation error on {request.url.path}: {exc.message}")
    fields = [{"field": exc.field, "message": exc.message}] if exc.field else []
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "Validation Error", exc.message, fields=fields)
    )


async def backend_validation_exception_handler(request: Request, exc: ValidationApiError):
    """Handle itemized validation errors returned by the prediction backend"""
    logger.warning(f"Backend validation error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "Validation Error", exc.message, fields=exc.field_errors)
    )


async def authentication_exception_handler(request: Request, exc: Exception):
    """Handle missing or expired credentials; the client is sent to sign-in"""
    session = getattr(request.state, "session", None)
    if (
        session is not None
        and isinstance(exc, AuthenticationApiError)
        and not isinstance(exc, InvalidCredentialsError)
    ):
        session.expire()
    logger.warning(f"Authentication required on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=_error_body(
            request,
            "Authentication Required",
            str(exc) or "Please sign in to continue",
            redirect=settings.SIGN_IN_PATH
        ),
        headers={"WWW-Authenticate": "Bearer"}
    )


async def api_exception_handler(request: Request, exc: ApiError):
    """Handle any other error response from the prediction backend"""
    logger.error(f"Backend error on {request.url.path}: {exc.status_code} {exc.message}")
    status_code = exc.status_code if 400 <= exc.status_code < 500 else status.HTTP_502_BAD_GATEWAY
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, "Prediction Service Error", exc.message)
    )


async def connectivity_exception_handler(request: Request, exc: ConnectivityError):
    """Handle an unreachable prediction backend"""
    logger.error(f"Connectivity error on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(
            request,
            "Connectivity Error",
            "Cannot reach the prediction server. Please try again later."
        )
    )


async def no_prediction_data_exception_handler(request: Request, exc: NoPredictionDataError):
    """Handle records without prediction values"""
    logger.info(f"No prediction data on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body(request, "No Data Found", str(exc))
    )


async def export_exception_handler(request: Request, exc: ExportError):
    """Handle exports with nothing to write"""
    logger.warning(f"Export error on {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "Export Error", str(exc))
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle generic exceptions"""
    logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal Server Error", "An unexpected error occurred. Please try again later.")
    )
