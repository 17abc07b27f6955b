"""FastAPI dependencies wiring sessions and services per request"""
import httpx
from fastapi import Depends, Request, Response
from app.core.config import settings
from app.core.session import Session, SessionManager
from app.services.account_service import AccountService
from app.services.api_client import ApiClient
from app.services.prediction_service import PredictionService
from app.services.settings_sync import SettingsSynchronizer


def create_http_client(transport=None) -> httpx.AsyncClient:
    """Connection pool for the prediction backend"""
    return httpx.AsyncClient(
        base_url=settings.PREDICTION_API_URL,
        timeout=settings.API_TIMEOUT_SECONDS,
        transport=transport
    )


def get_session_manager(request: Request) -> SessionManager:
    state = request.app.state
    if getattr(state, "sessions", None) is None:
        state.sessions = SessionManager(settings.STORAGE_DIR, recents_limit=settings.RECENTS_LIMIT)
    return state.sessions


def get_http_client(request: Request) -> httpx.AsyncClient:
    state = request.app.state
    if getattr(state, "http_client", None) is None:
        state.http_client = create_http_client()
    return state.http_client


def get_session(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager)
) -> Session:
    """Session bound to the browser cookie, or a throwaway anonymous one"""
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    session = sessions.get(cookie) or sessions.create()
    request.state.session = session
    return session


def persist_session(request: Request, response: Response, session: Session) -> None:
    """Track a session that now holds a token and hand its cookie to the browser"""
    get_session_manager(request).register(session)
    if request.cookies.get(settings.SESSION_COOKIE_NAME) != session.id:
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session.id,
            max_age=settings.SESSION_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax"
        )


def require_session(session: Session = Depends(get_session)) -> Session:
    """Session that can make authenticated backend calls"""
    session.require_token()
    return session


def get_api_client(
    session: Session = Depends(get_session),
    http: httpx.AsyncClient = Depends(get_http_client)
) -> ApiClient:
    return ApiClient(http, token=session.token if session.is_authenticated else None)


def get_authenticated_client(
    session: Session = Depends(require_session),
    http: httpx.AsyncClient = Depends(get_http_client)
) -> ApiClient:
    return ApiClient(http, token=session.token)


def get_prediction_service(
    session: Session = Depends(require_session),
    client: ApiClient = Depends(get_authenticated_client)
) -> PredictionService:
    return PredictionService(client, session.recents)


def get_account_service(
    session: Session = Depends(get_session),
    client: ApiClient = Depends(get_api_client)
) -> AccountService:
    return AccountService(client, session)


def get_settings_sync(session: Session = Depends(require_session)) -> SettingsSynchronizer:
    if session.settings_sync is None:
        session.settings_sync = SettingsSynchronizer(session.storage)
    return session.settings_sync

