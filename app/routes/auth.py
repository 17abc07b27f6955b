"""Authentication endpoints"""
from fastapi import APIRouter, Depends, Request, Response
from app.core.dependencies import get_account_service, get_session, persist_session, require_session
from app.core.session import Session
from app.models.schemas import SessionInfo, SignInRequest, SignUpRequest
from app.services.account_service import AccountService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _session_info(session: Session) -> SessionInfo:
    return SessionInfo(
        state=session.state.value,
        authenticated=session.is_authenticated,
        user=session.user
    )


@router.post("/signin", response_model=SessionInfo, summary="Sign In")
async def sign_in(
    credentials: SignInRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service)
):
    """
    Sign in against the prediction backend.

    The returned token is kept in the session; the browser only holds the
    session cookie. The user profile is fetched right after sign-in.
    """
    await accounts.sign_in(credentials.email, credentials.password)
    persist_session(request, response, session)
    return _session_info(session)


@router.post("/signup", response_model=SessionInfo, summary="Create Account")
async def sign_up(
    registration: SignUpRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service)
):
    """Register a new account and sign in with it"""
    await accounts.sign_up(registration.username, registration.email, registration.password)
    persist_session(request, response, session)
    return _session_info(session)


@router.post("/logout", response_model=SessionInfo, summary="Sign Out")
async def logout(
    session: Session = Depends(get_session),
    accounts: AccountService = Depends(get_account_service)
):
    """Forget the token and cached profile of this session"""
    accounts.sign_out()
    return _session_info(session)


@router.get("/session", response_model=SessionInfo, summary="Current Session")
async def current_session(session: Session = Depends(get_session)):
    """Session state: anonymous, authenticated or expired"""
    return _session_info(session)


@router.get("/me", summary="User Profile")
async def profile(
    session: Session = Depends(require_session),
    accounts: AccountService = Depends(get_account_service)
):
    """Refresh the cached profile from the backend"""
    return await accounts.profile()
