"""Account management endpoints"""
from fastapi import APIRouter, Depends
from app.core.dependencies import get_account_service, require_session
from app.core.session import Session
from app.models.schemas import AccountUpdate, ErrorResponse, MessageResponse, SessionInfo
from app.services.account_service import AccountService
from app.utils.responses import download_response

router = APIRouter(
    prefix="/account",
    tags=["Account"],
    responses={401: {"model": ErrorResponse, "description": "Not signed in or session expired"}}
)


@router.put("", response_model=SessionInfo, summary="Update Account")
async def update_account(
    update: AccountUpdate,
    session: Session = Depends(require_session),
    accounts: AccountService = Depends(get_account_service)
):
    """
    Update name and email, and optionally change the password.

    When `newPassword` is given it must match `confirmPassword`, and
    `oldPassword` is required. Both checks happen before anything is sent.
    """
    await accounts.update_account(update)
    return SessionInfo(state=session.state.value, authenticated=session.is_authenticated, user=session.user)


@router.get("/export", summary="Download My Data")
async def export_user_data(
    session: Session = Depends(require_session),
    accounts: AccountService = Depends(get_account_service)
):
    """All data the backend holds for the user, as a JSON file"""
    export = await accounts.export_user_data()
    return download_response(export)


@router.post("/logout-all", response_model=MessageResponse, summary="Sign Out Everywhere")
async def logout_all_devices(
    session: Session = Depends(require_session),
    accounts: AccountService = Depends(get_account_service)
):
    await accounts.logout_all_devices()
    return MessageResponse(message="Signed out from all devices")


@router.delete("", response_model=MessageResponse, summary="Delete Account")
async def delete_account(
    session: Session = Depends(require_session),
    accounts: AccountService = Depends(get_account_service)
):
    """Delete the account on the backend and clear this session"""
    await accounts.delete_account()
    return MessageResponse(message="Account deleted")
