"""Account operations: sign-in/up, profile updates, data export, account removal"""
import json
from datetime import date
from typing import Any, Dict, Optional
from app.core.session import Session
from app.models.schemas import AccountUpdate
from app.services.api_client import ApiClient
from app.services.exporter import ExportFile
from app.utils.exceptions import ApiError, AuthenticationApiError, FormValidationError, InvalidCredentialsError
from app.utils.logger import logger

ACCOUNT_ENDPOINTS = ("/api/account", "/api/update-profile")


def validate_password_change(update: AccountUpdate) -> None:
    """
    Check a password change before it is submitted.

    Raises:
        FormValidationError: New and confirmation differ, or the current
            password is missing
    """
    if not update.newPassword:
        return
    if update.newPassword != update.confirmPassword:
        raise FormValidationError("New passwords don't match.", field="confirmPassword")
    if not update.oldPassword:
        raise FormValidationError("Please enter your current password.", field="oldPassword")


class AccountService:
    """Account and authentication calls bound to one session"""

    def __init__(self, client: ApiClient, session: Session):
        self.client = client
        self.session = session

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        try:
            data = await self.client.post("/api/signin", {"email": email, "password": password})
        except AuthenticationApiError as e:
            raise InvalidCredentialsError(e.status_code, e.message, e.detail) from e
        token = (data or {}).get("access_token")
        if not token:
            raise ApiError(502, "Sign-in response did not include an access token")

        self.client.token = token
        profile = await self.client.get("/api/profile")
        self.session.sign_in(token, profile or {"email": email})
        logger.info(f"User {email} signed in")
        return self.session.user

    async def sign_up(self, username: str, email: str, password: str) -> Dict[str, Any]:
        try:
            data = await self.client.post(
                "/api/signup",
                {"username": username, "email": email, "password": password}
            )
        except AuthenticationApiError as e:
            raise InvalidCredentialsError(e.status_code, e.message, e.detail) from e
        token = (data or {}).get("access_token")
        if not token:
            raise ApiError(502, "Registration response did not include an access token")

        self.session.sign_in(token, {"username": username, "email": email})
        logger.info(f"User {username} registered")
        return self.session.user

    def sign_out(self) -> None:
        self.session.sign_out()

    async def profile(self) -> Dict[str, Any]:
        profile = await self.client.get("/api/profile")
        if isinstance(profile, dict):
            self.session.update_user(**profile)
        return self.session.user

    async def update_account(self, update: AccountUpdate) -> Optional[Dict[str, Any]]:
        """
        Update name/email and optionally the password.

        The endpoint name differs between backend revisions; a 404 or 405 on
        the first one is retried once on the other.
        """
        validate_password_change(update)

        payload = {
            "name": update.name,
            "email": update.email,
            "oldPassword": update.oldPassword or "",
            "newPassword": update.newPassword or "",
        }

        last_error: Optional[ApiError] = None
        for endpoint in ACCOUNT_ENDPOINTS:
            try:
                await self.client.put(endpoint, payload)
                break
            except ApiError as e:
                if e.status_code not in (404, 405):
                    raise
                logger.info(f"{endpoint} not available ({e.status_code}), trying next account endpoint")
                last_error = e
        else:
            raise last_error

        logger.info(f"Account updated for {update.email}")
        return self.session.update_user(username=update.name, email=update.email)

    async def export_user_data(self) -> ExportFile:
        data = await self.client.get("/api/user/data/export")
        content = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        filename = f"rockblast_user_data_{date.today().isoformat()}.json"
        return ExportFile(filename=filename, media_type="application/json", content=content)

    async def logout_all_devices(self) -> None:
        await self.client.post("/api/logout/all-devices")
        self.session.sign_out()

    async def delete_account(self) -> None:
        await self.client.delete("/api/account")
        self.session.sign_out()
        self.session.recents.clear()
