"""Settings synchronization between the server, local storage and the UI"""
from typing import Any, Dict, Optional
from pydantic import ValidationError
from app.core.storage import LocalStorage
from app.models.schemas import UserSettings, UserSettingsUpdate
from app.utils.exceptions import ApiError, AuthenticationApiError, ConnectivityError
from app.utils.logger import logger

SETTINGS_ENDPOINT = "/api/settings"
SETTINGS_KEY = "userSettings"
LANGUAGE_KEY = "preferred_language"

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "hi": "Hindi",
}


class SettingsSynchronizer:
    """
    Holds one session's settings and tracks unsaved changes.

    - load(): server first, then the locally saved copy, then defaults
    - update(): local change, marks the state dirty
    - save(): server write, then local backup; clears the dirty flag
    - cancel(): revert to the last loaded/saved snapshot

    Concurrent edits from two browsers are not coordinated: the last save wins.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.current = UserSettings()
        self._snapshot = UserSettings()
        self.source = "defaults"
        self.loaded = False

    @property
    def dirty(self) -> bool:
        return self.current.model_dump() != self._snapshot.model_dump()

    def _local_copy(self) -> Optional[UserSettings]:
        saved = self.storage.get_item(SETTINGS_KEY)
        if not isinstance(saved, dict):
            return None
        try:
            return UserSettings.model_validate(saved)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid local settings copy: {str(e)}")
            return None

    def _remember_language(self, settings: UserSettings) -> None:
        if self.storage.get_item(LANGUAGE_KEY) != settings.language:
            self.storage.set_item(LANGUAGE_KEY, settings.language)
            logger.info(f"Application language set to: {LANGUAGE_NAMES.get(settings.language, settings.language)}")

    def _accept(self, settings: UserSettings, source: str) -> UserSettings:
        self.current = settings
        self._snapshot = settings.model_copy()
        self.source = source
        self.loaded = True
        self._remember_language(settings)
        return settings

    async def load(self, client) -> UserSettings:
        """Fetch settings; any server failure falls back to the local copy"""
        try:
            data = await client.get(SETTINGS_ENDPOINT)
            settings = UserSettings.model_validate({**UserSettings().model_dump(), **(data or {})})
            return self._accept(settings, "server")
        except AuthenticationApiError:
            raise
        except (ApiError, ConnectivityError, ValidationError, TypeError) as e:
            logger.warning(f"Could not load settings from server, using local copy: {str(e)}")

        local = self._local_copy()
        if local is not None:
            return self._accept(local, "local")
        return self._accept(UserSettings(), "defaults")

    def update(self, changes: UserSettingsUpdate) -> UserSettings:
        """Unsaved change; the stored language follows only on save"""
        values = changes.model_dump(exclude_none=True)
        if values:
            self.current = UserSettings.model_validate({**self.current.model_dump(), **values})
        return self.current

    async def save(self, client) -> UserSettings:
        """
        Persist the current settings.

        Raises:
            ApiError, ConnectivityError: The server write failed; nothing is
                saved locally and the state stays dirty
        """
        payload: Dict[str, Any] = self.current.model_dump()
        await client.put(SETTINGS_ENDPOINT, payload)
        self.storage.set_item(SETTINGS_KEY, payload)
        self._snapshot = self.current.model_copy()
        self._remember_language(self.current)
        self.source = "server"
        logger.info("Settings saved")
        return self.current

    def cancel(self) -> UserSettings:
        self.current = self._snapshot.model_copy()
        self._remember_language(self.current)
        return self.current
