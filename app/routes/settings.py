"""User settings endpoints"""
from fastapi import APIRouter, Depends
from app.core.dependencies import get_authenticated_client, get_settings_sync
from app.models.schemas import ErrorResponse, SettingsState, UserSettingsUpdate
from app.services.api_client import ApiClient
from app.services.settings_sync import SettingsSynchronizer

router = APIRouter(
    prefix="/settings",
    tags=["Settings"],
    responses={401: {"model": ErrorResponse, "description": "Not signed in or session expired"}}
)


def _state(sync: SettingsSynchronizer) -> SettingsState:
    return SettingsState(settings=sync.current, dirty=sync.dirty, source=sync.source)


@router.get("", response_model=SettingsState, summary="Get Settings")
async def get_settings(
    reload: bool = False,
    sync: SettingsSynchronizer = Depends(get_settings_sync),
    client: ApiClient = Depends(get_authenticated_client)
):
    """
    Current settings of the session.

    Loaded from the server on first access (or when `reload` is set); if the
    server is unreachable the last locally saved copy is used.
    """
    if reload or not sync.loaded:
        await sync.load(client)
    return _state(sync)


@router.patch("", response_model=SettingsState, summary="Change Settings")
async def change_settings(
    changes: UserSettingsUpdate,
    sync: SettingsSynchronizer = Depends(get_settings_sync),
    client: ApiClient = Depends(get_authenticated_client)
):
    """Apply changes locally without saving; the state becomes dirty"""
    if not sync.loaded:
        await sync.load(client)
    sync.update(changes)
    return _state(sync)


@router.post("/save", response_model=SettingsState, summary="Save Settings")
async def save_settings(
    sync: SettingsSynchronizer = Depends(get_settings_sync),
    client: ApiClient = Depends(get_authenticated_client)
):
    """Persist the current settings to the server and keep a local backup"""
    await sync.save(client)
    return _state(sync)


@router.post("/cancel", response_model=SettingsState, summary="Discard Changes")
async def cancel_settings(sync: SettingsSynchronizer = Depends(get_settings_sync)):
    """Revert to the last loaded or saved settings"""
    sync.cancel()
    return _state(sync)
