"""
Settings API endpoints.

GET    /settings           current settings
PUT    /settings           partial update, returns the merged settings
DELETE /settings           reset, returns the defaults
GET    /settings/defaults  default settings

Store failures are answered with status 500 and {"error": message}.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from plugin_host.lib.settings_store import SettingsStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/settings", tags=["settings"])


def get_settings_store(request: Request) -> SettingsStore:
    """Dependency returning the settings store created at application startup."""
    return request.app.state.settings_store


def _error_response(action: str, error: Exception) -> JSONResponse:
    logger.error(f"Error {action} settings: {error}")
    return JSONResponse(status_code=500, content={"error": str(error)})


@router.get("")
async def read_settings(store: SettingsStore = Depends(get_settings_store)) -> Any:
    """Get all settings."""
    try:
        return await store.get()
    except Exception as e:
        return _error_response("getting", e)


@router.put("")
async def update_settings(
    updates: dict[str, Any] = Body(...),
    store: SettingsStore = Depends(get_settings_store),
) -> Any:
    """Update settings (partial update)."""
    try:
        return await store.update(updates)
    except Exception as e:
        return _error_response("updating", e)


@router.delete("")
async def reset_settings(store: SettingsStore = Depends(get_settings_store)) -> Any:
    """Reset settings to defaults."""
    try:
        return await store.reset()
    except Exception as e:
        return _error_response("resetting", e)


@router.get("/defaults")
def get_default_settings(store: SettingsStore = Depends(get_settings_store)) -> Any:
    """Get default settings (for reference)."""
    return store.get_default_settings()
