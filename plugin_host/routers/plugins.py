"""
API routes for inspecting the plugin system.
"""

import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from plugin_host.lib.plugin_manager import PluginManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plugins", tags=["plugins"])


class PluginListResponse(BaseModel):
    """Loaded plugins in load order and per-plugin failures."""

    plugins: list[dict[str, Any]]
    failures: list[dict[str, str]]


@router.get("", response_model=PluginListResponse)
async def list_plugins() -> PluginListResponse:
    """
    List loaded plugins and the errors recorded for plugins that did not load.

    Returns:
        Plugin names, calling conventions and routes, plus failures
    """
    manager = PluginManager.get_instance()
    return PluginListResponse(plugins=manager.get_plugins(), failures=manager.get_failures())
