"""
Keeps a bounded history of settings changes.

Lifecycle plugin: the module itself provides init() and shutdown(). Serves
the history at GET <API_PREFIX>/settings-audit.
"""

import logging
from collections import deque
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

MAX_ENTRIES = 100

_history: deque = deque(maxlen=MAX_ENTRIES)
_event_bus = None


async def _on_settings_updated(settings: dict, changes: dict, **kwargs):
    _history.append({
        "event": "updated",
        "changes": changes,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def _on_settings_reset(settings: dict, **kwargs):
    _history.append({
        "event": "reset",
        "changes": settings,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def init(routes, services):
    global _event_bus
    _event_bus = services["event_bus"]
    _event_bus.on("settings.updated", _on_settings_updated)
    _event_bus.on("settings.reset", _on_settings_reset)

    @routes.get(f"{services['config'].api_prefix}/settings-audit")
    async def settings_audit():
        return {"entries": list(_history)}

    logger.info("Settings audit enabled")


async def shutdown():
    global _event_bus
    if _event_bus is not None:
        _event_bus.off("settings.updated", _on_settings_updated)
        _event_bus.off("settings.reset", _on_settings_reset)
        _event_bus = None
    _history.clear()
    logger.info("Settings audit disabled")
