"""
User settings persistence: a JSON file key-value store with defaults.

    store = SettingsStore(Path("data/settings.json"))
    await store.get()                       # defaults overlaid with stored values
    await store.update({"theme": "dark"})   # shallow merge, returns merged settings
    await store.reset()                     # back to defaults
    store.get_default_settings()            # synchronous, never touches the file
"""

import asyncio
import copy
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

from plugin_host.lib.event_bus import EventBus

# Platform-specific imports for file locking
if sys.platform == 'win32':
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "theme": "light",
    "volume": 5,
    "language": "en",
    "notifications": True,
}


def _lock_file(file_handle):
    """Cross-platform exclusive file lock"""
    if sys.platform == 'win32':
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)
    else:
        fcntl.flock(file_handle, fcntl.LOCK_EX)


def _unlock_file(file_handle):
    if sys.platform == 'win32':
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(file_handle, fcntl.LOCK_UN)


class SettingsStore:
    """
    Settings store backed by a JSON object in a single file.

    Reads overlay the stored values on the defaults, so keys added to the
    defaults later show up without migrating the file. A missing file means
    "nothing stored yet". Unreadable or malformed files raise, and the error
    reaches the caller.

    Args:
        path: JSON file location, or None to keep settings in memory only
        defaults: Default settings (copied)
        event_bus: Optional bus receiving settings.updated and settings.reset events
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        defaults: Optional[Mapping[str, Any]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.path = Path(path) if path is not None else None
        self._defaults = copy.deepcopy(dict(DEFAULT_SETTINGS if defaults is None else defaults))
        self._event_bus = event_bus
        self._memory: dict[str, Any] = {}
        self._lock = asyncio.Lock()

    def get_default_settings(self) -> dict[str, Any]:
        """Return a copy of the default settings."""
        return copy.deepcopy(self._defaults)

    async def get(self) -> dict[str, Any]:
        """Return the current settings."""
        stored = await self._read()
        return {**self.get_default_settings(), **stored}

    async def update(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        """
        Merge updates into the stored settings.

        Keys not present in updates keep their value.

        Raises:
            TypeError: If updates is not a mapping
        """
        if not isinstance(updates, Mapping):
            raise TypeError(f"Settings update must be an object, got {type(updates).__name__}")

        async with self._lock:
            stored = await self._read()
            stored.update(copy.deepcopy(dict(updates)))
            await self._write(stored)

        current = {**self.get_default_settings(), **stored}
        logger.info(f"Settings updated: {', '.join(sorted(updates)) or '(no changes)'}")
        if self._event_bus is not None:
            await self._event_bus.emit("settings.updated", settings=copy.deepcopy(current), changes=dict(updates))
        return current

    async def reset(self) -> dict[str, Any]:
        """Replace the stored settings with the defaults and return them."""
        async with self._lock:
            await self._write(self.get_default_settings())

        logger.info("Settings reset to defaults")
        defaults = self.get_default_settings()
        if self._event_bus is not None:
            await self._event_bus.emit("settings.reset", settings=copy.deepcopy(defaults))
        return defaults

    async def _read(self) -> dict[str, Any]:
        if self.path is None:
            return copy.deepcopy(self._memory)
        return await asyncio.to_thread(self._read_file)

    async def _write(self, data: dict[str, Any]) -> None:
        if self.path is None:
            self._memory = copy.deepcopy(data)
            return
        await asyncio.to_thread(self._write_file, data)

    def _read_file(self) -> dict[str, Any]:
        assert self.path is not None
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            content = f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {self.path} does not contain a JSON object")
        return data

    def _write_file(self, data: dict[str, Any]) -> None:
        assert self.path is not None
        # Serialize before truncating
        payload = json.dumps(data, indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.path, 'r+' if self.path.exists() else 'w+', encoding='utf-8') as f:
            _lock_file(f)
            try:
                f.seek(0)
                f.truncate()
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            finally:
                _unlock_file(f)
