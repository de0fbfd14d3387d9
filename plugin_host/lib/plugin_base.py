"""
Plugin calling conventions and the records the plugin manager keeps about plugins.

A plugin module resolves to a value (its ``plugin`` attribute, or the module
itself) which follows one of two conventions:

- bare function: the value is callable as ``plugin(routes, services)``
- lifecycle object: the value exposes a callable ``init(routes, services)`` and
  optionally a callable ``shutdown()``

Either hook may be a plain or an async function. The convention is decided once
by classify_plugin() and everything after that works on the returned variant.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

PLUGIN_ATTRIBUTE = "plugin"


class PluginConvention(str, Enum):
    BARE_FUNCTION = "bare-function"
    LIFECYCLE_OBJECT = "lifecycle-object"


class PluginShapeError(TypeError):
    """Raised when a plugin module matches neither calling convention."""

    def __init__(self, plugin_name: str, reason: str):
        super().__init__(f"Plugin '{plugin_name}' {reason}")
        self.plugin_name = plugin_name


@dataclass(frozen=True)
class BareFunctionPlugin:
    setup: Callable[..., Any]

    convention = PluginConvention.BARE_FUNCTION

    @property
    def init(self) -> Callable[..., Any]:
        return self.setup

    @property
    def shutdown(self) -> None:
        return None


@dataclass(frozen=True)
class LifecyclePlugin:
    init: Callable[..., Any]
    shutdown: Optional[Callable[[], Any]] = None

    convention = PluginConvention.LIFECYCLE_OBJECT


PluginShape = Union[BareFunctionPlugin, LifecyclePlugin]


@dataclass(frozen=True)
class PluginDescriptor:
    """A plugin file found during discovery."""

    name: str
    path: Path

    @property
    def stem(self) -> str:
        return self.path.stem


@dataclass(frozen=True)
class PluginHandle:
    """A plugin whose startup hook completed successfully."""

    name: str
    convention: PluginConvention
    shutdown: Optional[Callable[[], Any]] = None
    routes: tuple[str, ...] = ()


@dataclass(frozen=True)
class PluginFailure:
    """A non-fatal error attributed to a single plugin."""

    plugin: str
    operation: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"plugin": self.plugin, "operation": self.operation, "error": self.error}


def resolve_plugin_value(module: Any) -> Any:
    """Return the value a plugin module exports: its ``plugin`` attribute, else the module."""
    return getattr(module, PLUGIN_ATTRIBUTE, module)


def classify_plugin(plugin_name: str, value: Any) -> PluginShape:
    """
    Determine the calling convention of a plugin value.

    Args:
        plugin_name: Name used in error messages
        value: The value exported by the plugin module

    Returns:
        BareFunctionPlugin or LifecyclePlugin

    Raises:
        PluginShapeError: If the value matches neither convention
    """
    if callable(value):
        return BareFunctionPlugin(setup=value)

    init = getattr(value, "init", None)
    if init is None:
        raise PluginShapeError(
            plugin_name, "is neither callable nor an object with an 'init' hook"
        )
    if not callable(init):
        raise PluginShapeError(plugin_name, "has an 'init' attribute that is not callable")

    shutdown = getattr(value, "shutdown", None)
    if shutdown is not None and not callable(shutdown):
        raise PluginShapeError(plugin_name, "has a 'shutdown' attribute that is not callable")

    return LifecyclePlugin(init=init, shutdown=shutdown)


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call a plugin hook and wait for it if it returns an awaitable."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
