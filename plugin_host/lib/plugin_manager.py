"""
Plugin manager for application-wide plugin lifecycle management.

Startup loads plugins one at a time in discovery order. Each plugin's startup
hook is awaited to completion before the next plugin is imported, so load order
is also effect order. Shutdown runs the teardown hooks of successfully started
plugins in reverse load order, exactly once.

There is no timeout on either hook: a plugin that never finishes its startup
stalls every plugin after it.
"""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI

from plugin_host.config import get_settings
from plugin_host.lib.plugin_base import (
    PluginDescriptor,
    PluginFailure,
    PluginHandle,
    PluginShapeError,
    call_hook,
    classify_plugin,
    resolve_plugin_value,
)
from plugin_host.lib.plugin_discovery import discover_plugins, load_plugin_module, plugin_module_name
from plugin_host.lib.route_handle import RouteTable
from plugin_host.lib.service_registry import ServiceRegistry

logger = logging.getLogger(__name__)


class PluginManager:
    """
    Singleton manager for plugin discovery, startup and teardown.
    """

    _instance: "PluginManager | None" = None

    def __init__(self, plugin_dir: Optional[Path] = None, extensions: Optional[list[str]] = None):
        """
        Initialize plugin manager (use get_instance() for the application-wide one).

        Args:
            plugin_dir: Directory to load plugins from (default: PLUGIN_DIR setting)
            extensions: Recognized plugin file extensions (default: PLUGIN_EXTENSIONS setting)
        """
        if plugin_dir is None or extensions is None:
            settings = get_settings()
            plugin_dir = plugin_dir if plugin_dir is not None else settings.plugin_dir
            extensions = extensions if extensions is not None else settings.plugin_extensions

        self.plugin_dir = Path(plugin_dir)
        self.extensions = list(extensions)
        self.handles: list[PluginHandle] = []
        self.failures: list[PluginFailure] = []
        self.route_table: RouteTable | None = None
        self._module_owners: dict[str, str] = {}
        self._initialized = False
        self._shut_down = False

    @classmethod
    def get_instance(
        cls, plugin_dir: Optional[Path] = None, extensions: Optional[list[str]] = None
    ) -> "PluginManager":
        """
        Get or create the singleton plugin manager instance.

        Arguments are only used when the instance is created.

        Returns:
            PluginManager singleton instance
        """
        if cls._instance is None:
            cls._instance = cls(plugin_dir, extensions)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def shut_down(self) -> bool:
        return self._shut_down

    def discover_plugins(self) -> list[PluginDescriptor]:
        """Return the plugin files to load, in load order."""
        logger.info(f"Discovering plugins in {self.plugin_dir}")
        return discover_plugins(self.plugin_dir, self.extensions)

    async def initialize_plugins(self, app: FastAPI, services: ServiceRegistry) -> list[PluginHandle]:
        """
        Load and start every discovered plugin, strictly one after another.

        A plugin that fails to import, has an unsupported shape, or whose
        startup hook raises is recorded in ``failures`` and skipped; the
        remaining plugins still load.

        Args:
            app: FastAPI application plugins add routes to
            services: Sealed service registry passed to every plugin

        Returns:
            Handles of the plugins that started successfully, in load order
        """
        if self._initialized or self._shut_down:
            logger.warning("Plugins have already been initialized, skipping")
            return list(self.handles)
        self._initialized = True

        route_table = self.route_table = RouteTable(app)
        for descriptor in self.discover_plugins():
            handle = await self._start_plugin(descriptor, route_table, services)
            if handle is not None:
                self.handles.append(handle)

        logger.info(
            f"Plugins initialized: {len(self.handles)} loaded, "
            f"{len({f.plugin for f in self.failures})} failed"
        )
        return list(self.handles)

    async def _start_plugin(
        self, descriptor: PluginDescriptor, route_table: RouteTable, services: ServiceRegistry
    ) -> PluginHandle | None:
        """Import, classify and start one plugin."""
        name = descriptor.name

        # Files differing only in extension would share one module name
        module_name = plugin_module_name(descriptor)
        claimed_by = self._module_owners.get(module_name)
        if claimed_by is not None:
            error = ImportError(f"Module name {module_name} is already used by plugin {claimed_by}")
            self._record_failure(name, "load", error)
            return None

        try:
            module = load_plugin_module(descriptor)
        except Exception as e:
            self._record_failure(name, "load", e)
            return None
        self._module_owners[module_name] = name

        try:
            shape = classify_plugin(name, resolve_plugin_value(module))
        except PluginShapeError as e:
            self._record_failure(name, "classify", e)
            return None

        routes = route_table.handle_for(name)
        try:
            await call_hook(shape.init, routes, services)
        except Exception as e:
            route_table.withdraw(name)
            self._record_failure(name, "init", e)
            return None
        finally:
            routes.close()

        handle = PluginHandle(
            name=name,
            convention=shape.convention,
            shutdown=shape.shutdown,
            routes=tuple(route_table.routes_for(name)),
        )
        logger.info(f"Loaded plugin: {name} ({shape.convention.value})")
        return handle

    async def shutdown_plugins(self) -> None:
        """
        Run teardown hooks in reverse load order.

        Runs at most once; later calls do nothing. A failing teardown hook is
        recorded and does not stop the remaining ones.
        """
        if self._shut_down:
            logger.debug("Plugins have already been shut down, skipping")
            return
        self._shut_down = True

        handles, self.handles = self.handles, []
        for handle in reversed(handles):
            if handle.shutdown is None:
                continue
            try:
                await call_hook(handle.shutdown)
                logger.info(f"Shut down plugin: {handle.name}")
            except Exception as e:
                self._record_failure(handle.name, "shutdown", e)

        logger.info("All plugins shut down")

    def _record_failure(self, plugin_name: str, operation: str, error: BaseException) -> None:
        failure = PluginFailure(plugin=plugin_name, operation=operation, error=str(error) or type(error).__name__)
        self.failures.append(failure)
        logger.error(f"Error during {operation} of plugin {plugin_name}: {failure.error}", exc_info=error)

    def get_plugins(self) -> list[dict[str, Any]]:
        """
        Describe the loaded plugins in load order.

        Returns:
            List of dicts with name, convention, and routes
        """
        return [
            {
                "name": handle.name,
                "convention": handle.convention.value,
                "routes": list(handle.routes),
            }
            for handle in self.handles
        ]

    def get_failures(self) -> list[dict[str, str]]:
        return [failure.to_dict() for failure in self.failures]
