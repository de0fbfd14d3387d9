"""
FastAPI application hosting the plugin system.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from . import __version__
from .config import Settings, get_settings
from .lib.event_bus import EventBus
from .lib.logging_utils import setup_logging
from .lib.plugin_manager import PluginManager
from .lib.service_registry import ServiceRegistry, ServiceRegistryBuilder
from .lib.settings_store import SettingsStore
from .routers import plugins, settings as settings_routes


logger = logging.getLogger(__name__)


async def build_services(settings: Settings, store: SettingsStore, event_bus: EventBus) -> ServiceRegistry:
    """
    Build and seal the services every plugin receives.

    Raises:
        ServiceRegistryError: If a service cannot be constructed
    """
    builder = ServiceRegistryBuilder()
    builder.add("config", settings)
    builder.add("event_bus", event_bus)
    builder.add("settings", store)
    return await builder.build()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle"""
    settings: Settings = app.state.settings

    setup_logging(settings.log_level, settings.log_categories)
    logger.info("Starting plugin host")
    logger.info(f"Plugin directory: {settings.plugin_dir}")
    logger.info(f"Settings file: {settings.settings_file}")

    event_bus = EventBus()
    store = SettingsStore(settings.settings_file, event_bus=event_bus)
    app.state.settings_store = store

    # A partial registry is never exposed: startup fails instead
    try:
        services = await build_services(settings, store, event_bus)
    except Exception as e:
        logger.error(f"Error building service registry: {e}")
        raise
    app.state.services = services

    plugin_manager = PluginManager.get_instance(settings.plugin_dir, settings.plugin_extensions)
    await plugin_manager.initialize_plugins(app, services)

    logger.info("=" * 80)
    logger.info(f"Plugin host ready at http://{settings.HOST}:{settings.PORT}")
    logger.info("=" * 80)

    yield

    logger.info("Shutting down plugin host")
    await plugin_manager.shutdown_plugins()
    await event_bus.drain()


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use instead of the cached environment settings
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Plugin Host",
        description="HTTP server extended by plugins loaded from a plugin directory",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    api = APIRouter(prefix=settings.api_prefix)
    api.include_router(settings_routes.router)
    api.include_router(plugins.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok"}

    app.include_router(api)
    return app


app = create_app()
