"""
Service registry shared with every plugin.

Services are collected with a ServiceRegistryBuilder and sealed into a
ServiceRegistry, a read-only mapping whose key set never changes. Every plugin
receives the same sealed instance as the second argument of its startup hook.

    builder = ServiceRegistryBuilder()
    builder.add("config", settings)
    builder.add_factory("event_bus", EventBus)
    services = await builder.build()

    services["config"]        # item access
    services.event_bus        # attribute access
    services["x"] = object()  # TypeError
"""

import inspect
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)


class ServiceRegistryError(RuntimeError):
    """Raised when a service cannot be constructed; the registry is never sealed."""

    def __init__(self, service_name: str, cause: BaseException):
        super().__init__(f"Failed to build service '{service_name}': {cause}")
        self.service_name = service_name


class ServiceRegistry(Mapping):
    """
    Immutable mapping of service name to service object.

    Reads never fail for registered names. Item assignment, item deletion and
    attribute assignment raise TypeError, so the key set is fixed for the
    lifetime of the instance and concurrent reads need no locking.
    """

    __slots__ = ("_services",)

    def __init__(self, services: Mapping[str, Any] | None = None):
        object.__setattr__(self, "_services", MappingProxyType(dict(services or {})))

    def __getitem__(self, name: str) -> Any:
        return self._services[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._services)

    def __len__(self) -> int:
        return len(self._services)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._services[name]
        except KeyError:
            raise AttributeError(f"No service named '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise TypeError("ServiceRegistry is read-only")

    def __delattr__(self, name: str) -> None:
        raise TypeError("ServiceRegistry is read-only")

    def __repr__(self) -> str:
        return f"ServiceRegistry({sorted(self._services)})"


class ServiceRegistryBuilder:
    """Collects services and factories, then seals them into a ServiceRegistry."""

    def __init__(self):
        self._entries: dict[str, tuple[bool, Any]] = {}
        self._sealed = False

    def _check_name(self, name: str) -> None:
        if self._sealed:
            raise RuntimeError("Service registry has already been built")
        if not isinstance(name, str) or not name:
            raise ValueError("Service name must be a non-empty string")
        if name in self._entries:
            raise ValueError(f"Service '{name}' is already registered")

    def add(self, name: str, service: Any) -> "ServiceRegistryBuilder":
        """Register a pre-built service."""
        self._check_name(name)
        self._entries[name] = (False, service)
        return self

    def add_factory(self, name: str, factory: Callable[[], Any]) -> "ServiceRegistryBuilder":
        """Register a zero-argument constructor, plain or async, called at build time."""
        self._check_name(name)
        if not callable(factory):
            raise TypeError(f"Factory for service '{name}' is not callable")
        self._entries[name] = (True, factory)
        return self

    async def build(self) -> ServiceRegistry:
        """
        Construct all services and seal the registry.

        Services are built in registration order. The first failing factory
        aborts the build with ServiceRegistryError and nothing is sealed.

        Returns:
            The sealed registry
        """
        if self._sealed:
            raise RuntimeError("Service registry has already been built")

        services: dict[str, Any] = {}
        for name, (is_factory, value) in self._entries.items():
            if is_factory:
                try:
                    value = value()
                    if inspect.isawaitable(value):
                        value = await value
                except Exception as e:
                    logger.error(f"Error building service '{name}': {e}")
                    raise ServiceRegistryError(name, e) from e
            services[name] = value

        self._sealed = True
        registry = ServiceRegistry(services)
        logger.info(f"Service registry sealed with {len(registry)} service(s): {', '.join(registry)}")
        return registry
