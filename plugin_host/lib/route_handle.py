"""
Restricted route registration for plugins.

Plugins never see the FastAPI application. Each one gets a RouteHandle that
can only add endpoints; the RouteTable behind all handles refuses any
(method, path) pair that is already served, so a plugin cannot shadow a host
route or another plugin's route.

    async def plugin(routes, services):
        @routes.get("/api/hello")
        async def hello():
            return {"message": "hi"}
"""

import logging
from typing import Any, Callable, Iterable, Optional

from fastapi import FastAPI
from starlette.routing import BaseRoute, Match

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})

HOST_OWNER = "host"


class RouteConflictError(ValueError):
    """Raised when a (method, path) pair is already registered."""

    def __init__(self, method: str, path: str, owner: str):
        super().__init__(f"{method} {path} is already registered by '{owner}'")
        self.method = method
        self.path = path
        self.owner = owner


class RouteTable:
    """
    Host-owned record of the routes plugins add to the application.
    """

    def __init__(self, app: FastAPI):
        self._app = app
        self._owners: dict[tuple[str, str], str] = {}
        self._routes: dict[str, list[BaseRoute]] = {}

    def handle_for(self, owner: str) -> "RouteHandle":
        """Create the registration handle for one plugin."""
        return RouteHandle(self, owner)

    def owner_of(self, method: str, path: str) -> Optional[str]:
        """
        Return who serves (method, path): a plugin name, 'host', or None.

        The application's routes are asked whether they would handle a request
        for the pair, so routes from included routers, mounts and routes with
        path parameters are all taken into account.
        """
        owner = self._owners.get((method, path))
        if owner is not None:
            return owner

        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "root_path": "",
            "path_params": {},
            "headers": [],
            "query_string": b"",
        }
        plugin_routes = {id(route): name for name, routes in self._routes.items() for route in routes}
        for route in self._app.router.routes:
            match, _ = route.matches(scope)
            if match == Match.FULL:
                return plugin_routes.get(id(route), HOST_OWNER)
        return None

    def add_route(
        self,
        owner: str,
        path: str,
        endpoint: Callable[..., Any],
        methods: Iterable[str],
        **route_options: Any,
    ) -> None:
        """
        Add an endpoint on behalf of a plugin.

        Raises:
            ValueError: If the path or a method is invalid
            RouteConflictError: If any of the methods is already served at path
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        normalized = sorted({m.upper() for m in methods})
        if not normalized:
            raise ValueError("At least one HTTP method is required")
        unknown = [m for m in normalized if m not in HTTP_METHODS]
        if unknown:
            raise ValueError(f"Unsupported HTTP method(s): {', '.join(unknown)}")

        for method in normalized:
            existing = self.owner_of(method, path)
            if existing is not None:
                raise RouteConflictError(method, path, existing)

        existing_routes = {id(route) for route in self._app.router.routes}
        self._app.add_api_route(path, endpoint, methods=normalized, **route_options)
        added = [route for route in self._app.router.routes if id(route) not in existing_routes]
        self._routes.setdefault(owner, []).extend(added)
        for method in normalized:
            self._owners[(method, path)] = owner
        logger.info(f"Plugin '{owner}' registered route: {', '.join(normalized)} {path}")

    def routes_for(self, owner: str) -> list[str]:
        """List the routes a plugin registered as 'METHOD /path' strings."""
        return sorted(f"{method} {path}" for (method, path), o in self._owners.items() if o == owner)

    def withdraw(self, owner: str) -> None:
        """Remove every route a plugin registered from the application."""
        for route in self._routes.pop(owner, []):
            if route in self._app.router.routes:
                self._app.router.routes.remove(route)
        for key in [k for k, o in self._owners.items() if o == owner]:
            del self._owners[key]
        logger.debug(f"Withdrew routes of plugin '{owner}'")


class RouteHandle:
    """
    The route registration capability handed to one plugin.

    Only adds endpoints. Once the plugin's startup hook has finished the
    handle is closed and further registration raises RuntimeError.
    """

    def __init__(self, table: RouteTable, owner: str):
        # Only the two operations a plugin may perform are kept, never the table
        def add_route(path, endpoint, methods, **route_options):
            table.add_route(owner, path, endpoint, methods, **route_options)

        def list_routes():
            return table.routes_for(owner)

        self._add_route = add_route
        self._list_routes = list_routes
        self._owner = owner
        self._closed = False

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def registered_routes(self) -> list[str]:
        return self._list_routes()

    def close(self) -> None:
        self._closed = True

    def add_api_route(
        self,
        path: str,
        endpoint: Callable[..., Any],
        *,
        methods: Optional[Iterable[str]] = None,
        **route_options: Any,
    ) -> None:
        """Register endpoint for path. Methods default to GET."""
        if self._closed:
            raise RuntimeError(
                f"Route registration for plugin '{self._owner}' is closed; "
                "register routes during startup"
            )
        self._add_route(path, endpoint, methods or ["GET"], **route_options)

    def api_route(self, path: str, *, methods: Iterable[str], **route_options: Any) -> Callable:
        def decorator(endpoint: Callable[..., Any]) -> Callable[..., Any]:
            self.add_api_route(path, endpoint, methods=methods, **route_options)
            return endpoint

        return decorator

    def get(self, path: str, **route_options: Any) -> Callable:
        return self.api_route(path, methods=["GET"], **route_options)

    def post(self, path: str, **route_options: Any) -> Callable:
        return self.api_route(path, methods=["POST"], **route_options)

    def put(self, path: str, **route_options: Any) -> Callable:
        return self.api_route(path, methods=["PUT"], **route_options)

    def patch(self, path: str, **route_options: Any) -> Callable:
        return self.api_route(path, methods=["PATCH"], **route_options)

    def delete(self, path: str, **route_options: Any) -> Callable:
        return self.api_route(path, methods=["DELETE"], **route_options)
