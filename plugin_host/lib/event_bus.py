"""Event bus shared with plugins through the service registry.

Plugins subscribe in their startup hook and unsubscribe in their teardown hook;
host components such as the settings store publish on it.

Example:
    ```python
    async def init(routes, services):
        services["event_bus"].on("settings.updated", on_settings_updated)

    async def on_settings_updated(settings: dict, changes: dict, **kwargs):
        print(f"Changed: {sorted(changes)}")
    ```
"""

from typing import Callable, Dict, List, Set
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """Lightweight event bus for decoupled communication between plugins and the host.

    Handlers may be plain or async functions. Emitting never blocks on handlers
    and a failing handler does not affect the others or the emitter.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_name: str, handler: Callable):
        """Register a handler for an event (e.g. "settings.updated")."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug(f"Registered handler for event '{event_name}'")

    def off(self, event_name: str, handler: Callable):
        """Unregister a handler. Unknown handlers are ignored with a warning."""
        try:
            self._handlers.get(event_name, []).remove(handler)
            logger.debug(f"Unregistered handler for event '{event_name}'")
        except ValueError:
            logger.warning(f"Handler not found for event '{event_name}'")

    def handler_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))

    async def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered handlers (fire-and-forget).

        Handlers run in a background task; this method returns without waiting
        for them. Exceptions raised by handlers are logged.

        Args:
            event_name: Name of the event to emit
            **kwargs: Event payload passed to all handlers
        """
        handlers = list(self._handlers.get(event_name, []))
        if not handlers:
            logger.debug(f"No handlers registered for event '{event_name}'")
            return

        logger.debug(f"Emitting event '{event_name}' to {len(handlers)} handler(s)")

        async def run_handlers():
            for handler in handlers:
                try:
                    result = handler(**kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        f"Error in handler {getattr(handler, '__name__', handler)!r} "
                        f"for event '{event_name}': {e}",
                        exc_info=e
                    )

        task = asyncio.create_task(run_handlers())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self):
        """Wait until all handlers of previously emitted events have finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
