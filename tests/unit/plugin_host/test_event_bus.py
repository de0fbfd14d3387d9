"""Unit tests for the event bus service."""

import unittest
from unittest.mock import AsyncMock, MagicMock

from plugin_host.lib.event_bus import EventBus


class TestEventBus(unittest.IsolatedAsyncioTestCase):
    """Test cases for EventBus class."""

    def setUp(self):
        self.bus = EventBus()

    def test_on_and_off(self):
        handler = AsyncMock()
        self.bus.on("test.event", handler)
        self.assertEqual(self.bus.handler_count("test.event"), 1)

        self.bus.off("test.event", handler)
        self.assertEqual(self.bus.handler_count("test.event"), 0)

    def test_off_unknown_handler_logs_warning(self):
        with self.assertLogs("plugin_host.lib.event_bus", level="WARNING"):
            self.bus.off("test.event", AsyncMock())

    async def test_emit_calls_sync_and_async_handlers(self):
        async_handler = AsyncMock()
        sync_handler = MagicMock(return_value=None)
        self.bus.on("test.event", async_handler)
        self.bus.on("test.event", sync_handler)

        await self.bus.emit("test.event", key="value")
        await self.bus.drain()

        async_handler.assert_awaited_once_with(key="value")
        sync_handler.assert_called_once_with(key="value")

    async def test_emit_without_handlers(self):
        await self.bus.emit("nobody.listens", data=1)
        await self.bus.drain()

    async def test_failing_handler_does_not_affect_others(self):
        failing = AsyncMock(side_effect=ValueError("handler failed"))
        failing.__name__ = "failing"
        working = AsyncMock()
        self.bus.on("test.event", failing)
        self.bus.on("test.event", working)

        with self.assertLogs("plugin_host.lib.event_bus", level="ERROR"):
            await self.bus.emit("test.event")
            await self.bus.drain()

        working.assert_awaited_once_with()


if __name__ == "__main__":
    unittest.main()
