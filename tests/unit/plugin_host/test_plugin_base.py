"""
Unit tests for plugin convention classification.

@testCovers plugin_host/lib/plugin_base.py
"""

import types
import unittest

from plugin_host.lib.plugin_base import (
    BareFunctionPlugin,
    LifecyclePlugin,
    PluginConvention,
    PluginShapeError,
    call_hook,
    classify_plugin,
    resolve_plugin_value,
)


class TestClassifyPlugin(unittest.TestCase):

    def test_function_is_bare(self):
        async def setup(routes, services):
            pass

        shape = classify_plugin("p", setup)

        self.assertIsInstance(shape, BareFunctionPlugin)
        self.assertEqual(shape.convention, PluginConvention.BARE_FUNCTION)
        self.assertIs(shape.init, setup)
        self.assertIsNone(shape.shutdown)

    def test_object_with_init_and_shutdown(self):
        lifecycle = types.SimpleNamespace(init=lambda r, s: None, shutdown=lambda: None)

        shape = classify_plugin("p", lifecycle)

        self.assertIsInstance(shape, LifecyclePlugin)
        self.assertEqual(shape.convention, PluginConvention.LIFECYCLE_OBJECT)
        self.assertIs(shape.shutdown, lifecycle.shutdown)

    def test_object_with_init_only(self):
        shape = classify_plugin("p", types.SimpleNamespace(init=lambda r, s: None))

        self.assertIsInstance(shape, LifecyclePlugin)
        self.assertIsNone(shape.shutdown)

    def test_module_with_hooks_is_lifecycle(self):
        module = types.ModuleType("lifecycle_module")
        module.init = lambda r, s: None

        self.assertIsInstance(classify_plugin("p", resolve_plugin_value(module)), LifecyclePlugin)

    def test_plugin_attribute_takes_precedence(self):
        module = types.ModuleType("bare_module")
        module.plugin = lambda r, s: None
        module.init = lambda r, s: None

        self.assertIs(resolve_plugin_value(module), module.plugin)

    def test_unsupported_shapes(self):
        """Values matching neither convention raise PluginShapeError naming the plugin."""
        for value in (42, "text", types.SimpleNamespace(setup=lambda: None), types.ModuleType("empty")):
            with self.subTest(value=value):
                with self.assertRaises(PluginShapeError) as cm:
                    classify_plugin("broken.py", value)
                self.assertIn("broken.py", str(cm.exception))

    def test_non_callable_hooks(self):
        with self.assertRaises(PluginShapeError):
            classify_plugin("p", types.SimpleNamespace(init="not callable"))
        with self.assertRaises(PluginShapeError):
            classify_plugin("p", types.SimpleNamespace(init=lambda r, s: None, shutdown=5))


class TestCallHook(unittest.IsolatedAsyncioTestCase):

    async def test_sync_and_async_hooks(self):
        async def async_hook(value):
            return value * 2

        self.assertEqual(await call_hook(lambda v: v + 1, 1), 2)
        self.assertEqual(await call_hook(async_hook, 2), 4)


if __name__ == "__main__":
    unittest.main()
