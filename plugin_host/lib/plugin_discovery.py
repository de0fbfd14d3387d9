"""
Filesystem-based plugin discovery and module loading.

Discovery only looks at the names of the entries in the plugin directory; the
order it returns is the load order, so plugin authors control relative ordering
by naming (e.g. ``10_db.py`` before ``20_api.py``).
"""

import importlib.machinery
import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable

from plugin_host.lib.plugin_base import PluginDescriptor

logger = logging.getLogger(__name__)

PLUGIN_MODULE_PREFIX = "plugin_host_plugins"


def discover_plugins(plugin_dir: Path, extensions: Iterable[str] = (".py",)) -> list[PluginDescriptor]:
    """
    Find plugin files in a directory.

    Only regular files with a recognized extension are considered. Names
    starting with '_' or '.' (``__init__.py``, editor swap files) are skipped.
    A missing, empty or unreadable directory yields an empty list.

    Args:
        plugin_dir: Directory to scan (not recursive)
        extensions: Recognized file extensions, including the leading dot

    Returns:
        Descriptors sorted lexicographically by file name
    """
    extensions = tuple(extensions)
    if not plugin_dir.is_dir():
        logger.info(f"Plugin directory not found, no plugins loaded: {plugin_dir}")
        return []

    try:
        entries = list(plugin_dir.iterdir())
    except OSError as e:
        logger.error(f"Cannot read plugin directory {plugin_dir}, no plugins loaded: {e}")
        return []

    descriptors = []
    for entry in entries:
        if entry.name.startswith(("_", ".")):
            continue
        if not entry.is_file() or entry.suffix not in extensions:
            continue
        descriptors.append(PluginDescriptor(name=entry.name, path=entry))

    # Enumeration order is filesystem dependent; the sort makes load order reproducible
    descriptors.sort(key=lambda d: d.name)
    logger.debug(f"Discovered {len(descriptors)} plugin(s) in {plugin_dir}: {[d.name for d in descriptors]}")
    return descriptors


def plugin_module_name(descriptor: PluginDescriptor) -> str:
    """Return the sys.modules name a plugin file is imported under."""
    return f"{PLUGIN_MODULE_PREFIX}.{descriptor.stem}"


def load_plugin_module(descriptor: PluginDescriptor) -> ModuleType:
    """
    Import a plugin file as a module.

    The module is registered in sys.modules under
    ``plugin_host_plugins.<stem>`` for the time it executes and afterwards, so
    that dataclasses, pickling and similar module lookups work inside plugins.

    Raises:
        ImportError: If no import spec can be created for the file
        Exception: Whatever the plugin's module-level code raises
    """
    module_name = plugin_module_name(descriptor)
    # An explicit source loader accepts any configured extension, not only .py
    loader = importlib.machinery.SourceFileLoader(module_name, str(descriptor.path))
    spec = importlib.util.spec_from_file_location(module_name, descriptor.path, loader=loader)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not create import spec for {descriptor.path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module
