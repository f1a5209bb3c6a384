"""
Built-in tool plugins.

    registry = load_builtin_plugins(config)
"""

from __future__ import annotations

import logging

from jcvm.core.config.settings import JcvmConfig
from jcvm.plugins.languages.java import JavaPlugin, java_metadata
from jcvm.plugins.languages.node import NodePlugin, node_metadata
from jcvm.plugins.languages.python import PythonPlugin, python_metadata
from jcvm.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)


def load_builtin_plugins(config: JcvmConfig, registry: PluginRegistry | None = None) -> PluginRegistry:
    """Register java, node and python in ``registry`` (a new one by default)."""
    if registry is None:
        registry = PluginRegistry()
    registry.register(JavaPlugin(config), java_metadata())
    registry.register(NodePlugin(config), node_metadata())
    registry.register(PythonPlugin(config), python_metadata())
    logger.debug("Loaded built-in plugins: java, node, python")
    return registry


__all__ = [
    "JavaPlugin",
    "NodePlugin",
    "PythonPlugin",
    "load_builtin_plugins",
]
