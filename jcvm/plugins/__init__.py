"""
Tool plugins — the contract, the registry and the test double.

    from jcvm.plugins import PluginRegistry, ToolPlugin
"""

from jcvm.plugins.base import ToolDetector, ToolInstaller, ToolPlugin, ToolProvider
from jcvm.plugins.registry import PluginRegistry

__all__ = [
    "PluginRegistry",
    "ToolDetector",
    "ToolInstaller",
    "ToolPlugin",
    "ToolProvider",
]
