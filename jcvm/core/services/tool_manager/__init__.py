"""
Tool manager — the version resolution and activation engine.

    from jcvm.core.services.tool_manager import ToolManager
"""

from jcvm.core.services.tool_manager.manager import ToolManager
from jcvm.core.services.tool_manager.resolution import (
    find_matching_version,
    resolve_install_dir,
)

__all__ = [
    "ToolManager",
    "find_matching_version",
    "resolve_install_dir",
]
