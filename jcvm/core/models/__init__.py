"""
Domain models — pydantic types shared by plugins and the tool manager.

All models are re-exported here for convenient access:

    from jcvm.core.models import ToolVersion, InstalledTool, PluginMetadata
"""

from jcvm.core.models.installation import (
    ActivationContext,
    ManagedInstallation,
    ToolSweepResult,
)
from jcvm.core.models.plugin import PluginCategory, PluginMetadata
from jcvm.core.models.tool import (
    Architecture,
    ArchiveType,
    DetectedInstallation,
    InstalledTool,
    Platform,
    ToolDistribution,
    ToolInfo,
    ToolVersion,
)

__all__ = [
    # installation.py
    "ActivationContext",
    "ManagedInstallation",
    "ToolSweepResult",
    # plugin.py
    "PluginCategory",
    "PluginMetadata",
    # tool.py
    "Architecture",
    "ArchiveType",
    "DetectedInstallation",
    "InstalledTool",
    "Platform",
    "ToolDistribution",
    "ToolInfo",
    "ToolVersion",
]
