"""
Plugin metadata — the registration descriptor for a tool plugin.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from jcvm.core.models.tool import Architecture, Platform


class PluginCategory(StrEnum):
    """Broad family a tool belongs to."""

    LANGUAGE = "language"
    RUNTIME = "runtime"
    DATABASE = "database"
    TOOL = "tool"
    BROWSER = "browser"
    EDITOR = "editor"
    OTHER = "other"


class PluginMetadata(BaseModel):
    """What a plugin declares about itself at registration time.

    ``id`` must equal the plugin's own ``info().id``; the registry
    enforces this.  ``platforms``/``architectures`` are advisory and
    used for discovery, while ``ToolPlugin.supports_platform`` is the
    authoritative runtime gate.
    """

    id: str
    name: str = ""
    version: str = "0.0.0"
    author: str = ""
    platforms: list[Platform] = Field(default_factory=list)
    architectures: list[Architecture] = Field(default_factory=list)
    category: PluginCategory = PluginCategory.TOOL
    builtin: bool = False

    @property
    def display_name(self) -> str:
        """Human-friendly name, falling back to the id."""
        return self.name or self.id

    def supports(self, platform: Platform, arch: Architecture) -> bool:
        """Whether the declared metadata covers a platform/arch pair."""
        return platform in self.platforms and arch in self.architectures
