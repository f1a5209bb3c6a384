"""
Manager-level views — what the tool manager hands back to callers.

These are computed on every call from the filesystem (version
directories, manifests, alias symlinks).  Nothing here is cached.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from jcvm.core.models.tool import (
    DetectedInstallation,
    InstalledTool,
    ToolInfo,
    ToolVersion,
)


class ManagedInstallation(BaseModel):
    """One installed version as seen by ``list_installed``."""

    tool_id: str
    version: ToolVersion
    path: Path
    is_current: bool = False
    is_default: bool = False
    installed_at: datetime
    manifest: InstalledTool | None = None


class ActivationContext(BaseModel):
    """Result of activating a version.

    ``home_path`` is what the ``current`` alias now targets; it can sit
    below ``install_path`` (e.g. a macOS ``Contents/Home`` bundle).
    """

    tool_id: str
    tool_info: ToolInfo
    version: ToolVersion
    install_path: Path
    home_path: Path
    env: list[tuple[str, str]] = Field(default_factory=list)


class ToolSweepResult(BaseModel):
    """Per-tool outcome of a detect or detect-and-import sweep.

    A sweep never raises for a single tool: a detector failure lands in
    ``error``, an import failure bumps ``failed``.
    """

    tool_id: str
    detected: int = 0
    imported: int = 0
    already_managed: int = 0
    failed: int = 0
    error: str | None = None
    installations: list[DetectedInstallation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether detection itself succeeded for this tool."""
        return self.error is None
