"""
Tool models — the vocabulary every plugin speaks.

``ToolVersion`` is the pivot type: the raw string is authoritative for
display, directory names and equality, while the numeric fields exist
only for ordering and fuzzy matching.

``InstalledTool`` doubles as the on-disk manifest.  It serializes with
camelCase keys (``toolId``, ``installedAt`` ...) and accepts snake_case
keys on read.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    """Current UTC time."""
    return datetime.now(UTC)


class _CamelModel(BaseModel):
    """Base for models whose JSON form uses camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Platform(StrEnum):
    """Host operating system family."""

    MAC = "mac"
    LINUX = "linux"
    WINDOWS = "windows"


class Architecture(StrEnum):
    """Host CPU architecture."""

    X64 = "x64"
    AARCH64 = "aarch64"
    X86 = "x86"
    ARM = "arm"


class ArchiveType(StrEnum):
    """Packaging format of a downloadable distribution."""

    TAR_GZ = "tar.gz"
    ZIP = "zip"
    DMG = "dmg"
    EXE = "exe"
    DEB = "deb"
    RPM = "rpm"
    PKG = "pkg"
    BINARY = "binary"
    OTHER = "other"

    @classmethod
    def from_url(cls, url: str) -> ArchiveType:
        """Infer the archive kind from a download URL's file name."""
        name = url.rsplit("/", 1)[-1].split("?", 1)[0].lower()
        if name.endswith((".tar.gz", ".tgz")):
            return cls.TAR_GZ
        for suffix, kind in (
            (".zip", cls.ZIP),
            (".dmg", cls.DMG),
            (".exe", cls.EXE),
            (".msi", cls.EXE),
            (".deb", cls.DEB),
            (".rpm", cls.RPM),
            (".pkg", cls.PKG),
        ):
            if name.endswith(suffix):
                return kind
        return cls.OTHER


class ToolInfo(BaseModel):
    """Static identity of a tool."""

    model_config = ConfigDict(frozen=True)

    id: str                          # e.g. "java", "node", "python"
    name: str                        # display name
    description: str = ""
    homepage: str | None = None
    docs_url: str | None = None


class ToolVersion(_CamelModel):
    """A concrete (or partial) version of a tool.

    Two versions are equal when their raw strings are equal; major,
    minor and patch only drive ordering and prefix matching.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    major: int
    minor: int | None = None
    patch: int | None = None
    metadata: str | None = None
    is_lts: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToolVersion):
            return NotImplemented
        return self.raw == other.raw

    def __hash__(self) -> int:
        return hash(self.raw)

    def __str__(self) -> str:
        return self.raw

    def sort_key(self) -> tuple[int, int, int, str]:
        """Ascending sort key; missing minor/patch count as 0.

        The raw string is the final tiebreak so ordering is total, even
        though it says nothing meaningful about pre-release suffixes.
        """
        return (self.major, self.minor or 0, self.patch or 0, self.raw)

    def with_lts(self, is_lts: bool) -> ToolVersion:
        return self.model_copy(update={"is_lts": is_lts})

    def with_metadata(self, metadata: str) -> ToolVersion:
        return self.model_copy(update={"metadata": metadata})


class ToolDistribution(BaseModel):
    """An installable artifact for one (tool, version, platform, arch).

    Built per install call by the plugin's provider; never persisted.
    """

    tool_id: str
    version: ToolVersion
    platform: Platform
    architecture: Architecture
    download_url: str
    checksum: str | None = None
    size: int | None = None
    archive_type: ArchiveType = ArchiveType.OTHER
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def file_name(self) -> str:
        """Last path segment of the download URL."""
        name = self.download_url.rsplit("/", 1)[-1].split("?", 1)[0]
        return name or f"{self.tool_id}-{self.version.raw}"


class InstalledTool(_CamelModel):
    """Durable record of a successful install or import (the manifest)."""

    tool_id: str
    version: ToolVersion
    path: Path
    installed_at: datetime = Field(default_factory=_utcnow)
    source: str = "unknown"
    executable_path: Path | None = None


class DetectedInstallation(BaseModel):
    """An installation found on the system but not (yet) managed."""

    tool_id: str
    version: ToolVersion
    path: Path
    source: str = "detected"
    executable_path: Path | None = None
