"""
Plugin contract — the interface between the tool manager and tools.

A tool plugs into jcvm by implementing three roles, composed into
``ToolPlugin``:

    ToolProvider    what versions exist, how to parse and validate them
    ToolInstaller   putting a distribution on disk and taking it off
    ToolDetector    finding installations jcvm did not create

The manager only talks to tools through this contract, never directly
to a tool's download site or binaries.  It owns the layout around a
version directory (symlinks, manifests); a plugin owns only what is
inside it.

Provider and installer methods raise ``JcvmError`` subclasses and the
calling operation fails with them.  Detector failures are tolerated by
cross-tool sweeps.

To create a new plugin:
    1. Subclass ToolPlugin
    2. Implement every abstract method below
    3. Register it in the PluginRegistry with matching PluginMetadata
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from jcvm.core.errors import InvalidToolStructure, VersionAlreadyInstalled
from jcvm.core.models.tool import (
    Architecture,
    DetectedInstallation,
    InstalledTool,
    Platform,
    ToolDistribution,
    ToolInfo,
    ToolVersion,
)

logger = logging.getLogger(__name__)

# Directories an import must never take over, even as a symlink target
PROTECTED_SYSTEM_DIRS = (
    Path("/"),
    Path("/usr"),
    Path("/usr/local"),
    Path("/System"),
    Path("/Library"),
    Path("/opt"),
)


class ToolProvider(ABC):
    """Knowledge about a tool's versions and installation layout."""

    @abstractmethod
    def info(self) -> ToolInfo:
        """Static identity; ``info().id`` is the registry key."""

    @abstractmethod
    def list_remote_versions(self, lts_only: bool = False) -> list[ToolVersion]:
        """Versions available for download (may hit the network)."""

    @abstractmethod
    def find_distribution(
        self,
        version: ToolVersion,
        platform: Platform,
        arch: Architecture,
    ) -> ToolDistribution:
        """Locate the artifact for one version on one platform.

        Raises:
            VersionNotFound: If no artifact exists for the request.
            UnsupportedPlatform: If the tool is not shipped for the platform.
        """

    @abstractmethod
    def parse_version(self, version: str) -> ToolVersion:
        """Parse a version string.

        Parsing must round-trip: ``parse_version(parse_version(s).raw)``
        equals ``parse_version(s)``.

        Raises:
            InvalidVersion: If the string is not a version of this tool.
        """

    @abstractmethod
    def validate_installation(self, path: Path) -> bool:
        """Pure structural check that ``path`` holds a usable install."""

    @abstractmethod
    def get_executable_paths(self, path: Path) -> list[Path]:
        """Executables an install at ``path`` provides."""

    @abstractmethod
    def get_environment_vars(self, path: Path) -> list[tuple[str, str]]:
        """Environment for activating an install at ``path``.

        A variable whose name ends in ``_HOME`` declares the canonical
        home directory that aliases must point at.
        """


class ToolInstaller(ABC):
    """Putting distributions on disk and taking them off again."""

    @abstractmethod
    def install(self, distribution: ToolDistribution, dest_dir: Path) -> InstalledTool:
        """Install a distribution into ``dest_dir``.

        Raises:
            VersionAlreadyInstalled: If ``dest_dir`` already exists.
        """

    @abstractmethod
    def uninstall(self, installed: InstalledTool) -> None:
        """Remove an installation created by ``install``."""

    @abstractmethod
    def verify(self, installed: InstalledTool) -> bool:
        """True if the installation still looks intact."""


class ToolDetector(ABC):
    """Finding installations created outside jcvm."""

    @abstractmethod
    def detect_installations(self) -> list[DetectedInstallation]:
        """Best-effort scan of the system.

        Skips invalid candidates and returns each installation once,
        keyed by resolved path.
        """

    @abstractmethod
    def import_installation(self, detected: DetectedInstallation, dest_dir: Path) -> InstalledTool:
        """Bring a detected installation under management at ``dest_dir``.

        Raises:
            VersionAlreadyInstalled: If ``dest_dir`` already exists.
            InvalidToolStructure: If the source is a protected system directory.
        """


class ToolPlugin(ToolProvider, ToolInstaller, ToolDetector):
    """A complete tool plugin: provider, installer and detector in one."""

    @abstractmethod
    def supports_platform(self, platform: Platform, arch: Architecture) -> bool:
        """Pre-install gate for the host platform."""

    @property
    def tool_id(self) -> str:
        return self.info().id

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.tool_id!r}>"


# ── Shared helpers for concrete plugins ─────────────────────────


def dedupe_by_resolved_path(
    installations: Iterable[DetectedInstallation],
) -> list[DetectedInstallation]:
    """Keep the first installation per resolved (symlink-free) path."""
    seen: set[Path] = set()
    unique: list[DetectedInstallation] = []
    for inst in installations:
        try:
            key = inst.path.resolve()
        except OSError:
            key = inst.path
        if key in seen:
            continue
        seen.add(key)
        unique.append(inst)
    return unique


def is_protected_system_dir(path: Path) -> bool:
    """True for OS-owned prefixes that must not be imported wholesale."""
    try:
        resolved = path.resolve()
    except OSError:
        resolved = path
    return any(resolved == p or path == p for p in PROTECTED_SYSTEM_DIRS)


def link_external_installation(
    detected: DetectedInstallation,
    dest_dir: Path,
    executable_path: Path | None = None,
) -> InstalledTool:
    """Import ``detected`` by symlinking ``dest_dir`` to it.

    The source installation is never copied or modified.

    Raises:
        VersionAlreadyInstalled: If ``dest_dir`` already exists.
        InvalidToolStructure: If the source is a protected system directory
            or does not exist.
    """
    if dest_dir.exists() or dest_dir.is_symlink():
        raise VersionAlreadyInstalled(detected.version.raw, str(dest_dir), detected.tool_id)
    if is_protected_system_dir(detected.path):
        raise InvalidToolStructure(
            detected.tool_id,
            f"refusing to import system directory {detected.path}",
        )
    if not detected.path.is_dir():
        raise InvalidToolStructure(detected.tool_id, f"{detected.path} is not a directory")

    dest_dir.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(detected.path, dest_dir, target_is_directory=True)
    logger.debug("Linked %s → %s", dest_dir, detected.path)

    return InstalledTool(
        tool_id=detected.tool_id,
        version=detected.version,
        path=dest_dir,
        source=detected.source,
        executable_path=executable_path or detected.executable_path,
    )


def probe_version(
    cmd: list[str],
    pattern: str,
    timeout: float = 5.0,
) -> str | None:
    """Run a ``--version`` style command and extract the version.

    Both stdout and stderr are searched (``java -version`` prints to
    stderr).

    Returns:
        The first capture group of ``pattern``, or None if the command is
        missing, times out, or prints nothing matching.
    """
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version probe %s failed: %s", cmd[0], e)
        return None
    m = re.search(pattern, result.stdout + result.stderr)
    return m.group(1) if m else None


def prepend_path(bin_dir: Path, var: str = "PATH") -> str:
    """``PATH``-style value putting ``bin_dir`` first, in shell syntax."""
    if os.name == "nt":
        return f"{bin_dir};%{var}%"
    return f"{bin_dir}:${var}"
