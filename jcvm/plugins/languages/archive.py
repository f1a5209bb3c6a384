"""
Archive plugin base — shared install/uninstall/import for tools that
ship as downloadable tar.gz or zip archives.

Subclasses supply the tool-specific knowledge (``info``, version
parsing, remote listing, distribution lookup, validation, environment,
detection); this base turns a ``ToolDistribution`` into an installed
directory through ``jcvm.core.services.download``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from jcvm.core.config.settings import JcvmConfig
from jcvm.core.errors import InvalidToolStructure, VersionAlreadyInstalled
from jcvm.core.models.tool import (
    Architecture,
    DetectedInstallation,
    InstalledTool,
    Platform,
    ToolDistribution,
)
from jcvm.core.services import download
from jcvm.plugins.base import ToolPlugin, link_external_installation

logger = logging.getLogger(__name__)


class ArchiveToolPlugin(ToolPlugin):
    """Base for plugins whose distributions are plain archives."""

    # (platform, arch) pairs the tool publishes builds for
    SUPPORTED: frozenset[tuple[Platform, Architecture]] = frozenset()

    def __init__(self, config: JcvmConfig):
        self._config = config

    @property
    def config(self) -> JcvmConfig:
        return self._config

    def primary_executable(self, path: Path) -> Path | None:
        """The executable whose presence proves an install is usable."""
        for exe in self.get_executable_paths(path):
            if exe.is_file():
                return exe
        return None

    def validate_installation(self, path: Path) -> bool:
        return self.primary_executable(path) is not None

    def supports_platform(self, platform: Platform, arch: Architecture) -> bool:
        return (platform, arch) in self.SUPPORTED

    # ── ToolInstaller ───────────────────────────────────────────

    def install(self, distribution: ToolDistribution, dest_dir: Path) -> InstalledTool:
        tool_id = self.info().id
        if dest_dir.exists() or dest_dir.is_symlink():
            raise VersionAlreadyInstalled(distribution.version.raw, str(dest_dir), distribution.tool_id)

        archive = download.download_file(
            distribution.download_url,
            self._config.tool_cache_dir(tool_id) / distribution.file_name,
            timeout=self._config.http_timeout,
            use_cache=self._config.cache_downloads,
        )
        if self._config.verify_checksums:
            download.ensure_checksum(archive, distribution.checksum)

        download.extract_archive(archive, dest_dir, distribution.archive_type)

        exe = self.primary_executable(dest_dir)
        if exe is None:
            shutil.rmtree(dest_dir, ignore_errors=True)
            raise InvalidToolStructure(
                tool_id,
                f"no executable found after extracting {distribution.file_name} into {dest_dir}",
            )

        if not self._config.cache_downloads:
            archive.unlink(missing_ok=True)

        return InstalledTool(
            tool_id=tool_id,
            version=distribution.version,
            path=dest_dir,
            source=distribution.metadata.get("source", "download"),
            executable_path=exe,
        )

    def uninstall(self, installed: InstalledTool) -> None:
        path = installed.path
        if path.is_symlink():
            # Imported: drop the link, never the target
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)
        logger.debug("Removed %s", path)

    def verify(self, installed: InstalledTool) -> bool:
        if installed.executable_path is not None:
            return installed.executable_path.is_file()
        return self.validate_installation(installed.path)

    # ── ToolDetector ────────────────────────────────────────────

    def import_installation(self, detected: DetectedInstallation, dest_dir: Path) -> InstalledTool:
        exe = detected.executable_path or self.primary_executable(detected.path)
        return link_external_installation(detected, dest_dir, exe)
