"""
Mock tool plugin — in-package test double for the plugin contract.

Installs are simulated by writing a tiny directory tree (``bin/<tool>``)
instead of downloading anything.  Behaviour is configurable per test:
remote versions, detected installations, an optional home sub-directory
(to mimic bundles such as ``Contents/Home``) and injected failures per
method.  Every contract call is recorded in ``call_log``.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Any

from jcvm.core.errors import InvalidVersion, VersionAlreadyInstalled, VersionNotFound
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
from jcvm.plugins.base import ToolPlugin, dedupe_by_resolved_path, link_external_installation

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-+.]([0-9A-Za-z.\-+]+))?$")


class MockToolPlugin(ToolPlugin):
    """Configurable mock plugin for testing.

    By default every operation succeeds.  Use ``set_failure`` to make a
    contract method raise.
    """

    def __init__(
        self,
        tool_id: str = "mock",
        *,
        remote_versions: list[str] | None = None,
        lts_versions: list[str] | None = None,
        detected: list[DetectedInstallation] | None = None,
        home_subdir: str | None = None,
        declares_home: bool = True,
        supported: bool = True,
    ):
        self._tool_id = tool_id
        self._remote = list(remote_versions or [])
        self._lts = set(lts_versions or [])
        self._detected = list(detected or [])
        self._home_subdir = home_subdir
        self._declares_home = declares_home
        self._supported = supported
        self._failures: dict[str, Exception] = {}
        self._call_log: list[tuple[str, Any]] = []

    # ── Test controls ───────────────────────────────────────────

    @property
    def call_log(self) -> list[tuple[str, Any]]:
        """(method, argument) pairs in call order."""
        return self._call_log

    def calls(self, method: str) -> list[Any]:
        """Arguments of every call to ``method``."""
        return [arg for name, arg in self._call_log if name == method]

    def set_failure(self, method: str, error: Exception) -> None:
        """Make ``method`` raise ``error`` on every call."""
        self._failures[method] = error

    def add_detected(self, installation: DetectedInstallation) -> None:
        self._detected.append(installation)

    def reset(self) -> None:
        """Clear call log and injected failures."""
        self._call_log.clear()
        self._failures.clear()

    def _record(self, method: str, arg: Any = None) -> None:
        self._call_log.append((method, arg))
        if method in self._failures:
            raise self._failures[method]

    def home_of(self, path: Path) -> Path:
        return path / self._home_subdir if self._home_subdir else path

    # ── ToolProvider ────────────────────────────────────────────

    def info(self) -> ToolInfo:
        # Injected failures apply, but info calls are not recorded
        if "info" in self._failures:
            raise self._failures["info"]
        return ToolInfo(
            id=self._tool_id,
            name=f"Mock {self._tool_id}",
            description="Test double tool",
        )

    def list_remote_versions(self, lts_only: bool = False) -> list[ToolVersion]:
        self._record("list_remote_versions", lts_only)
        versions = [self.parse_version(v) for v in self._remote]
        if lts_only:
            versions = [v for v in versions if v.is_lts]
        return sorted(versions, key=ToolVersion.sort_key, reverse=True)

    def find_distribution(
        self,
        version: ToolVersion,
        platform: Platform,
        arch: Architecture,
    ) -> ToolDistribution:
        self._record("find_distribution", version)
        if self._remote and version.raw not in self._remote:
            raise VersionNotFound(f"{self._tool_id}@{version.raw}")
        return ToolDistribution(
            tool_id=self._tool_id,
            version=version,
            platform=platform,
            architecture=arch,
            download_url=f"https://example.invalid/{self._tool_id}-{version.raw}.tar.gz",
            archive_type=ArchiveType.TAR_GZ,
        )

    def parse_version(self, version: str) -> ToolVersion:
        m = _VERSION_RE.match(version.strip())
        if not m:
            raise InvalidVersion(version)
        major, minor, patch, meta = m.groups()
        raw = version.strip()
        return ToolVersion(
            raw=raw,
            major=int(major),
            minor=int(minor) if minor is not None else None,
            patch=int(patch) if patch is not None else None,
            metadata=meta,
            is_lts=raw in self._lts,
        )

    def validate_installation(self, path: Path) -> bool:
        return (self.home_of(path) / "bin" / self._tool_id).is_file()

    def get_executable_paths(self, path: Path) -> list[Path]:
        return [self.home_of(path) / "bin" / self._tool_id]

    def get_environment_vars(self, path: Path) -> list[tuple[str, str]]:
        home = self.home_of(path)
        env = [("PATH", f"{home / 'bin'}:$PATH")]
        if self._declares_home:
            env.insert(0, (f"{self._tool_id.upper()}_HOME", str(home)))
        return env

    # ── ToolInstaller ───────────────────────────────────────────

    def install(self, distribution: ToolDistribution, dest_dir: Path) -> InstalledTool:
        self._record("install", distribution)
        if dest_dir.exists():
            raise VersionAlreadyInstalled(distribution.version.raw, str(dest_dir), distribution.tool_id)
        exe = self.make_layout(dest_dir)
        return InstalledTool(
            tool_id=self._tool_id,
            version=distribution.version,
            path=dest_dir,
            source="mock",
            executable_path=exe,
        )

    def uninstall(self, installed: InstalledTool) -> None:
        self._record("uninstall", installed)
        if installed.path.is_symlink():
            installed.path.unlink()
        elif installed.path.exists():
            shutil.rmtree(installed.path)

    def verify(self, installed: InstalledTool) -> bool:
        self._record("verify", installed)
        return self.validate_installation(installed.path)

    # ── ToolDetector ────────────────────────────────────────────

    def detect_installations(self) -> list[DetectedInstallation]:
        self._record("detect_installations")
        return dedupe_by_resolved_path(self._detected)

    def import_installation(self, detected: DetectedInstallation, dest_dir: Path) -> InstalledTool:
        self._record("import_installation", detected)
        return link_external_installation(detected, dest_dir)

    # ── ToolPlugin ──────────────────────────────────────────────

    def supports_platform(self, platform: Platform, arch: Architecture) -> bool:
        return self._supported

    # ── Helpers ─────────────────────────────────────────────────

    def make_layout(self, path: Path) -> Path:
        """Create a minimal valid installation tree at ``path``."""
        bin_dir = self.home_of(path) / "bin"
        bin_dir.mkdir(parents=True)
        exe = bin_dir / self._tool_id
        exe.write_text("#!/bin/sh\necho mock\n")
        exe.chmod(0o755)
        return exe

    def metadata(self) -> PluginMetadata:
        """Registration metadata matching this plugin."""
        return mock_metadata(self._tool_id)


def mock_metadata(tool_id: str = "mock") -> PluginMetadata:
    return PluginMetadata(
        id=tool_id,
        name=f"Mock {tool_id}",
        version="1.0.0",
        author="jcvm",
        platforms=list(Platform),
        architectures=list(Architecture),
        category=PluginCategory.TOOL,
    )
