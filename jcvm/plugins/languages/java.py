"""
Java plugin — Eclipse Temurin JDKs from the Adoptium API.

Versions look like ``21``, ``17.0.10`` or ``11.0.22+7`` (the part after
``+`` is the build number).  macOS bundles keep the real home under
``Contents/Home``; ``JAVA_HOME`` and all aliases point there.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from jcvm.core.errors import InvalidVersion, PluginError, UnsupportedPlatform, VersionNotFound
from jcvm.core.models.plugin import PluginCategory, PluginMetadata
from jcvm.core.models.tool import (
    Architecture,
    ArchiveType,
    DetectedInstallation,
    Platform,
    ToolDistribution,
    ToolInfo,
    ToolVersion,
)
from jcvm.core.services import download
from jcvm.plugins.base import dedupe_by_resolved_path, prepend_path, probe_version
from jcvm.plugins.languages.archive import ArchiveToolPlugin

logger = logging.getLogger(__name__)

ADOPTIUM_API = "https://api.adoptium.net/v3"

LTS_MAJORS = frozenset({8, 11, 17, 21, 25})

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[.+]([0-9A-Za-z.\-]+))?$")
_JAVA_VERSION_OUTPUT_RE = r'version "([^"]+)"'

_MAC_BUNDLE_HOME = Path("Contents") / "Home"

_COMMON_DIRS = (
    "/usr/lib/jvm",
    "/usr/local/jvm",
    "/opt/java",
    "/opt/jdk",
    "/Library/Java/JavaVirtualMachines",
    "/System/Library/Java/JavaVirtualMachines",
)


def normalize_java_version(value: str) -> str:
    """Turn ``java -version`` strings into jcvm version names.

    ``1.8.0_392`` → ``8.0.392``; modern strings pass through.
    """
    value = value.strip()
    if value.startswith("1."):
        parts = re.split(r"[._]", value)
        if len(parts) >= 2:
            return ".".join(parts[1:])
    return value


class JavaPlugin(ArchiveToolPlugin):
    """Temurin JDKs via api.adoptium.net."""

    SUPPORTED = frozenset({
        (Platform.MAC, Architecture.X64),
        (Platform.MAC, Architecture.AARCH64),
        (Platform.LINUX, Architecture.X64),
        (Platform.LINUX, Architecture.AARCH64),
        (Platform.WINDOWS, Architecture.X64),
    })

    def info(self) -> ToolInfo:
        return ToolInfo(
            id="java",
            name="Java",
            description="Java Development Kit (Eclipse Temurin)",
            homepage="https://adoptium.net",
            docs_url="https://docs.oracle.com/en/java/",
        )

    # ── Versions ────────────────────────────────────────────────

    def parse_version(self, version: str) -> ToolVersion:
        m = _VERSION_RE.match(version.strip())
        if not m:
            raise InvalidVersion(version)
        major, minor, patch, build = m.groups()
        parsed = ToolVersion(
            raw=version.strip(),
            major=int(major),
            minor=int(minor) if minor is not None else None,
            patch=int(patch) if patch is not None else None,
            is_lts=int(major) in LTS_MAJORS,
        )
        return parsed.with_metadata(build) if build else parsed

    def list_remote_versions(self, lts_only: bool = False) -> list[ToolVersion]:
        data = download.fetch_json(
            f"{ADOPTIUM_API}/info/available_releases",
            timeout=self.config.http_timeout,
        )
        key = "available_lts_releases" if lts_only else "available_releases"
        try:
            majors = [int(m) for m in data[key]]
        except (KeyError, TypeError, ValueError) as e:
            raise PluginError("java", f"unexpected Adoptium response: {e}") from e

        versions = [self.parse_version(str(m)) for m in majors]
        return sorted(versions, key=ToolVersion.sort_key, reverse=True)

    def find_distribution(
        self,
        version: ToolVersion,
        platform: Platform,
        arch: Architecture,
    ) -> ToolDistribution:
        """Latest Temurin JDK build for ``version.major``."""
        if not self.supports_platform(platform, arch):
            raise UnsupportedPlatform(str(platform), str(arch), "java")

        url = (
            f"{ADOPTIUM_API}/assets/latest/{version.major}/hotspot"
            f"?os={platform}&architecture={arch}&image_type=jdk&vendor=eclipse"
        )
        assets = download.fetch_json(url, timeout=self.config.http_timeout)

        for asset in assets or []:
            binary = asset.get("binary", {})
            if (
                binary.get("os") != str(platform)
                or binary.get("architecture") != str(arch)
                or binary.get("image_type") != "jdk"
            ):
                continue
            package = binary.get("package") or {}
            link = package.get("link")
            if not link:
                continue
            release = asset.get("release_name", "")
            if version.minor is not None and release:
                logger.info("Installing latest Temurin %s build (%s) for %s", version.major, release, version.raw)
            return ToolDistribution(
                tool_id="java",
                version=version,
                platform=platform,
                architecture=arch,
                download_url=link,
                checksum=package.get("checksum"),
                size=package.get("size"),
                archive_type=ArchiveType.from_url(link),
                metadata={"source": "adoptium", "release_name": release},
            )

        raise VersionNotFound(f"java@{version.raw}")

    # ── Layout ──────────────────────────────────────────────────

    def java_home(self, path: Path) -> Path:
        bundle = path / _MAC_BUNDLE_HOME
        return bundle if bundle.is_dir() else path

    def get_executable_paths(self, path: Path) -> list[Path]:
        home = self.java_home(path)
        return [home / "bin" / "java", home / "bin" / "java.exe"]

    def get_environment_vars(self, path: Path) -> list[tuple[str, str]]:
        home = self.java_home(path)
        return [
            ("JAVA_HOME", str(home)),
            ("PATH", prepend_path(home / "bin")),
        ]

    # ── Detection ───────────────────────────────────────────────

    def detect_installations(self) -> list[DetectedInstallation]:
        candidates: list[Path] = []

        for root in _COMMON_DIRS:
            base = Path(root)
            if base.is_dir():
                candidates += sorted(p for p in base.iterdir() if p.is_dir())

        java_bin = shutil.which("java")
        if java_bin:
            # <home>/bin/java
            candidates.append(Path(java_bin).resolve().parent.parent)

        java_home = os.environ.get("JAVA_HOME")
        if java_home:
            candidates.append(Path(java_home))

        found = []
        for path in candidates:
            inst = self._inspect(path)
            if inst is not None:
                found.append(inst)
        return dedupe_by_resolved_path(found)

    def _inspect(self, path: Path) -> DetectedInstallation | None:
        # Bundles are recorded at the .jdk level so Contents/Home stays the home
        if path.name == "Home" and path.parent.name == "Contents":
            path = path.parent.parent
        exe = self.primary_executable(path)
        if exe is None:
            return None
        raw = probe_version([str(exe), "-version"], _JAVA_VERSION_OUTPUT_RE)
        if raw is None:
            return None
        try:
            version = self.parse_version(normalize_java_version(raw))
        except InvalidVersion:
            logger.debug("Skipping %s: unparseable version %r", path, raw)
            return None
        return DetectedInstallation(
            tool_id="java",
            version=version,
            path=path,
            source="system",
            executable_path=exe,
        )


def java_metadata() -> PluginMetadata:
    return PluginMetadata(
        id="java",
        name="Java",
        version="1.0.0",
        author="jcvm",
        platforms=[Platform.MAC, Platform.LINUX, Platform.WINDOWS],
        architectures=[Architecture.X64, Architecture.AARCH64],
        category=PluginCategory.LANGUAGE,
        builtin=True,
    )
