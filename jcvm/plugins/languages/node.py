"""
Node.js plugin — official builds from nodejs.org/dist.

Version strings may carry a leading ``v`` (``v20.10.0``), which is
dropped.  Release aliases such as ``lts`` or ``latest`` are rejected:
they name a moving target, not a directory.  LTS lines carry their
codename as metadata (``lts:Iron``).
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

NODEJS_DIST = "https://nodejs.org/dist"

LTS_CODENAMES: dict[int, str] = {
    14: "Fermium",
    16: "Gallium",
    18: "Hydrogen",
    20: "Iron",
    22: "Jod",
}

RELEASE_ALIASES = frozenset({"lts", "lts/*", "latest", "current", "node", "stable"})

VERSION_FILES = (".nvmrc", ".node-version")

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?$")

_OS_NAMES = {
    Platform.MAC: "darwin",
    Platform.LINUX: "linux",
    Platform.WINDOWS: "win",
}

_ARCH_NAMES = {
    Architecture.X64: "x64",
    Architecture.AARCH64: "arm64",
    Architecture.X86: "x86",
    Architecture.ARM: "armv7l",
}

_COMMON_BIN_DIRS = (
    "/usr/local/bin",
    "/usr/bin",
    "/opt/homebrew/bin",
    "/opt/nodejs/bin",
    "/usr/lib/nodejs/bin",
)


def read_version_file(directory: Path) -> str | None:
    """Version requested by ``.nvmrc`` or ``.node-version`` in ``directory``.

    The first non-empty line of the first file found wins; a leading
    ``v`` is stripped.
    """
    for name in VERSION_FILES:
        path = directory / name
        if not path.is_file():
            continue
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            continue
        for line in lines:
            value = line.strip()
            if value and not value.startswith("#"):
                return value.removeprefix("v")
    return None


def parse_shasums(text: str) -> dict[str, str]:
    """``SHASUMS256.txt`` body → {file name: sha256}."""
    sums = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) == 2:
            sums[parts[1]] = parts[0]
    return sums


class NodePlugin(ArchiveToolPlugin):
    """Node.js runtimes via nodejs.org/dist."""

    SUPPORTED = frozenset({
        (Platform.MAC, Architecture.X64),
        (Platform.MAC, Architecture.AARCH64),
        (Platform.LINUX, Architecture.X64),
        (Platform.LINUX, Architecture.AARCH64),
        (Platform.LINUX, Architecture.ARM),
        (Platform.WINDOWS, Architecture.X64),
        (Platform.WINDOWS, Architecture.X86),
        (Platform.WINDOWS, Architecture.AARCH64),
    })

    def info(self) -> ToolInfo:
        return ToolInfo(
            id="node",
            name="Node.js",
            description="JavaScript runtime built on Chrome's V8 engine",
            homepage="https://nodejs.org",
            docs_url="https://nodejs.org/docs/latest/api/",
        )

    # ── Versions ────────────────────────────────────────────────

    def parse_version(self, version: str) -> ToolVersion:
        value = version.strip()
        if value.lower() in RELEASE_ALIASES:
            raise InvalidVersion(version, "release aliases are not supported, use an explicit version")
        value = value.removeprefix("v")
        m = _VERSION_RE.match(value)
        if not m:
            raise InvalidVersion(version)

        major = int(m.group(1))
        parsed = ToolVersion(
            raw=value,
            major=major,
            minor=int(m.group(2)) if m.group(2) is not None else None,
            patch=int(m.group(3)) if m.group(3) is not None else None,
            is_lts=major in LTS_CODENAMES,
        )
        if major in LTS_CODENAMES:
            parsed = parsed.with_metadata(f"lts:{LTS_CODENAMES[major]}")
        return parsed

    def _release_index(self) -> list[dict]:
        data = download.fetch_json(f"{NODEJS_DIST}/index.json", timeout=self.config.http_timeout)
        if not isinstance(data, list):
            raise PluginError("node", "unexpected release index format")
        return data

    def list_remote_versions(self, lts_only: bool = False) -> list[ToolVersion]:
        versions = []
        for release in self._release_index():
            try:
                version = self.parse_version(release["version"])
            except (KeyError, InvalidVersion):
                continue
            lts = release.get("lts")
            if isinstance(lts, str) and lts:
                version = version.with_lts(True).with_metadata(f"lts:{lts}")
            if lts_only and not version.is_lts:
                continue
            versions.append(version)
        return sorted(versions, key=ToolVersion.sort_key, reverse=True)

    def _resolve_full_version(self, version: ToolVersion) -> str:
        """Newest released version matching a partial one (``20`` → ``20.x.y``)."""
        if version.patch is not None:
            return version.raw
        candidates = [
            v for v in self.list_remote_versions()
            if v.major == version.major and (version.minor is None or v.minor == version.minor)
        ]
        if not candidates:
            raise VersionNotFound(f"node@{version.raw}")
        return candidates[0].raw

    def find_distribution(
        self,
        version: ToolVersion,
        platform: Platform,
        arch: Architecture,
    ) -> ToolDistribution:
        if not self.supports_platform(platform, arch):
            raise UnsupportedPlatform(str(platform), str(arch), "node")

        full = self._resolve_full_version(version)
        ext = "zip" if platform is Platform.WINDOWS else "tar.gz"
        file_name = f"node-v{full}-{_OS_NAMES[platform]}-{_ARCH_NAMES[arch]}.{ext}"

        sums = parse_shasums(download.fetch_text(
            f"{NODEJS_DIST}/v{full}/SHASUMS256.txt",
            timeout=self.config.http_timeout,
        ))
        if file_name not in sums:
            raise VersionNotFound(f"node@{version.raw}")

        metadata = {"source": "nodejs.org", "release": full}
        if version.is_lts and version.metadata:
            metadata["lts_name"] = version.metadata.removeprefix("lts:")

        return ToolDistribution(
            tool_id="node",
            version=version,
            platform=platform,
            architecture=arch,
            download_url=f"{NODEJS_DIST}/v{full}/{file_name}",
            checksum=sums[file_name],
            archive_type=ArchiveType.ZIP if ext == "zip" else ArchiveType.TAR_GZ,
            metadata=metadata,
        )

    # ── Layout ──────────────────────────────────────────────────

    def get_executable_paths(self, path: Path) -> list[Path]:
        return [path / "bin" / "node", path / "node.exe"]

    def get_environment_vars(self, path: Path) -> list[tuple[str, str]]:
        bin_dir = path if (path / "node.exe").is_file() else path / "bin"
        return [
            ("NODE_HOME", str(path)),
            ("PATH", prepend_path(bin_dir)),
        ]

    # ── Detection ───────────────────────────────────────────────

    def detect_installations(self) -> list[DetectedInstallation]:
        candidates: list[tuple[Path, str]] = []

        for bin_dir in _COMMON_BIN_DIRS:
            node = Path(bin_dir) / "node"
            if node.is_file():
                candidates.append((node.resolve().parent.parent, "system"))

        node_bin = shutil.which("node")
        if node_bin:
            candidates.append((Path(node_bin).resolve().parent.parent, "path"))

        nvm_dir = Path(os.environ.get("NVM_DIR") or Path.home() / ".nvm")
        nvm_versions = nvm_dir / "versions" / "node"
        if nvm_versions.is_dir():
            candidates += [(p, "nvm") for p in sorted(nvm_versions.iterdir()) if p.is_dir()]

        node_home = os.environ.get("NODE_HOME")
        if node_home:
            candidates.append((Path(node_home), "NODE_HOME"))

        found = []
        for path, source in candidates:
            inst = self._inspect(path, source)
            if inst is not None:
                found.append(inst)
        return dedupe_by_resolved_path(found)

    def _inspect(self, path: Path, source: str) -> DetectedInstallation | None:
        exe = self.primary_executable(path)
        if exe is None:
            return None
        raw = probe_version([str(exe), "--version"], r"v(\d+\.\d+\.\d+)")
        if raw is None:
            return None
        return DetectedInstallation(
            tool_id="node",
            version=self.parse_version(raw),
            path=path,
            source=source,
            executable_path=exe,
        )


def node_metadata() -> PluginMetadata:
    return PluginMetadata(
        id="node",
        name="Node.js",
        version="1.0.0",
        author="jcvm",
        platforms=[Platform.MAC, Platform.LINUX, Platform.WINDOWS],
        architectures=[Architecture.X64, Architecture.AARCH64, Architecture.X86, Architecture.ARM],
        category=PluginCategory.RUNTIME,
        builtin=True,
    )
