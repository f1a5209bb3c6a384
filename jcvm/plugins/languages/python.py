"""
Python plugin — relocatable CPython builds.

Available versions are read from the python.org FTP directory listing.
Installs use python-build-standalone ``install_only`` archives, which
unpack into a self-contained prefix (``bin/python3``, ``lib/``) and need
no compiler on the host.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from jcvm.core.errors import (
    DownloadFailed,
    InvalidVersion,
    PluginError,
    UnsupportedPlatform,
    VersionNotFound,
)
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

PYTHON_ORG_FTP = "https://www.python.org/ftp/python"
STANDALONE_RELEASES = "https://api.github.com/repos/astral-sh/python-build-standalone/releases"

VERSION_FILE = ".python-version"

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?$")
_FTP_DIR_RE = re.compile(r"""href=["'](\d+\.\d+(?:\.\d+)?)/["']""")

_TARGET_TRIPLES = {
    (Platform.MAC, Architecture.X64): "x86_64-apple-darwin",
    (Platform.MAC, Architecture.AARCH64): "aarch64-apple-darwin",
    (Platform.LINUX, Architecture.X64): "x86_64-unknown-linux-gnu",
    (Platform.LINUX, Architecture.AARCH64): "aarch64-unknown-linux-gnu",
    (Platform.WINDOWS, Architecture.X64): "x86_64-pc-windows-msvc",
    (Platform.WINDOWS, Architecture.X86): "i686-pc-windows-msvc",
}


def read_version_file(directory: Path) -> str | None:
    """First version named in ``.python-version``, if present."""
    path = directory / VERSION_FILE
    if not path.is_file():
        return None
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            value = line.strip()
            if value and not value.startswith("#"):
                return value
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
    return None


def parse_ftp_listing(html: str) -> list[str]:
    """Version directory names from the python.org FTP index page."""
    return _FTP_DIR_RE.findall(html)


class PythonPlugin(ArchiveToolPlugin):
    """CPython interpreters via python-build-standalone."""

    SUPPORTED = frozenset(_TARGET_TRIPLES)

    def info(self) -> ToolInfo:
        return ToolInfo(
            id="python",
            name="Python",
            description="CPython interpreter",
            homepage="https://www.python.org",
            docs_url="https://docs.python.org/3/",
        )

    # ── Versions ────────────────────────────────────────────────

    def parse_version(self, version: str) -> ToolVersion:
        value = version.strip()
        m = _VERSION_RE.match(value)
        if not m:
            raise InvalidVersion(version)
        return ToolVersion(
            raw=value,
            major=int(m.group(1)),
            minor=int(m.group(2)) if m.group(2) is not None else None,
            patch=int(m.group(3)) if m.group(3) is not None else None,
        )

    def list_remote_versions(self, lts_only: bool = False) -> list[ToolVersion]:
        """Released 2.7+ and 3.x versions; CPython has no LTS line."""
        if lts_only:
            return []
        html = download.fetch_text(f"{PYTHON_ORG_FTP}/", timeout=self.config.http_timeout)

        versions: dict[str, ToolVersion] = {}
        for name in parse_ftp_listing(html):
            v = self.parse_version(name)
            if v.major == 3 or (v.major == 2 and (v.minor or 0) >= 7):
                versions[v.raw] = v

        if not versions:
            raise PluginError("python", "no Python versions found on python.org FTP")
        return sorted(versions.values(), key=ToolVersion.sort_key, reverse=True)

    def find_distribution(
        self,
        version: ToolVersion,
        platform: Platform,
        arch: Architecture,
    ) -> ToolDistribution:
        """``install_only`` standalone build for an exact ``X.Y.Z`` version."""
        triple = _TARGET_TRIPLES.get((platform, arch))
        if triple is None:
            raise UnsupportedPlatform(str(platform), str(arch), "python")
        if version.patch is None:
            raise VersionNotFound(f"python@{version.raw} (use a full X.Y.Z version)")

        releases = download.fetch_json(STANDALONE_RELEASES, timeout=self.config.http_timeout)
        prefix = f"cpython-{version.raw}+"
        suffix = f"-{triple}-install_only.tar.gz"

        for release in releases or []:
            for asset in release.get("assets", []):
                name = asset.get("name", "")
                if not (name.startswith(prefix) and name.endswith(suffix)):
                    continue
                url = asset["browser_download_url"]
                return ToolDistribution(
                    tool_id="python",
                    version=version,
                    platform=platform,
                    architecture=arch,
                    download_url=url,
                    checksum=self._fetch_checksum(url),
                    size=asset.get("size"),
                    archive_type=ArchiveType.TAR_GZ,
                    metadata={
                        "source": "python-build-standalone",
                        "release_tag": release.get("tag_name", ""),
                    },
                )

        raise VersionNotFound(f"python@{version.raw}")

    def _fetch_checksum(self, url: str) -> str | None:
        try:
            text = download.fetch_text(f"{url}.sha256", timeout=self.config.http_timeout)
        except DownloadFailed as e:
            logger.warning("No checksum published for %s: %s", url, e)
            return None
        parts = text.split()
        return parts[0] if parts else None

    # ── Layout ──────────────────────────────────────────────────

    def get_executable_paths(self, path: Path) -> list[Path]:
        return [path / "bin" / "python3", path / "bin" / "python", path / "python.exe"]

    def get_environment_vars(self, path: Path) -> list[tuple[str, str]]:
        if (path / "python.exe").is_file():
            return [
                ("PYTHON_HOME", str(path)),
                ("PATH", prepend_path(path)),
            ]
        return [
            ("PYTHON_HOME", str(path)),
            ("PATH", prepend_path(path / "bin")),
            ("LD_LIBRARY_PATH", prepend_path(path / "lib", "LD_LIBRARY_PATH")),
        ]

    # ── Detection ───────────────────────────────────────────────

    def detect_installations(self) -> list[DetectedInstallation]:
        candidates: list[tuple[Path, str]] = []

        pyenv_root = Path(os.environ.get("PYENV_ROOT") or Path.home() / ".pyenv")
        pyenv_versions = pyenv_root / "versions"
        if pyenv_versions.is_dir():
            candidates += [(p, "pyenv") for p in sorted(pyenv_versions.iterdir()) if p.is_dir()]

        framework = Path("/Library/Frameworks/Python.framework/Versions")
        if framework.is_dir():
            candidates += [
                (p, "python.org")
                for p in sorted(framework.iterdir())
                if p.is_dir() and not p.is_symlink()
            ]

        for brew_opt in (Path("/opt/homebrew/opt"), Path("/usr/local/opt")):
            if brew_opt.is_dir():
                candidates += [
                    (p.resolve(), "homebrew")
                    for p in sorted(brew_opt.glob("python@*"))
                ]

        python_bin = shutil.which("python3")
        if python_bin:
            candidates.append((Path(python_bin).resolve().parent.parent, "path"))

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
        raw = probe_version([str(exe), "--version"], r"Python\s+(\d+\.\d+\.\d+)")
        if raw is None:
            return None
        return DetectedInstallation(
            tool_id="python",
            version=self.parse_version(raw),
            path=path,
            source=source,
            executable_path=exe,
        )


def python_metadata() -> PluginMetadata:
    return PluginMetadata(
        id="python",
        name="Python",
        version="1.0.0",
        author="jcvm",
        platforms=[Platform.MAC, Platform.LINUX, Platform.WINDOWS],
        architectures=[Architecture.X64, Architecture.AARCH64, Architecture.X86],
        category=PluginCategory.LANGUAGE,
        builtin=True,
    )
