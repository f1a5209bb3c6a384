"""
Configuration — where jcvm keeps its versions, aliases and cache.

The root directory is resolved in precedence order:
    explicit argument  >  JCVM_DIR env var  >  ~/.jcvm

Every other directory derives from the root.  Per-tool paths are built
here and nowhere else, so the on-disk layout lives in one place:

    <root>/versions/<tool>/<version>/      installed version
    <root>/versions/.metadata/             manifests for imported installs
    <root>/alias/<tool>/<name>             alias symlinks
    <root>/versions/<version>/             legacy layout (java only)
    <root>/alias/<name>                    legacy aliases (java only)
    <root>/cache/<tool>/                   downloaded archives
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from jcvm.core.errors import ConfigError, InvalidAliasName, InvalidVersion

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "~/.jcvm"
METADATA_DIR = ".metadata"

CURRENT_ALIAS = "current"
DEFAULT_ALIAS = "default"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _is_single_component(name: str) -> bool:
    """True if ``name`` is usable as one directory entry."""
    if not name or name in (".", ".."):
        return False
    if "/" in name or "\\" in name or "\0" in name:
        return False
    return True


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


class JcvmConfig(BaseModel):
    """Directory layout plus the few runtime knobs jcvm has."""

    root_dir: Path
    verify_checksums: bool = True
    cache_downloads: bool = True
    http_timeout: float = Field(default=30.0, gt=0)

    @field_validator("root_dir")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        # Alias symlinks store paths under the root verbatim, so it must be absolute
        return value.expanduser().absolute()

    @classmethod
    def for_root(cls, root: Path | str, **kwargs) -> JcvmConfig:
        """Config rooted at an explicit directory."""
        return cls(root_dir=Path(root), **kwargs)

    @classmethod
    def from_env(cls) -> JcvmConfig:
        """Config resolved from ``JCVM_*`` environment variables.

        Raises:
            ConfigError: If a variable holds an unusable value.
        """
        root = os.environ.get("JCVM_DIR") or DEFAULT_ROOT
        timeout_raw = os.environ.get("JCVM_HTTP_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else 30.0
        except ValueError as e:
            raise ConfigError(f"JCVM_HTTP_TIMEOUT must be a number, got {timeout_raw!r}") from e

        try:
            config = cls.for_root(
                root,
                verify_checksums=_env_bool("JCVM_VERIFY_CHECKSUMS", True),
                cache_downloads=_env_bool("JCVM_CACHE_DOWNLOADS", True),
                http_timeout=timeout,
            )
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Invalid jcvm configuration: {e}") from e

        logger.debug("Using jcvm root %s", config.root_dir)
        return config

    # ── Top-level directories ───────────────────────────────────

    @property
    def versions_dir(self) -> Path:
        return self.root_dir / "versions"

    @property
    def alias_dir(self) -> Path:
        return self.root_dir / "alias"

    @property
    def cache_dir(self) -> Path:
        return self.root_dir / "cache"

    @property
    def metadata_dir(self) -> Path:
        """Side store for manifests of symlinked (imported) installs."""
        return self.versions_dir / METADATA_DIR

    def ensure_dirs(self) -> None:
        """Create the top-level layout if missing."""
        for path in (self.root_dir, self.versions_dir, self.alias_dir, self.cache_dir):
            path.mkdir(parents=True, exist_ok=True)

    # ── Per-tool paths ──────────────────────────────────────────

    def tool_versions_dir(self, tool_id: str) -> Path:
        return self.versions_dir / tool_id

    def tool_version_dir(self, tool_id: str, version: str) -> Path:
        """Directory for one installed version.

        Raises:
            InvalidVersion: If ``version`` would escape the tool directory.
        """
        if not _is_single_component(version):
            raise InvalidVersion(version, "not usable as a directory name")
        return self.tool_versions_dir(tool_id) / version

    def tool_alias_dir(self, tool_id: str) -> Path:
        return self.alias_dir / tool_id

    def tool_alias_path(self, tool_id: str, alias: str) -> Path:
        """Path of a named alias symlink.

        Raises:
            InvalidAliasName: If ``alias`` is not a single path component.
        """
        if not _is_single_component(alias):
            raise InvalidAliasName(alias)
        return self.tool_alias_dir(tool_id) / alias

    def tool_current_symlink(self, tool_id: str) -> Path:
        return self.tool_alias_path(tool_id, CURRENT_ALIAS)

    def tool_default_symlink(self, tool_id: str) -> Path:
        return self.tool_alias_path(tool_id, DEFAULT_ALIAS)

    def tool_cache_dir(self, tool_id: str) -> Path:
        return self.cache_dir / tool_id

    def manifest_side_path(self, tool_id: str, version: str) -> Path:
        """Side-store manifest path for an imported install."""
        return self.metadata_dir / f"{tool_id}_{version}.json"

    # ── Legacy flat layout (java only) ──────────────────────────

    def legacy_version_dir(self, version: str) -> Path:
        if not _is_single_component(version):
            raise InvalidVersion(version, "not usable as a directory name")
        return self.versions_dir / version

    def legacy_alias_path(self, alias: str) -> Path:
        if not _is_single_component(alias):
            raise InvalidAliasName(alias)
        return self.alias_dir / alias
