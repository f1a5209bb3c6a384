"""
Version resolution — turning a (tool, version string) into a directory.

Order of precedence:

    1. exact       <versions>/<tool>/<version> exists
    2. prefix      highest parseable entry whose name starts with <version>
    3. legacy      <versions>/<version> exists (java only)

Anything else is ``VersionNotFound("<tool>@<version>")``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from jcvm.core.config.settings import METADATA_DIR, JcvmConfig
from jcvm.core.errors import InvalidVersion, JcvmError, VersionNotFound
from jcvm.core.models.tool import ToolVersion
from jcvm.plugins.base import ToolPlugin

logger = logging.getLogger(__name__)

LEGACY_TOOL = "java"

# Per-tool directories that share <versions>/ with legacy java versions
LEGACY_SKIP = frozenset({"java", "node", "python", METADATA_DIR})


def _exists(path: Path) -> bool:
    # Dangling imports still count so they can be uninstalled.
    return path.exists() or path.is_symlink()


def iter_version_entries(versions_root: Path) -> list[Path]:
    """Directory and symlink entries directly under a versions dir."""
    if not versions_root.is_dir():
        return []
    entries = []
    for entry in versions_root.iterdir():
        if entry.name == METADATA_DIR:
            continue
        if entry.is_dir() or entry.is_symlink():
            entries.append(entry)
    return entries


def find_matching_version(
    config: JcvmConfig,
    plugin: ToolPlugin,
    tool_id: str,
    prefix: str,
) -> str | None:
    """Raw name of the highest installed version starting with ``prefix``.

    Entries whose name the plugin cannot parse are ignored.
    """
    candidates: list[ToolVersion] = []
    for entry in iter_version_entries(config.tool_versions_dir(tool_id)):
        if not entry.name.startswith(prefix):
            continue
        try:
            candidates.append(plugin.parse_version(entry.name))
        except InvalidVersion:
            continue

    if not candidates:
        return None

    best = max(candidates, key=ToolVersion.sort_key)
    logger.debug("Resolved %s@%s to %s", tool_id, prefix, best.raw)
    return best.raw


def resolve_install_dir(
    config: JcvmConfig,
    plugin: ToolPlugin,
    tool_id: str,
    version: str,
) -> Path:
    """Installation directory for ``tool_id`` at ``version``.

    Raises:
        VersionNotFound: If no strategy finds an existing directory.
    """
    try:
        primary = config.tool_version_dir(tool_id, version)
    except JcvmError:
        raise VersionNotFound(f"{tool_id}@{version}") from None
    if _exists(primary):
        return primary

    matched = find_matching_version(config, plugin, tool_id, version)
    if matched is not None:
        matched_path = config.tool_version_dir(tool_id, matched)
        if _exists(matched_path):
            return matched_path

    if tool_id == LEGACY_TOOL and version not in LEGACY_SKIP:
        legacy = config.legacy_version_dir(version)
        if legacy.is_dir():
            return legacy

    raise VersionNotFound(f"{tool_id}@{version}")
