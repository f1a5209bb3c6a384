"""
Tool manager — install, activate and track tool versions.

The manager is the only component that touches the shared layout under
the jcvm root: version directories, alias symlinks and manifests.  All
tool-specific work (downloads, validation, environment) is delegated to
the tool's plugin, looked up in the registry on every call.

Single-target operations (install, uninstall, activate, alias) raise on
failure.  Cross-tool sweeps (``detect_all``, ``detect_and_import_all``)
catch failures per tool and per installation and report them in a
``ToolSweepResult`` instead.

Nothing is cached: every query re-reads the filesystem, so symlinks or
directories changed behind jcvm's back are picked up immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from jcvm.core.config.settings import CURRENT_ALIAS, DEFAULT_ALIAS, JcvmConfig
from jcvm.core.errors import (
    InvalidToolStructure,
    InvalidVersion,
    PluginNotFound,
    ToolNotFound,
    UnsupportedPlatform,
    VersionAlreadyInstalled,
)
from jcvm.core.models.installation import (
    ActivationContext,
    ManagedInstallation,
    ToolSweepResult,
)
from jcvm.core.models.plugin import PluginMetadata
from jcvm.core.models.tool import (
    Architecture,
    DetectedInstallation,
    InstalledTool,
    Platform,
    ToolVersion,
)
from jcvm.core.persistence.manifest import ManifestStore
from jcvm.core.services.platform import detect_platform
from jcvm.core.services.tool_manager.aliases import (
    extract_home_path,
    links_point_to,
    remove_link,
    replace_symlink,
    symlink_target,
    target_matches,
)
from jcvm.core.services.tool_manager.resolution import (
    LEGACY_SKIP,
    LEGACY_TOOL,
    iter_version_entries,
    resolve_install_dir,
)
from jcvm.plugins.base import ToolPlugin
from jcvm.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

PlatformProbe = Callable[[], tuple[Platform, Architecture]]


class ToolManager:
    """Lifecycle operations for every registered tool.

    Args:
        config: Directory layout and runtime settings.
        registry: Registered tool plugins.
        platform_probe: Returns the host (platform, arch); defaults to
            probing the running interpreter.
    """

    def __init__(
        self,
        config: JcvmConfig,
        registry: PluginRegistry,
        platform_probe: PlatformProbe | None = None,
    ):
        self._config = config
        self._registry = registry
        self._manifests = ManifestStore(config)
        self._platform_probe = platform_probe or detect_platform

    @property
    def config(self) -> JcvmConfig:
        return self._config

    @property
    def registry(self) -> PluginRegistry:
        return self._registry

    @property
    def manifests(self) -> ManifestStore:
        return self._manifests

    def metadata(self, tool_id: str) -> PluginMetadata:
        try:
            return self._registry.get_metadata(tool_id)
        except PluginNotFound:
            raise ToolNotFound(tool_id) from None

    def list_remote_versions(self, tool_id: str, lts_only: bool = False) -> list[ToolVersion]:
        """Versions the tool's provider offers for download."""
        return self._plugin(tool_id).list_remote_versions(lts_only)

    # ── Install / uninstall ─────────────────────────────────────

    def install(self, tool_id: str, version: str, force: bool = False) -> InstalledTool:
        """Download and install one version, then record its manifest.

        Args:
            tool_id: Registered tool id.
            version: Version string; parsed by the tool's plugin.
            force: Replace an existing installation of the same version.

        Raises:
            ToolNotFound: Unknown tool.
            InvalidVersion: The plugin cannot parse ``version``.
            VersionAlreadyInstalled: Destination exists and ``force`` is off.
            UnsupportedPlatform: The plugin rejects the host platform.
        """
        plugin = self._plugin(tool_id)
        parsed = plugin.parse_version(version)
        dest_dir = self._config.tool_version_dir(tool_id, parsed.raw)

        if dest_dir.exists() or dest_dir.is_symlink():
            if not force:
                raise VersionAlreadyInstalled(parsed.raw, str(dest_dir), tool_id)
            logger.info("Reinstalling %s %s (force)", tool_id, parsed.raw)
            self.uninstall(tool_id, parsed.raw)

        dest_dir.parent.mkdir(parents=True, exist_ok=True)

        platform, arch = self._platform_probe()
        if not plugin.supports_platform(platform, arch):
            raise UnsupportedPlatform(str(platform), str(arch), tool_id)

        distribution = plugin.find_distribution(parsed, platform, arch)
        logger.info("Installing %s %s from %s", tool_id, parsed.raw, distribution.download_url)
        installed = plugin.install(distribution, dest_dir)
        self._manifests.write(installed)
        return installed

    def uninstall(self, tool_id: str, version: str) -> None:
        """Remove an installed version, its manifest and every alias to it.

        Raises:
            VersionNotFound: Nothing installed matches ``version``.
            InvalidToolStructure: No manifest and the directory name does
                not parse as a version.
        """
        plugin = self._plugin(tool_id)
        install_dir = resolve_install_dir(self._config, plugin, tool_id, version)
        installed = self._load_installed(plugin, tool_id, install_dir, "uninstall")

        plugin.uninstall(installed)
        self._manifests.remove(tool_id, installed.version.raw, install_dir)
        self._cleanup_aliases(tool_id, install_dir)
        logger.info("Uninstalled %s %s", tool_id, installed.version.raw)

    def verify(self, tool_id: str, version: str) -> bool:
        """Ask the plugin whether an installed version is still intact."""
        plugin = self._plugin(tool_id)
        install_dir = resolve_install_dir(self._config, plugin, tool_id, version)
        installed = self._load_installed(plugin, tool_id, install_dir, "verify")
        return plugin.verify(installed)

    # ── Detection / import ──────────────────────────────────────

    def detect_tool_installations(self, tool_id: str) -> list[DetectedInstallation]:
        return self._plugin(tool_id).detect_installations()

    def import_tool_installation(self, tool_id: str, detected: DetectedInstallation) -> InstalledTool:
        """Bring a detected installation under management.

        Raises:
            VersionAlreadyInstalled: The version directory already exists.
        """
        plugin = self._plugin(tool_id)
        dest_dir = self._config.tool_version_dir(tool_id, detected.version.raw)
        return self._import(plugin, tool_id, detected, dest_dir)

    def detect_all(self) -> list[ToolSweepResult]:
        """Run every plugin's detector; never raises for a single tool."""
        return [self._detect_one(tool_id)[0] for tool_id in self._tool_ids()]

    def detect_and_import_all(self) -> list[ToolSweepResult]:
        """Detect and import everything not yet managed, tool by tool.

        Installations whose version directory already exists count as
        ``already_managed``; import failures count as ``failed``.
        """
        results = []
        for tool_id in self._tool_ids():
            result, plugin = self._detect_one(tool_id)
            results.append(result)
            if plugin is None:
                continue
            for detected in result.installations:
                try:
                    dest_dir = self._config.tool_version_dir(tool_id, detected.version.raw)
                    if dest_dir.exists() or dest_dir.is_symlink():
                        result.already_managed += 1
                        continue
                    self._import(plugin, tool_id, detected, dest_dir)
                    result.imported += 1
                except Exception as e:
                    logger.warning(
                        "Import of %s %s from %s failed: %s",
                        tool_id, detected.version.raw, detected.path, e,
                    )
                    result.failed += 1
        return results

    # ── Activation / aliases ────────────────────────────────────

    def set_current(self, tool_id: str, version: str) -> ActivationContext:
        """Make ``version`` the current one and return its environment.

        Raises:
            VersionNotFound: Nothing installed matches ``version``.
            InvalidToolStructure: The installation fails validation, or has
                no manifest and an unparseable directory name.
        """
        plugin = self._plugin(tool_id)
        install_dir = resolve_install_dir(self._config, plugin, tool_id, version)

        if not plugin.validate_installation(install_dir):
            raise InvalidToolStructure(tool_id, f"Installation at {install_dir} failed validation")

        home_path, env = self._load_env(plugin, install_dir)
        self._write_alias(tool_id, CURRENT_ALIAS, home_path)

        installed = self._load_installed(plugin, tool_id, install_dir, "activate")
        logger.info("Activated %s %s", tool_id, installed.version.raw)

        return ActivationContext(
            tool_id=tool_id,
            tool_info=plugin.info(),
            version=installed.version,
            install_path=install_dir,
            home_path=home_path,
            env=env,
        )

    def set_alias(self, tool_id: str, alias: str, version: str) -> None:
        """Point ``alias`` at the home path of an installed version."""
        plugin = self._plugin(tool_id)
        install_dir = resolve_install_dir(self._config, plugin, tool_id, version)
        home_path, _env = self._load_env(plugin, install_dir)
        self._write_alias(tool_id, alias, home_path)

    def delete_alias(self, tool_id: str, alias: str) -> None:
        """Remove an alias; a missing alias is not an error."""
        remove_link(self._config.tool_alias_path(tool_id, alias))
        if tool_id == LEGACY_TOOL:
            legacy = self._config.legacy_alias_path(alias)
            if legacy.is_symlink():
                try:
                    remove_link(legacy)
                except OSError as e:
                    logger.warning("Could not remove legacy alias %s: %s", legacy, e)

    def get_alias(self, tool_id: str, alias: str) -> str | None:
        """Raw version an alias points at, or None."""
        links = [self._config.tool_alias_path(tool_id, alias)]
        if tool_id == LEGACY_TOOL:
            links.append(self._config.legacy_alias_path(alias))

        installs: list[ManagedInstallation] | None = None
        for link in links:
            target = symlink_target(link)
            if target is None:
                continue
            if installs is None:
                installs = self.list_installed(tool_id)
            found = self._match_target(target, installs)
            if found is not None:
                return found
        return None

    def list_aliases(self, tool_id: str) -> dict[str, str | None]:
        """Every alias of a tool mapped to its version (None if dangling)."""
        self._plugin(tool_id)
        links: dict[str, Path] = {}
        alias_root = self._config.tool_alias_dir(tool_id)
        if alias_root.is_dir():
            for entry in sorted(alias_root.iterdir()):
                if entry.is_symlink():
                    links[entry.name] = entry
        if tool_id == LEGACY_TOOL and self._config.alias_dir.is_dir():
            for entry in sorted(self._config.alias_dir.iterdir()):
                if entry.is_symlink():
                    links.setdefault(entry.name, entry)

        if not links:
            return {}

        installs = self.list_installed(tool_id)
        aliases: dict[str, str | None] = {}
        for name in sorted(links):
            target = symlink_target(links[name])
            aliases[name] = self._match_target(target, installs) if target else None
        return aliases

    def get_current(self, tool_id: str) -> str | None:
        for inst in self.list_installed(tool_id):
            if inst.is_current:
                return inst.version.raw
        return None

    def get_default(self, tool_id: str) -> str | None:
        for inst in self.list_installed(tool_id):
            if inst.is_default:
                return inst.version.raw
        return None

    # ── Listing ─────────────────────────────────────────────────

    def list_installed(self, tool_filter: str | None = None) -> list[ManagedInstallation]:
        """Installed versions, by tool id then newest first.

        Directory names the plugin cannot parse are skipped.  For java,
        versions in the legacy flat layout are included too.
        """
        if tool_filter is not None:
            self._plugin(tool_filter)
            tool_ids = [tool_filter]
        else:
            tool_ids = self._tool_ids()

        results: list[ManagedInstallation] = []
        for tool_id in tool_ids:
            plugin = self._plugin(tool_id)
            current_links = [self._config.tool_current_symlink(tool_id)]
            default_links = [self._config.tool_default_symlink(tool_id)]
            if tool_id == LEGACY_TOOL:
                current_links.append(self._config.legacy_alias_path(CURRENT_ALIAS))
                default_links.append(self._config.legacy_alias_path(DEFAULT_ALIAS))

            seen: set[str] = set()
            entries = iter_version_entries(self._config.tool_versions_dir(tool_id))
            if tool_id == LEGACY_TOOL:
                entries += [
                    e for e in iter_version_entries(self._config.versions_dir)
                    if e.name not in LEGACY_SKIP and not e.is_symlink()
                ]

            for path in entries:
                try:
                    version = plugin.parse_version(path.name)
                except InvalidVersion:
                    continue
                if version.raw in seen:
                    continue
                seen.add(version.raw)

                manifest = self._manifests.read(path, tool_id, path.name)
                installed_at = manifest.installed_at if manifest else _fs_timestamp(path)

                results.append(ManagedInstallation(
                    tool_id=tool_id,
                    version=version,
                    path=path,
                    is_current=links_point_to(current_links, path),
                    is_default=links_point_to(default_links, path),
                    installed_at=installed_at,
                    manifest=manifest,
                ))

        results.sort(key=lambda i: i.version.sort_key(), reverse=True)
        results.sort(key=lambda i: i.tool_id)
        return results

    # ── Internals ───────────────────────────────────────────────

    def _plugin(self, tool_id: str) -> ToolPlugin:
        try:
            return self._registry.get(tool_id)
        except PluginNotFound:
            raise ToolNotFound(tool_id) from None

    def _tool_ids(self) -> list[str]:
        return sorted(meta.id for meta in self._registry.list_metadata())

    def _detect_one(self, tool_id: str) -> tuple[ToolSweepResult, ToolPlugin | None]:
        """Sweep step for one tool; the plugin is None when detection failed."""
        result = ToolSweepResult(tool_id=tool_id)
        try:
            plugin = self._plugin(tool_id)
            result.installations = plugin.detect_installations()
        except Exception as e:
            logger.warning("Detection failed for %s: %s", tool_id, e)
            result.error = str(e)
            return result, None
        result.detected = len(result.installations)
        return result, plugin

    def _import(
        self,
        plugin: ToolPlugin,
        tool_id: str,
        detected: DetectedInstallation,
        dest_dir: Path,
    ) -> InstalledTool:
        if dest_dir.exists() or dest_dir.is_symlink():
            raise VersionAlreadyInstalled(detected.version.raw, str(dest_dir), tool_id)
        dest_dir.parent.mkdir(parents=True, exist_ok=True)
        installed = plugin.import_installation(detected, dest_dir)
        self._manifests.write(installed)
        logger.info("Imported %s %s from %s", tool_id, detected.version.raw, detected.path)
        return installed

    def _load_installed(
        self,
        plugin: ToolPlugin,
        tool_id: str,
        install_dir: Path,
        action: str,
    ) -> InstalledTool:
        """Manifest for ``install_dir``, rebuilt from its name if missing."""
        manifest = self._manifests.read(install_dir, tool_id, install_dir.name)
        if manifest is not None:
            return manifest

        logger.warning(
            "Manifest file not found for %s %s at %s. This may indicate a corrupted installation.",
            tool_id, install_dir.name, install_dir,
        )
        try:
            version = plugin.parse_version(install_dir.name)
        except InvalidVersion as e:
            raise InvalidToolStructure(
                tool_id,
                f"Cannot {action}: manifest missing and version parsing failed ({e}). "
                f"Installation data may be corrupted at: {install_dir}",
            ) from e

        return InstalledTool(tool_id=tool_id, version=version, path=install_dir)

    def _load_env(self, plugin: ToolPlugin, install_dir: Path) -> tuple[Path, list[tuple[str, str]]]:
        env = plugin.get_environment_vars(install_dir)
        return extract_home_path(env, install_dir), env

    def _write_alias(self, tool_id: str, alias: str, home_path: Path) -> None:
        link = self._config.tool_alias_path(tool_id, alias)
        replace_symlink(home_path, link)
        if tool_id == LEGACY_TOOL:
            legacy = self._config.legacy_alias_path(alias)
            if legacy != link:
                replace_symlink(home_path, legacy)

    def _cleanup_aliases(self, tool_id: str, install_dir: Path) -> None:
        """Remove every alias of ``tool_id`` that targets ``install_dir``."""
        candidates: list[Path] = []
        alias_root = self._config.tool_alias_dir(tool_id)
        if alias_root.is_dir():
            candidates += [e for e in alias_root.iterdir() if e.is_symlink()]
        if tool_id == LEGACY_TOOL and self._config.alias_dir.is_dir():
            candidates += [e for e in self._config.alias_dir.iterdir() if e.is_symlink()]

        for link in candidates:
            target = symlink_target(link)
            if target is not None and target_matches(target, install_dir):
                remove_link(link)
                logger.debug("Removed alias %s", link)

    @staticmethod
    def _match_target(target: Path, installs: list[ManagedInstallation]) -> str | None:
        for inst in installs:
            if target_matches(target, inst.path):
                return inst.version.raw
        return None


def _fs_timestamp(path: Path) -> datetime:
    """Creation time where the OS records it, else mtime, else now."""
    try:
        st = path.stat()
    except OSError:
        return datetime.now(UTC)
    ts = getattr(st, "st_birthtime", None) or st.st_mtime
    return datetime.fromtimestamp(ts, UTC)
