"""
Tests for version resolution — exact, prefix and legacy lookups.
"""

import os

import pytest

from jcvm.core.errors import VersionNotFound
from jcvm.core.services.tool_manager.resolution import find_matching_version, resolve_install_dir
from jcvm.plugins.mock import MockToolPlugin


def _mkversions(config, tool_id: str, *names: str) -> None:
    for name in names:
        config.tool_version_dir(tool_id, name).mkdir(parents=True)


class TestFindMatchingVersion:
    def test_picks_highest_patch(self, config):
        plugin = MockToolPlugin("python")
        _mkversions(config, "python", "3.10.10", "3.10.18", "3.13.7")
        assert find_matching_version(config, plugin, "python", "3.10") == "3.10.18"
        assert find_matching_version(config, plugin, "python", "3.13") == "3.13.7"
        assert find_matching_version(config, plugin, "python", "3") == "3.13.7"

    def test_numeric_not_lexicographic(self, config):
        plugin = MockToolPlugin("node")
        _mkversions(config, "node", "20.9.0", "20.10.0")
        assert find_matching_version(config, plugin, "node", "20") == "20.10.0"

    def test_ignores_unparseable_entries(self, config):
        plugin = MockToolPlugin("node")
        _mkversions(config, "node", "20.1.0", "20_tmp")
        assert find_matching_version(config, plugin, "node", "20") == "20.1.0"

    def test_includes_symlinked_entries(self, config, tmp_path):
        plugin = MockToolPlugin("node")
        _mkversions(config, "node", "18.1.0")
        ext = tmp_path / "ext"
        ext.mkdir()
        os.symlink(ext, config.tool_version_dir("node", "18.20.8"))
        assert find_matching_version(config, plugin, "node", "18") == "18.20.8"

    def test_no_match(self, config):
        plugin = MockToolPlugin("node")
        assert find_matching_version(config, plugin, "node", "20") is None


class TestResolveInstallDir:
    def test_exact_wins_over_prefix(self, config):
        plugin = MockToolPlugin("java")
        _mkversions(config, "java", "21", "21.0.5")
        assert resolve_install_dir(config, plugin, "java", "21") == config.tool_version_dir("java", "21")

    def test_prefix(self, config):
        plugin = MockToolPlugin("python")
        _mkversions(config, "python", "3.10.10", "3.10.18")
        assert resolve_install_dir(config, plugin, "python", "3.10") == (
            config.tool_version_dir("python", "3.10.18")
        )

    def test_legacy_java(self, config):
        plugin = MockToolPlugin("java")
        config.legacy_version_dir("17.0.2").mkdir(parents=True)
        assert resolve_install_dir(config, plugin, "java", "17.0.2") == config.versions_dir / "17.0.2"

    def test_legacy_only_for_java(self, config):
        plugin = MockToolPlugin("node")
        config.legacy_version_dir("17.0.2").mkdir(parents=True)
        with pytest.raises(VersionNotFound):
            resolve_install_dir(config, plugin, "node", "17.0.2")

    def test_not_found_message(self, config):
        plugin = MockToolPlugin("node")
        with pytest.raises(VersionNotFound, match="node@99"):
            resolve_install_dir(config, plugin, "node", "99")

    def test_unsafe_name_is_not_found(self, config):
        plugin = MockToolPlugin("node")
        with pytest.raises(VersionNotFound):
            resolve_install_dir(config, plugin, "node", "../etc")
