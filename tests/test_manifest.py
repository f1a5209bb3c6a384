"""
Tests for the manifest store — in-place and side-store manifests.
"""

import os
from pathlib import Path

from jcvm.core.models.tool import InstalledTool, ToolVersion
from jcvm.core.persistence.manifest import MANIFEST_FILE, ManifestStore


def _installed(path: Path, raw: str = "20.10.0") -> InstalledTool:
    major, minor, patch = (int(p) for p in raw.split("."))
    return InstalledTool(
        tool_id="node",
        version=ToolVersion(raw=raw, major=major, minor=minor, patch=patch),
        path=path,
        source="test",
    )


class TestManifestStore:
    def test_in_place_roundtrip(self, config):
        store = ManifestStore(config)
        install_dir = config.tool_version_dir("node", "20.10.0")
        install_dir.mkdir(parents=True)

        written = store.write(_installed(install_dir))
        assert written == install_dir / MANIFEST_FILE

        loaded = store.read(install_dir, "node", "20.10.0")
        assert loaded is not None
        assert loaded.version.raw == "20.10.0"
        assert loaded.source == "test"

    def test_symlinked_dir_uses_side_store(self, config, tmp_path: Path):
        store = ManifestStore(config)
        external = tmp_path / "external-node"
        external.mkdir()
        install_dir = config.tool_version_dir("node", "18.20.8")
        install_dir.parent.mkdir(parents=True)
        os.symlink(external, install_dir)

        written = store.write(_installed(install_dir, "18.20.8"))
        assert written == config.manifest_side_path("node", "18.20.8")
        assert not (external / MANIFEST_FILE).exists()

        loaded = store.read(install_dir)
        assert loaded is not None
        assert loaded.version.raw == "18.20.8"

    def test_missing_returns_none(self, config, tmp_path: Path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert ManifestStore(config).read(empty) is None

    def test_corrupt_returns_none(self, config, tmp_path: Path, caplog):
        install_dir = tmp_path / "broken"
        install_dir.mkdir()
        (install_dir / MANIFEST_FILE).write_text("{ not json")
        assert ManifestStore(config).read(install_dir) is None
        assert "Corrupt manifest" in caplog.text

    def test_no_temp_files_left(self, config):
        install_dir = config.tool_version_dir("node", "20.10.0")
        install_dir.mkdir(parents=True)
        ManifestStore(config).write(_installed(install_dir))
        assert sorted(p.name for p in install_dir.iterdir()) == [MANIFEST_FILE]

    def test_remove_clears_both_locations(self, config):
        store = ManifestStore(config)
        install_dir = config.tool_version_dir("node", "20.10.0")
        install_dir.mkdir(parents=True)
        store.write(_installed(install_dir))
        side = config.manifest_side_path("node", "20.10.0")
        side.parent.mkdir(parents=True, exist_ok=True)
        side.write_text("{}")

        store.remove("node", "20.10.0", install_dir)
        assert not (install_dir / MANIFEST_FILE).exists()
        assert not side.exists()

    def test_remove_leaves_symlink_target_alone(self, config, tmp_path: Path):
        store = ManifestStore(config)
        external = tmp_path / "ext"
        external.mkdir()
        own = external / MANIFEST_FILE
        own.write_text("{}")
        install_dir = config.tool_version_dir("node", "18.20.8")
        install_dir.parent.mkdir(parents=True)
        os.symlink(external, install_dir)

        store.remove("node", "18.20.8", install_dir)
        assert own.exists()
