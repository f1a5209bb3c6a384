"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from jcvm.core.config.settings import JcvmConfig
from jcvm.core.models.tool import Architecture, DetectedInstallation, Platform
from jcvm.core.services.tool_manager import ToolManager
from jcvm.plugins.mock import MockToolPlugin
from jcvm.plugins.registry import PluginRegistry


@pytest.fixture
def jcvm_root(tmp_path: Path) -> Path:
    """Return a temporary jcvm root directory."""
    root = tmp_path / "jcvm"
    root.mkdir()
    return root


@pytest.fixture
def config(jcvm_root: Path) -> JcvmConfig:
    cfg = JcvmConfig.for_root(jcvm_root)
    cfg.ensure_dirs()
    return cfg


@pytest.fixture
def mock_plugin() -> MockToolPlugin:
    return MockToolPlugin("mock")


@pytest.fixture
def registry(mock_plugin: MockToolPlugin) -> PluginRegistry:
    reg = PluginRegistry()
    reg.register(mock_plugin, mock_plugin.metadata())
    return reg


@pytest.fixture
def manager(config: JcvmConfig, registry: PluginRegistry) -> ToolManager:
    """Manager over the mock plugin on a fixed linux/x64 host."""
    return ToolManager(config, registry, platform_probe=lambda: (Platform.LINUX, Architecture.X64))


@pytest.fixture
def make_external(tmp_path: Path):
    """Factory for an installation living outside the jcvm root."""

    def _make(plugin: MockToolPlugin, version: str, name: str | None = None) -> DetectedInstallation:
        path = tmp_path / "external" / (name or f"{plugin.tool_id}-{version}")
        exe = plugin.make_layout(path)
        return DetectedInstallation(
            tool_id=plugin.tool_id,
            version=plugin.parse_version(version),
            path=path,
            source="external",
            executable_path=exe,
        )

    return _make
