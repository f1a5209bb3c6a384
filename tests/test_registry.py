"""
Tests for the plugin registry and the mock plugin.
"""

import threading
import time

import pytest

from jcvm.core.errors import InvalidVersion, PluginError, PluginNotFound, VersionAlreadyInstalled
from jcvm.core.models.plugin import PluginMetadata
from jcvm.core.models.tool import Architecture, Platform
from jcvm.plugins.mock import MockToolPlugin, mock_metadata
from jcvm.plugins.registry import PluginRegistry

# ── Registry Tests ───────────────────────────────────────────────────


class TestPluginRegistry:
    def test_register_and_get(self):
        reg = PluginRegistry()
        plugin = MockToolPlugin("alpha")
        reg.register(plugin, mock_metadata("alpha"))
        assert reg.get("alpha") is plugin
        assert reg.get_metadata("alpha").id == "alpha"
        assert reg.has_plugin("alpha")
        assert "alpha" in reg
        assert len(reg) == 1

    def test_metadata_id_must_match_tool_id(self):
        reg = PluginRegistry()
        with pytest.raises(PluginError, match="does not match"):
            reg.register(MockToolPlugin("alpha"), mock_metadata("beta"))
        assert not reg.has_plugin("alpha")
        assert not reg.has_plugin("beta")

    def test_duplicate_rejected(self):
        reg = PluginRegistry()
        reg.register(MockToolPlugin("alpha"), mock_metadata("alpha"))
        with pytest.raises(PluginError, match="already registered"):
            reg.register(MockToolPlugin("alpha"), mock_metadata("alpha"))

    def test_get_missing(self):
        reg = PluginRegistry()
        with pytest.raises(PluginNotFound):
            reg.get("nope")
        with pytest.raises(PluginNotFound):
            reg.get_metadata("nope")

    def test_unregister_is_idempotent(self):
        reg = PluginRegistry()
        reg.register(MockToolPlugin("alpha"), mock_metadata("alpha"))
        reg.unregister("alpha")
        reg.unregister("alpha")
        assert not reg.has_plugin("alpha")
        with pytest.raises(PluginNotFound):
            reg.get_metadata("alpha")

    def test_list_snapshots(self):
        reg = PluginRegistry()
        reg.register(MockToolPlugin("a"), mock_metadata("a"))
        reg.register(MockToolPlugin("b"), mock_metadata("b"))
        ids = {p.tool_id for p in reg.list_plugins()}
        assert ids == {"a", "b"}
        assert {m.id for m in reg.list_metadata()} == {"a", "b"}

    def test_plugins_for_platform(self):
        reg = PluginRegistry()
        reg.register(MockToolPlugin("all"), mock_metadata("all"))
        reg.register(
            MockToolPlugin("linux-only"),
            PluginMetadata(
                id="linux-only",
                platforms=[Platform.LINUX],
                architectures=[Architecture.X64],
            ),
        )
        mac = {p.tool_id for p in reg.get_plugins_for_platform(Platform.MAC, Architecture.AARCH64)}
        linux = {p.tool_id for p in reg.get_plugins_for_platform(Platform.LINUX, Architecture.X64)}
        assert mac == {"all"}
        assert linux == {"all", "linux-only"}

    def test_write_lock_timeout(self):
        reg = PluginRegistry(lock_timeout=0.05)
        assert reg._lock.acquire_read(1.0)
        try:
            with pytest.raises(PluginError, match="timed out"):
                reg.register(MockToolPlugin("x"), mock_metadata("x"))
        finally:
            reg._lock.release_read()
        reg.register(MockToolPlugin("x"), mock_metadata("x"))

    def test_read_lock_timeout(self):
        reg = PluginRegistry(lock_timeout=0.05)
        assert reg._lock.acquire_write(1.0)
        try:
            with pytest.raises(PluginError, match="timed out"):
                reg.get("x")
        finally:
            reg._lock.release_write()

    def test_waiting_writer_blocks_new_readers(self):
        reg = PluginRegistry(lock_timeout=0.05)
        lock = reg._lock
        assert lock.acquire_read(1.0)
        registered = threading.Event()

        def writer() -> None:
            if lock.acquire_write(5.0):
                registered.set()
                lock.release_write()

        t = threading.Thread(target=writer)
        t.start()
        deadline = time.monotonic() + 5.0
        while lock._writers_waiting == 0 and time.monotonic() < deadline:
            time.sleep(0.01)

        try:
            assert lock._writers_waiting == 1
            with pytest.raises(PluginError, match="read lock"):
                reg.list_metadata()
        finally:
            lock.release_read()
        t.join(5.0)

        assert registered.is_set()
        assert reg.list_metadata() == []

    def test_timed_out_writer_releases_readers(self):
        reg = PluginRegistry(lock_timeout=0.05)
        lock = reg._lock
        assert lock.acquire_read(1.0)
        try:
            assert not lock.acquire_write(0.05)
            assert lock._writers_waiting == 0
            assert lock.acquire_read(0.05)
            lock.release_read()
        finally:
            lock.release_read()

    def test_concurrent_readers_and_writers(self):
        reg = PluginRegistry()
        errors: list[Exception] = []

        def writer(n: int) -> None:
            try:
                reg.register(MockToolPlugin(f"t{n}"), mock_metadata(f"t{n}"))
            except Exception as e:
                errors.append(e)

        def reader() -> None:
            try:
                for _ in range(50):
                    for meta in reg.list_metadata():
                        reg.get(meta.id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(10)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(reg) == 10


# ── Mock Plugin Tests ────────────────────────────────────────────────


class TestMockToolPlugin:
    def test_parse_version(self):
        plugin = MockToolPlugin()
        v = plugin.parse_version("3.10.18")
        assert (v.major, v.minor, v.patch) == (3, 10, 18)
        with pytest.raises(InvalidVersion):
            plugin.parse_version("not-a-version")

    def test_install_creates_layout(self, tmp_path):
        plugin = MockToolPlugin("demo")
        v = plugin.parse_version("1.2.3")
        dist = plugin.find_distribution(v, Platform.LINUX, Architecture.X64)
        installed = plugin.install(dist, tmp_path / "1.2.3")
        assert plugin.validate_installation(tmp_path / "1.2.3")
        assert installed.executable_path == tmp_path / "1.2.3" / "bin" / "demo"
        assert plugin.calls("install") == [dist]

    def test_install_refuses_existing(self, tmp_path):
        plugin = MockToolPlugin()
        (tmp_path / "1.0.0").mkdir()
        dist = plugin.find_distribution(plugin.parse_version("1.0.0"), Platform.LINUX, Architecture.X64)
        with pytest.raises(VersionAlreadyInstalled):
            plugin.install(dist, tmp_path / "1.0.0")

    def test_set_failure_and_reset(self):
        plugin = MockToolPlugin()
        plugin.set_failure("detect_installations", RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            plugin.detect_installations()
        plugin.reset()
        assert plugin.detect_installations() == []
        assert plugin.call_log == [("detect_installations", None)]

    def test_home_subdir(self, tmp_path):
        plugin = MockToolPlugin("jdk", home_subdir="Contents/Home")
        plugin.make_layout(tmp_path / "x")
        env = dict(plugin.get_environment_vars(tmp_path / "x"))
        assert env["JDK_HOME"] == str(tmp_path / "x" / "Contents" / "Home")
