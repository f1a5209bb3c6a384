"""
Tests for alias symlink helpers and home-path extraction.
"""

import os
from pathlib import Path

from jcvm.core.services.tool_manager.aliases import (
    extract_home_path,
    link_points_to,
    remove_link,
    replace_symlink,
    sanitize_home_value,
    symlink_target,
    target_matches,
)


class TestSanitizeHomeValue:
    def test_strips_shell_reference_and_separator(self):
        assert sanitize_home_value("/opt/jcvm/java/21/bin:$PATH") == "/opt/jcvm/java/21/bin"

    def test_windows_value(self):
        assert sanitize_home_value("C:\\jcvm\\java\\21\\bin;%PATH%") == "C:\\jcvm\\java\\21\\bin"

    def test_keeps_drive_colon(self):
        assert sanitize_home_value("D:/tools/node") == "D:/tools/node"

    def test_trailing_slashes_and_whitespace(self):
        assert sanitize_home_value("  /opt/node///  ") == "/opt/node"

    def test_only_reference(self):
        assert sanitize_home_value("$JAVA_HOME") == ""


class TestExtractHomePath:
    def test_first_home_variable_wins(self, tmp_path: Path):
        env = [("PATH", "/x/bin:$PATH"), ("JAVA_HOME", "/a/Contents/Home"), ("OTHER_HOME", "/b")]
        assert extract_home_path(env, tmp_path) == Path("/a/Contents/Home")

    def test_falls_back_to_install_dir(self, tmp_path: Path):
        assert extract_home_path([("PATH", "/x/bin:$PATH")], tmp_path) == tmp_path

    def test_empty_home_value_is_skipped(self, tmp_path: Path):
        env = [("NODE_HOME", "$NVM_DIR"), ("OTHER_HOME", "/b")]
        assert extract_home_path(env, tmp_path) == Path("/b")


class TestLinks:
    def test_replace_symlink_over_dir_and_file(self, tmp_path: Path):
        target = tmp_path / "target"
        target.mkdir()

        link = tmp_path / "alias" / "current"
        link.mkdir(parents=True)
        (link / "junk").write_text("x")
        replace_symlink(target, link)
        assert link.is_symlink()
        assert Path(os.readlink(link)) == target

        other = tmp_path / "other"
        other.write_text("file")
        replace_symlink(target, other)
        assert other.is_symlink()

    def test_replace_symlink_creates_parent(self, tmp_path: Path):
        target = tmp_path / "t"
        target.mkdir()
        link = tmp_path / "a" / "b" / "default"
        replace_symlink(target, link)
        assert link.is_symlink()

    def test_remove_link_missing_is_ok(self, tmp_path: Path):
        remove_link(tmp_path / "missing")

    def test_remove_dangling_link(self, tmp_path: Path):
        link = tmp_path / "dangling"
        os.symlink(tmp_path / "gone", link)
        remove_link(link)
        assert not link.is_symlink()

    def test_symlink_target(self, tmp_path: Path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        os.symlink(real, link)
        afile = tmp_path / "f"
        afile.write_text("")

        assert symlink_target(link) == real
        assert symlink_target(real) == real
        assert symlink_target(afile) is None
        assert symlink_target(tmp_path / "nope") is None

    def test_target_matches_is_component_wise(self):
        install = Path("/root/versions/node/20")
        assert target_matches(install, install)
        assert target_matches(install / "Contents" / "Home", install)
        assert not target_matches(Path("/root/versions/node/20.10.0"), install)

    def test_link_points_to(self, tmp_path: Path):
        install = tmp_path / "v1"
        (install / "home").mkdir(parents=True)
        link = tmp_path / "current"
        os.symlink(install / "home", link)
        assert link_points_to(link, install)
        assert not link_points_to(link, tmp_path / "v2")
