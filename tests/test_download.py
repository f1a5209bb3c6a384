"""
Tests for the download helper — fetch, checksum, extraction.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path

import pytest

from jcvm.core.errors import ChecksumMismatch, DownloadFailed, ExtractionFailed
from jcvm.core.models.tool import ArchiveType
from jcvm.core.services import download


def make_tarball(path: Path, files: dict[str, str]) -> Path:
    with tarfile.open(path, "w:gz") as tf:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return path


def make_zip(path: Path, files: dict[str, str]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def sha256_of(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


class TestDownloadFile:
    def test_file_url(self, tmp_path: Path):
        src = tmp_path / "src.bin"
        src.write_bytes(b"payload")
        dest = download.download_file(src.as_uri(), tmp_path / "cache" / "out.bin")
        assert dest.read_bytes() == b"payload"
        assert [p.name for p in dest.parent.iterdir()] == ["out.bin"]

    def test_uses_cache(self, tmp_path: Path):
        dest = tmp_path / "cached.bin"
        dest.write_bytes(b"old")
        missing = (tmp_path / "missing.bin").as_uri()
        assert download.download_file(missing, dest).read_bytes() == b"old"

    def test_failure_leaves_nothing(self, tmp_path: Path):
        dest = tmp_path / "cache" / "x.bin"
        with pytest.raises(DownloadFailed):
            download.download_file((tmp_path / "missing.bin").as_uri(), dest, use_cache=False)
        assert list(dest.parent.iterdir()) == []

    def test_fetch_json(self, tmp_path: Path):
        src = tmp_path / "index.json"
        src.write_text('[{"version": "v20.10.0"}]')
        assert download.fetch_json(src.as_uri()) == [{"version": "v20.10.0"}]

    def test_fetch_json_bad_body(self, tmp_path: Path):
        src = tmp_path / "index.json"
        src.write_text("<html>")
        with pytest.raises(DownloadFailed):
            download.fetch_json(src.as_uri())


class TestChecksum:
    def test_bare_and_prefixed(self, tmp_path: Path):
        f = tmp_path / "a"
        f.write_bytes(b"abc")
        digest = sha256_of(f)
        assert download.verify_checksum(f, digest)
        assert download.verify_checksum(f, digest.upper())
        assert download.verify_checksum(f, f"sha256:{digest}")
        assert not download.verify_checksum(f, "0" * 64)

    def test_ensure_checksum_drops_bad_file(self, tmp_path: Path):
        f = tmp_path / "a"
        f.write_bytes(b"abc")
        with pytest.raises(ChecksumMismatch):
            download.ensure_checksum(f, "0" * 64)
        assert not f.exists()

    def test_missing_checksum_skips(self, tmp_path: Path):
        f = tmp_path / "a"
        f.write_bytes(b"abc")
        download.ensure_checksum(f, None)
        assert f.exists()


class TestExtractArchive:
    def test_collapses_single_top_level_dir(self, tmp_path: Path):
        archive = make_tarball(tmp_path / "node.tar.gz", {
            "node-v20.10.0-linux-x64/bin/node": "#!/bin/sh\n",
            "node-v20.10.0-linux-x64/README.md": "hi",
        })
        dest = tmp_path / "versions" / "20.10.0"
        dest.parent.mkdir()
        download.extract_archive(archive, dest)
        assert (dest / "bin" / "node").is_file()
        assert not (dest.parent / ".tmp_20.10.0").exists()

    def test_keeps_flat_layout(self, tmp_path: Path):
        archive = make_zip(tmp_path / "tool.zip", {"node.exe": "x", "npm.cmd": "y"})
        dest = tmp_path / "out"
        download.extract_archive(archive, dest, ArchiveType.ZIP)
        assert sorted(p.name for p in dest.iterdir()) == ["node.exe", "npm.cmd"]

    def test_unsupported_type(self, tmp_path: Path):
        archive = tmp_path / "python.pkg"
        archive.write_bytes(b"xar!")
        with pytest.raises(ExtractionFailed, match="unsupported"):
            download.extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "out").exists()
        assert not (tmp_path / ".tmp_out").exists()

    def test_corrupt_archive(self, tmp_path: Path):
        archive = tmp_path / "bad.tar.gz"
        archive.write_bytes(b"not a tarball")
        with pytest.raises(ExtractionFailed):
            download.extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "out").exists()
