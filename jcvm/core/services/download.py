"""
Download helper — fetch, verify and unpack tool distributions.

Shared by the built-in plugins' installers:

    download_file()     URL → cached file under <root>/cache/<tool>/
    verify_checksum()   sha256 (or ``algo:hex``) comparison
    extract_archive()   tar.gz / zip → temp sibling → rename into place

Archives whose entries all live under one top-level directory are
collapsed so the install dir holds the distribution's contents
directly.
"""

from __future__ import annotations

import hashlib
import json
import logging
import shutil
import tarfile
import tempfile
import urllib.error
import urllib.request
import zipfile
from pathlib import Path
from typing import Any

from jcvm import __version__
from jcvm.core.errors import ChecksumMismatch, DownloadFailed, ExtractionFailed
from jcvm.core.models.tool import ArchiveType

logger = logging.getLogger(__name__)

USER_AGENT = f"jcvm/{__version__}"
_CHUNK = 64 * 1024


# ── HTTP ────────────────────────────────────────────────────────


def fetch_json(url: str, timeout: float = 30.0) -> Any:
    """GET a URL and decode its JSON body.

    Raises:
        DownloadFailed: On any network, HTTP or decoding failure.
    """
    req = urllib.request.Request(
        url,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise DownloadFailed(url, str(e)) from e


def fetch_text(url: str, timeout: float = 30.0) -> str:
    """GET a URL and return its body as text.

    Raises:
        DownloadFailed: On any network or HTTP failure.
    """
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.read().decode("utf-8", errors="replace")
    except (urllib.error.URLError, OSError) as e:
        raise DownloadFailed(url, str(e)) from e


def download_file(
    url: str,
    dest: Path,
    *,
    timeout: float = 30.0,
    use_cache: bool = True,
) -> Path:
    """Download ``url`` to ``dest``.

    An existing non-empty ``dest`` is reused when ``use_cache`` is set.
    The body is streamed to a temp file in the same directory and renamed
    on success, so an interrupted download never looks complete.

    Raises:
        DownloadFailed: On any network, HTTP or filesystem failure.
    """
    if use_cache and dest.is_file() and dest.stat().st_size > 0:
        logger.info("Using cached %s", dest)
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    _fd, tmp_path = tempfile.mkstemp(dir=dest.parent, prefix=".dl_", suffix=".part")
    tmp = Path(tmp_path)

    logger.info("Downloading %s", url)
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with open(_fd, "wb") as f, urllib.request.urlopen(req, timeout=timeout) as resp:
            while True:
                chunk = resp.read(_CHUNK)
                if not chunk:
                    break
                f.write(chunk)
        tmp.replace(dest)
    except (urllib.error.URLError, OSError) as e:
        tmp.unlink(missing_ok=True)
        raise DownloadFailed(url, str(e)) from e

    logger.debug("Downloaded %s (%d bytes)", dest, dest.stat().st_size)
    return dest


# ── Checksums ───────────────────────────────────────────────────


def file_digest(path: Path, algo: str = "sha256") -> str:
    """Hex digest of a file."""
    h = hashlib.new(algo)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """Compare a file's digest with ``expected``.

    ``expected`` is either a bare sha256 hex string or ``algo:hex``.
    Comparison is case-insensitive.
    """
    algo, _, value = expected.strip().rpartition(":")
    algo = algo or "sha256"
    return file_digest(path, algo).lower() == value.lower()


def ensure_checksum(path: Path, expected: str | None) -> None:
    """Raise ``ChecksumMismatch`` (and drop the file) on a bad digest.

    A missing ``expected`` value skips verification.
    """
    if not expected:
        logger.debug("No checksum published for %s, skipping verification", path.name)
        return
    if not verify_checksum(path, expected):
        path.unlink(missing_ok=True)
        raise ChecksumMismatch(path.name)


# ── Extraction ──────────────────────────────────────────────────


def extract_archive(archive: Path, dest_dir: Path, archive_type: ArchiveType | None = None) -> Path:
    """Unpack ``archive`` so its contents end up directly in ``dest_dir``.

    Extraction happens in a ``.tmp_<name>`` sibling that is renamed into
    place at the end; on failure the sibling is removed and ``dest_dir``
    is never created.

    Raises:
        ExtractionFailed: If the format is unsupported or unpacking fails.
    """
    kind = archive_type or ArchiveType.from_url(archive.name)
    staging = dest_dir.parent / f".tmp_{dest_dir.name}"
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir(parents=True)

    try:
        if kind is ArchiveType.TAR_GZ:
            with tarfile.open(archive, "r:gz") as tf:
                tf.extractall(staging, filter="data")
        elif kind is ArchiveType.ZIP:
            with zipfile.ZipFile(archive, "r") as zf:
                zf.extractall(staging)
        else:
            raise ExtractionFailed(f"unsupported archive type '{kind}' for {archive.name}")

        root = _single_top_level_dir(staging)
        if root is not None:
            root.rename(dest_dir)
            shutil.rmtree(staging)
        else:
            staging.rename(dest_dir)
    except ExtractionFailed:
        shutil.rmtree(staging, ignore_errors=True)
        raise
    except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
        shutil.rmtree(staging, ignore_errors=True)
        raise ExtractionFailed(f"{archive.name}: {e}") from e

    logger.debug("Extracted %s into %s", archive.name, dest_dir)
    return dest_dir


def _single_top_level_dir(path: Path) -> Path | None:
    entries = [p for p in path.iterdir() if p.name not in ("__MACOSX", ".DS_Store")]
    if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
        return entries[0]
    return None
