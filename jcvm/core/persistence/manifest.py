"""
Manifest store — durable install records kept beside the symlink graph.

A manifest is written once per successful install or import and read
on every later reference.  Where it lives depends on the install
directory itself, recomputed on every call:

    regular directory  →  <install_dir>/.jcvm-manifest.json
    symlink (imported) →  <root>/versions/.metadata/<tool>_<version>.json

The side store keeps jcvm from writing into installations it does not
own.  Writes are atomic (write to temp file, then rename).
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from pydantic import ValidationError

from jcvm.core.config.settings import JcvmConfig
from jcvm.core.models.tool import InstalledTool

logger = logging.getLogger(__name__)

MANIFEST_FILE = ".jcvm-manifest.json"


def manifest_path(install_dir: Path) -> Path:
    """In-place manifest path for an install directory."""
    return install_dir / MANIFEST_FILE


class ManifestStore:
    """Reads and writes ``InstalledTool`` manifests for one jcvm root."""

    def __init__(self, config: JcvmConfig):
        self._config = config

    def location(self, tool_id: str, version: str, install_dir: Path) -> Path:
        """Where the manifest for ``install_dir`` belongs right now."""
        if install_dir.is_symlink():
            return self._config.manifest_side_path(tool_id, version)
        return manifest_path(install_dir)

    def write(self, installed: InstalledTool) -> Path:
        """Persist a manifest (atomic write).

        Returns:
            The path the manifest was written to.
        """
        target = self.location(installed.tool_id, installed.version.raw, installed.path)
        target.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(installed.to_json_dict(), indent=2, ensure_ascii=False) + "\n"

        _fd, tmp_path = tempfile.mkstemp(
            dir=target.parent,
            prefix=".manifest_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(target)
        except Exception:
            tmp.unlink(missing_ok=True)
            logger.error("Failed to write manifest to %s", target)
            raise

        logger.debug("Manifest for %s %s written to %s", installed.tool_id, installed.version, target)
        return target

    def read(
        self,
        install_dir: Path,
        tool_id: str | None = None,
        version: str | None = None,
    ) -> InstalledTool | None:
        """Load the manifest for an install directory.

        Checks the in-place location first, then the side store (only for
        symlinked install dirs).  ``tool_id``/``version`` default to the
        directory's parent name and own name.

        Returns:
            The manifest, or None if none exists or it cannot be parsed.
        """
        in_place = manifest_path(install_dir)
        if in_place.is_file():
            return self._load(in_place)

        if install_dir.is_symlink():
            tool_id = tool_id or install_dir.parent.name
            version = version or install_dir.name
            side = self._config.manifest_side_path(tool_id, version)
            if side.is_file():
                return self._load(side)

        return None

    def remove(self, tool_id: str, version: str, install_dir: Path) -> None:
        """Delete the manifest from every location it may occupy.

        The in-place file is left alone while ``install_dir`` is still a
        symlink, since it would live inside someone else's installation.
        """
        if not install_dir.is_symlink():
            manifest_path(install_dir).unlink(missing_ok=True)
        self._config.manifest_side_path(tool_id, version).unlink(missing_ok=True)

    @staticmethod
    def _load(path: Path) -> InstalledTool | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return InstalledTool.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Corrupt manifest %s: %s — ignoring it", path, e)
            return None
        except OSError as e:
            logger.warning("Cannot read manifest %s: %s — ignoring it", path, e)
            return None
