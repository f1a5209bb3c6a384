"""
Alias symlinks — writing, reading and matching the links that make a
version "current", "default" or any other named alias.

Aliases point at a version's *home path* (the directory a tool's
``*_HOME`` variable names), which may sit below the install dir.  A
link therefore "points to" an install dir when its target is the dir
itself or anything inside it.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def remove_link(link: Path) -> None:
    """Remove whatever occupies ``link``: symlink, file or directory.

    A missing path is not an error.
    """
    try:
        if link.is_symlink() or link.is_file():
            link.unlink()
        elif link.is_dir():
            shutil.rmtree(link)
    except FileNotFoundError:
        pass


def replace_symlink(target: Path, link: Path) -> None:
    """Point ``link`` at ``target``, replacing anything already there.

    Not atomic: a crash between removal and creation leaves no link.
    """
    link.parent.mkdir(parents=True, exist_ok=True)
    remove_link(link)
    os.symlink(target, link, target_is_directory=target.is_dir())
    logger.debug("Alias %s → %s", link, target)


def symlink_target(link: Path) -> Path | None:
    """Where ``link`` leads.

    Returns the raw link target for a symlink, the path itself for a
    real directory, and None for anything else (including absence).
    """
    if link.is_symlink():
        return Path(os.readlink(link))
    if link.is_dir():
        return link
    return None


def target_matches(target: Path, install_dir: Path) -> bool:
    """True if ``target`` is ``install_dir`` or lies inside it."""
    return target == install_dir or target.is_relative_to(install_dir)


def link_points_to(link: Path, install_dir: Path) -> bool:
    target = symlink_target(link)
    return target is not None and target_matches(target, install_dir)


def links_point_to(links: list[Path], install_dir: Path) -> bool:
    return any(link_points_to(link, install_dir) for link in links)


# ── Home path ───────────────────────────────────────────────────


def extract_home_path(env: list[tuple[str, str]], install_dir: Path) -> Path:
    """Home directory declared by a tool's environment.

    The first ``*_HOME`` variable with a usable value wins; without one
    the install dir itself is the home.
    """
    for key, value in env:
        if key.endswith("_HOME"):
            cleaned = sanitize_home_value(value)
            if cleaned:
                return Path(cleaned)
    return install_dir


def sanitize_home_value(value: str) -> str:
    """Strip shell references and list separators from an env value.

    ``/opt/java/bin:$PATH`` → ``/opt/java/bin``
    ``C:\\java\\bin;%PATH%`` → ``C:\\java\\bin``
    """
    cleaned = value.strip()

    for delimiter in ("$", "%"):
        idx = cleaned.find(delimiter)
        if idx != -1:
            cleaned = cleaned[:idx]

    for separator in (":", ";"):
        idx = _find_separator(cleaned, separator)
        if idx != -1:
            cleaned = cleaned[:idx]

    return cleaned.strip().rstrip("/\\").strip()


def _find_separator(value: str, separator: str) -> int:
    if separator != ":":
        return value.find(separator)
    for idx, ch in enumerate(value):
        if ch == ":" and not _is_drive_colon(value, idx):
            return idx
    return -1


def _is_drive_colon(value: str, idx: int) -> bool:
    # "C:\" or "C:/"
    return idx == 1 and value[0].isascii() and value[0].isalpha() and value[2:3] in ("\\", "/")
