"""
Logging configuration — handlers for the ``jcvm`` logger hierarchy.

Library modules only do ``logger = logging.getLogger(__name__)``, so every
record lands under ``jcvm.*``.  The embedding application (a CLI, a shell
hook, a test) calls ``setup_logging`` once; it configures the ``jcvm``
package logger and leaves the root logger to the host.

Levels are resolved in precedence order:
    explicit argument  >  JCVM_LOG_LEVEL env var  >  WARNING (default)

Individual components can be raised or lowered on top of that:

    JCVM_LOG_LEVELS="plugins=DEBUG,core.services.download=ERROR"

Optional file output via JCVM_LOG_FILE / JCVM_LOG_FILE_LEVEL env vars.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

PACKAGE_LOGGER = "jcvm"

# ── Format strings ──────────────────────────────────────────────

# WARNING level: one line per problem, prefixed like a CLI message
_FMT_MINIMAL = "jcvm: %(message)s"

# INFO level: timestamp plus the component that acted
_FMT_VERBOSE = "%(asctime)s [%(component)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level and file output: component with line number
_FMT_DETAIL = "%(asctime)s %(levelname)-5s %(component)s:%(lineno)d %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# Set on handlers this module installs, so repeat calls replace them
_OWNED = "_jcvm_owned"


class _ComponentFilter(logging.Filter):
    """Adds ``record.component`` and applies per-component thresholds.

    ``component`` is the logger name below ``jcvm.``.  A record passes
    if it meets the level of the most specific matching override, or
    the handler's default level when none matches.
    """

    def __init__(self, default: int, overrides: dict[str, int]):
        super().__init__()
        self._default = default
        # Longest first, so "plugins.languages" beats "plugins"
        self._overrides = sorted(overrides.items(), key=lambda kv: len(kv[0]), reverse=True)

    def threshold(self, component: str) -> int:
        for prefix, level in self._overrides:
            if component == prefix or component.startswith(prefix + "."):
                return level
        return self._default

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(PACKAGE_LOGGER + "."):
            name = name[len(PACKAGE_LOGGER) + 1:]
        record.component = name
        return record.levelno >= self.threshold(name)


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
    component_levels: dict[str, str] | None = None,
    stream: TextIO | None = None,
    propagate: bool = False,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the ``jcvm`` logger.

    Calling it again replaces the handlers a previous call installed;
    handlers added by anyone else are left in place.

    Args:
        level: Console level name. Defaults to ``JCVM_LOG_LEVEL`` or WARNING.
        log_file: Optional path to a log file. Defaults to ``JCVM_LOG_FILE``.
        log_file_level: Optional separate level for the log file.
            Defaults to ``JCVM_LOG_FILE_LEVEL``, then to ``level``.
        component_levels: Per-component levels keyed by the logger name
            below ``jcvm.`` (``"plugins"``, ``"core.services.download"``).
            They apply to both handlers.  Defaults to ``JCVM_LOG_LEVELS``.
        stream: Console stream; stderr by default.
        propagate: Also pass jcvm records on to the host's root handlers.

    Returns:
        The configured ``jcvm`` logger.
    """
    level = level or os.environ.get("JCVM_LOG_LEVEL")
    log_file = log_file or os.environ.get("JCVM_LOG_FILE")
    log_file_level = log_file_level or os.environ.get("JCVM_LOG_FILE_LEVEL")
    if component_levels is None:
        component_levels = parse_component_levels(os.environ.get("JCVM_LOG_LEVELS", ""))

    numeric_level = _parse_level(level)
    overrides = {comp: _parse_level(name) for comp, name in component_levels.items()}
    package = logging.getLogger(PACKAGE_LOGGER)

    for handler in [h for h in package.handlers if getattr(h, _OWNED, False)]:
        package.removeHandler(handler)
        handler.close()

    # ── Console handler ─────────────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DETAIL, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(stream or sys.stderr)
    _own(console, fmt, datefmt, _ComponentFilter(numeric_level, overrides))
    package.addHandler(console)

    effective_level = min([numeric_level, *overrides.values()])

    # ── File handler (optional) ─────────────────────────────────
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        _own(fh, _FMT_DETAIL, _DATEFMT_FILE, _ComponentFilter(file_level, overrides))
        package.addHandler(fh)

    # Thresholds live in the handler filters; the logger only gates the floor
    package.setLevel(effective_level)
    package.propagate = propagate
    return package


def parse_component_levels(spec: str) -> dict[str, str]:
    """``"plugins=DEBUG,core.services.download=ERROR"`` → {component: level}.

    Blank or malformed entries are skipped.
    """
    levels: dict[str, str] = {}
    for entry in spec.split(","):
        component, sep, name = entry.partition("=")
        component = component.strip().removeprefix(PACKAGE_LOGGER + ".")
        if sep and component and name.strip():
            levels[component] = name.strip()
    return levels


def _own(
    handler: logging.Handler,
    fmt: str,
    datefmt: str | None,
    component_filter: _ComponentFilter,
) -> None:
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    handler.addFilter(component_filter)
    setattr(handler, _OWNED, True)


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
