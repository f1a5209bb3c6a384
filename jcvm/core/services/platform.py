"""
Host platform probe — maps ``platform.system()`` / ``platform.machine()``
onto jcvm's ``Platform`` and ``Architecture`` enums.
"""

from __future__ import annotations

import logging
import platform as _platform

from jcvm.core.errors import UnsupportedPlatform
from jcvm.core.models.tool import Architecture, Platform

logger = logging.getLogger(__name__)

_OS_MAP = {
    "darwin": Platform.MAC,
    "linux": Platform.LINUX,
    "windows": Platform.WINDOWS,
}

_ARCH_MAP = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "aarch64": Architecture.AARCH64,
    "arm64": Architecture.AARCH64,
    "i386": Architecture.X86,
    "i686": Architecture.X86,
    "x86": Architecture.X86,
    "armv7l": Architecture.ARM,
    "armv6l": Architecture.ARM,
    "arm": Architecture.ARM,
}


def detect_platform(
    system: str | None = None,
    machine: str | None = None,
) -> tuple[Platform, Architecture]:
    """Return the host (platform, architecture).

    ``system`` and ``machine`` override the probed values, mainly for tests.

    Raises:
        UnsupportedPlatform: If either value has no jcvm equivalent.
    """
    system = (system if system is not None else _platform.system()).lower()
    machine = (machine if machine is not None else _platform.machine()).lower()

    os_ = _OS_MAP.get(system)
    arch = _ARCH_MAP.get(machine)
    if os_ is None or arch is None:
        raise UnsupportedPlatform(system, machine)
    return os_, arch


def is_windows() -> bool:
    return _platform.system().lower() == "windows"
