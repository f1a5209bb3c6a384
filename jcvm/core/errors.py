"""
Error hierarchy — every failure jcvm raises derives from ``JcvmError``.

Single-target operations (install, uninstall, activate) let these
propagate to the caller.  Cross-tool sweeps catch them per tool and
report counts instead.
"""

from __future__ import annotations


class JcvmError(Exception):
    """Base class for all jcvm errors."""


class VersionNotFound(JcvmError):
    """No installed version matches the requested ``tool@version``."""

    def __init__(self, spec: str):
        self.spec = spec
        super().__init__(f"Version {spec} not found")


class VersionAlreadyInstalled(JcvmError):
    """The destination directory for a version already exists."""

    def __init__(self, version: str, path: str, tool: str | None = None):
        self.version = version
        self.path = path
        self.tool = tool
        subject = f"{tool} {version}" if tool else f"Version {version}"
        super().__init__(f"{subject} is already installed at {path}")


class InvalidVersion(JcvmError):
    """A version string could not be parsed."""

    def __init__(self, value: str, reason: str = ""):
        self.value = value
        message = f"Invalid version format: {value}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidAliasName(JcvmError):
    """An alias name is not a single safe path component."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid alias name: {name!r}")


class UnsupportedPlatform(JcvmError):
    """The host (or requested) platform/architecture is not supported."""

    def __init__(self, os: str, arch: str, tool: str | None = None):
        self.os = os
        self.arch = arch
        self.tool = tool
        if tool:
            super().__init__(f"Unsupported platform for {tool}: {os} {arch}")
        else:
            super().__init__(f"Unsupported platform: {os} {arch}")


class InvalidToolStructure(JcvmError):
    """An installation failed structural validation or lost its metadata."""

    def __init__(self, tool: str, message: str):
        self.tool = tool
        self.message = message
        super().__init__(f"Invalid {tool} installation: {message}")


class PluginNotFound(JcvmError):
    """No plugin is registered under the given id."""

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        super().__init__(f"Plugin '{plugin_id}' not found")


class ToolNotFound(PluginNotFound):
    """The tool manager was asked about a tool nobody registered."""

    def __init__(self, tool_id: str):
        JcvmError.__init__(self, f"Tool '{tool_id}' is not registered")
        self.plugin_id = tool_id
        self.tool_id = tool_id


class PluginError(JcvmError):
    """A plugin misbehaved or the registry could not serve a request."""

    def __init__(self, plugin: str, message: str):
        self.plugin = plugin
        self.message = message
        super().__init__(f"Plugin '{plugin}': {message}")


class DownloadFailed(JcvmError):
    """Fetching a URL failed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download from {url}: {reason}")


class ChecksumMismatch(JcvmError):
    """A downloaded file does not match its published checksum."""

    def __init__(self, file: str):
        self.file = file
        super().__init__(f"Checksum verification failed for {file}")


class ExtractionFailed(JcvmError):
    """An archive could not be unpacked."""

    def __init__(self, message: str):
        super().__init__(f"Failed to extract archive: {message}")


class ConfigError(JcvmError):
    """Raised when the jcvm configuration is invalid."""
