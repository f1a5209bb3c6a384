"""
Plugin registry — the catalogue of tool plugins.

The registry maps plugin id → plugin and plugin id → metadata.  Both
maps change together inside one write section, so a reader never sees
a plugin without its metadata.

Access goes through a reader/writer lock: any number of lookups run
concurrently, registration is exclusive and queues ahead of new lookups.
Acquisition is bounded by a timeout and surfaces as ``PluginError``
instead of hanging.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from jcvm.core.errors import PluginError, PluginNotFound
from jcvm.core.models.plugin import PluginMetadata
from jcvm.core.models.tool import Architecture, Platform
from jcvm.plugins.base import ToolPlugin

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


class _ReadWriteLock:
    """Many readers or one writer, with bounded waits.

    Writers take priority: once a writer is waiting, new readers queue
    behind it.  Reads are therefore not reentrant while a writer waits.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self, timeout: float) -> bool:
        with self._cond:
            ok = self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0,
                timeout=timeout,
            )
            if ok:
                self._readers += 1
            return ok

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: float) -> bool:
        with self._cond:
            self._writers_waiting += 1
            try:
                ok = self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0,
                    timeout=timeout,
                )
            finally:
                self._writers_waiting -= 1
            if ok:
                self._writer = True
            elif self._writers_waiting == 0:
                # Readers held back by this writer may proceed
                self._cond.notify_all()
            return ok

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class PluginRegistry:
    """Thread-safe store of registered tool plugins.

    Features:
        - Register/unregister plugins by id
        - Lookup of plugins and their metadata
        - Filtering by declared platform support
    """

    def __init__(self, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self._plugins: dict[str, ToolPlugin] = {}
        self._metadata: dict[str, PluginMetadata] = {}
        self._lock = _ReadWriteLock()
        self._lock_timeout = lock_timeout

    @contextmanager
    def _reading(self, context: str) -> Iterator[None]:
        if not self._lock.acquire_read(self._lock_timeout):
            raise PluginError(context, "timed out waiting for registry read lock")
        try:
            yield
        finally:
            self._lock.release_read()

    @contextmanager
    def _writing(self, context: str) -> Iterator[None]:
        if not self._lock.acquire_write(self._lock_timeout):
            raise PluginError(context, "timed out waiting for registry write lock")
        try:
            yield
        finally:
            self._lock.release_write()

    # ── Mutation ────────────────────────────────────────────────

    def register(self, plugin: ToolPlugin, metadata: PluginMetadata) -> None:
        """Register a plugin under ``metadata.id``.

        Raises:
            PluginError: If the metadata id differs from the plugin's tool
                id, or the id is already taken.
        """
        tool_id = plugin.info().id
        if metadata.id != tool_id:
            raise PluginError(
                metadata.id,
                f"metadata id '{metadata.id}' does not match tool id '{tool_id}'",
            )

        with self._writing(metadata.id):
            if metadata.id in self._plugins:
                raise PluginError(metadata.id, "already registered")
            self._plugins[metadata.id] = plugin
            self._metadata[metadata.id] = metadata

        logger.debug("Registered plugin: %s", metadata.id)

    def unregister(self, plugin_id: str) -> None:
        """Remove a plugin; unknown ids are ignored."""
        with self._writing(plugin_id):
            removed = self._plugins.pop(plugin_id, None)
            self._metadata.pop(plugin_id, None)
        if removed is not None:
            logger.debug("Unregistered plugin: %s", plugin_id)

    # ── Lookup ──────────────────────────────────────────────────

    def get(self, plugin_id: str) -> ToolPlugin:
        """Look up a plugin by id.

        Raises:
            PluginNotFound: If nothing is registered under ``plugin_id``.
        """
        with self._reading(plugin_id):
            plugin = self._plugins.get(plugin_id)
        if plugin is None:
            raise PluginNotFound(plugin_id)
        return plugin

    def get_metadata(self, plugin_id: str) -> PluginMetadata:
        """Look up a plugin's metadata by id.

        Raises:
            PluginNotFound: If nothing is registered under ``plugin_id``.
        """
        with self._reading(plugin_id):
            metadata = self._metadata.get(plugin_id)
        if metadata is None:
            raise PluginNotFound(plugin_id)
        return metadata

    def has_plugin(self, plugin_id: str) -> bool:
        with self._reading(plugin_id):
            return plugin_id in self._plugins

    def list_plugins(self) -> list[ToolPlugin]:
        """Snapshot of all registered plugins (unordered)."""
        with self._reading("registry"):
            return list(self._plugins.values())

    def list_metadata(self) -> list[PluginMetadata]:
        """Snapshot of all registered metadata (unordered)."""
        with self._reading("registry"):
            return list(self._metadata.values())

    def get_plugins_for_platform(self, platform: Platform, arch: Architecture) -> list[ToolPlugin]:
        """Plugins whose metadata declares support for ``platform``/``arch``."""
        with self._reading("registry"):
            return [
                self._plugins[pid]
                for pid, meta in self._metadata.items()
                if meta.supports(platform, arch)
            ]

    def __len__(self) -> int:
        with self._reading("registry"):
            return len(self._plugins)

    def __contains__(self, plugin_id: object) -> bool:
        return isinstance(plugin_id, str) and self.has_plugin(plugin_id)
