"""
HotReload Version Checker.

Detects real content changes to tracked extension files by comparing
modification times against a stat cache.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

from reloader.host import ExtensionCatalog, FileSystem
from reloader.models import FileStat, WatchedFileStat
from reloader.registry import ExtensionRegistry
from utils.logger import LoggerMixin


class VersionChecker(LoggerMixin):
    """
    Owns the stat cache for every tracked file of every extension.

    The first observation of a file only records a baseline. A later
    observation with a different modification time is a real change
    and requests a reload of the extension.
    """

    def __init__(
        self,
        catalog: ExtensionCatalog,
        fs: FileSystem,
        registry: ExtensionRegistry,
        request_reload: Callable[[str], Any],
        tracked_files: Iterable[str] = ("main.js", "styles.css"),
    ) -> None:
        """
        Initialize the version checker.

        Args:
            catalog: Source of current manifests
            fs: Host filesystem used for stat calls
            registry: Registry to update when an extension disappears
            request_reload: Called with an extension id on a real change
            tracked_files: File names checked inside each extension directory
        """
        self._catalog = catalog
        self._fs = fs
        self._registry = registry
        self._request_reload = request_reload
        self._tracked_files = tuple(tracked_files)
        # Cache: path -> last seen stat
        self._stat_cache: dict[str, WatchedFileStat] = {}
        # Extension id -> directory its cached paths live in
        self._directories: dict[str, str] = {}

    async def check_version(self, extension_id: str) -> bool:
        """
        Compare the tracked files of one extension against the cache.

        Args:
            extension_id: Extension to check

        Returns:
            True if a reload was requested
        """
        manifest = self._catalog.manifests().get(extension_id)
        if manifest is None:
            # Uninstalled: stop tracking it
            self._registry.forget(extension_id)
            purged = self.forget(extension_id)
            self.log.info("extension_uninstalled", extension_id=extension_id, purged=purged)
            return False

        directory = manifest.dir.rstrip("/")
        self._directories[extension_id] = directory

        changed: list[str] = []
        for file_name in self._tracked_files:
            path = f"{directory}/{file_name}"
            stat = await self._stat(path)
            if stat is None:
                continue

            cached = self._stat_cache.get(path)
            if cached is not None and cached.modified_time != stat.mtime:
                changed.append(file_name)
            self._stat_cache[path] = WatchedFileStat(path=path, modified_time=stat.mtime)

        if not changed:
            return False

        self.log.debug("extension_files_changed", extension_id=extension_id, files=changed)
        self._request_reload(extension_id)
        return True

    async def check_all(self) -> None:
        """Check every extension currently known to the registry."""
        await asyncio.gather(
            *(self.check_version(extension_id) for extension_id in self._registry.known_ids())
        )

    async def _stat(self, path: str) -> FileStat | None:
        try:
            return await self._fs.stat(path)
        except OSError as e:
            self.log.debug("stat_failed", path=path, error=str(e))
            return None

    def prune(self, known_dirs: Iterable[str]) -> int:
        """
        Drop cache entries of extension directories that no longer exist.

        Args:
            known_dirs: Directories of every currently installed extension

        Returns:
            Number of entries removed
        """
        keep = {d.rstrip("/") for d in known_dirs}
        self._directories = {
            extension_id: directory
            for extension_id, directory in self._directories.items()
            if directory in keep
        }
        retained = {
            path: stat
            for path, stat in self._stat_cache.items()
            if path.rsplit("/", 1)[0] in keep
        }
        removed = len(self._stat_cache) - len(retained)
        self._stat_cache = retained
        if removed:
            self.log.debug("stat_cache_pruned", removed=removed)
        return removed

    def forget(self, extension_id: str) -> int:
        """
        Drop the cached stats of one extension.

        Returns:
            Number of entries removed
        """
        directory = self._directories.pop(extension_id, None)
        if directory is None:
            return 0

        stale = [path for path in self._stat_cache if path.rsplit("/", 1)[0] == directory]
        for path in stale:
            del self._stat_cache[path]
        return len(stale)

    def get_stat(self, path: str) -> WatchedFileStat | None:
        """Get the cached stat for a path."""
        return self._stat_cache.get(path)

    def get_cache_stats(self) -> dict[str, int]:
        """Get statistics about the cache."""
        return {"cached_files": len(self._stat_cache)}
