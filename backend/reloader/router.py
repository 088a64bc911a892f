"""
HotReload Change Event Router.

Classifies raw filesystem events by path shape and dispatches them.
Requires Python 3.11+.
"""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from reloader.host import ExtensionCatalog
from reloader.registry import DirectoryWatcher, ExtensionRegistry
from reloader.version_checker import VersionChecker
from utils.logger import LoggerMixin


class Route(str, Enum):
    """What the router did with an event."""

    IGNORED = "ignored"
    WATCH = "watch"
    RESCAN = "rescan"
    VERSION_CHECK = "version_check"


class ChangeEventRouter(LoggerMixin):
    """
    Routes ``{root}/{extension dir}/{file name}`` events.

    Path-shape checks happen before any stat call, so frequent saves of
    tracked files stay cheap while installs and uninstalls fall through
    to a full rescan.
    """

    def __init__(
        self,
        catalog: ExtensionCatalog,
        registry: ExtensionRegistry,
        checker: VersionChecker,
        watcher: DirectoryWatcher,
        request_rescan: Callable[[], Any],
        tracked_files: Iterable[str] = ("main.js", "styles.css"),
        structural_files: Iterable[str] = ("manifest.json", ".hotreload", ".git"),
    ) -> None:
        """
        Initialize the router.

        Args:
            catalog: Provides the extensions root
            registry: Resolves directory names to extension ids
            checker: Version checker for tracked file edits
            watcher: Watches newly appearing extension directories
            request_rescan: Debounced registry rescan
            tracked_files: File names that may carry a real change
            structural_files: File names whose change invalidates the registry
        """
        self._catalog = catalog
        self._registry = registry
        self._checker = checker
        self._watcher = watcher
        self._request_rescan = request_rescan
        self._tracked_files = frozenset(tracked_files)
        self._structural_files = frozenset(structural_files)

    async def on_event(self, raw_path: str) -> Route:
        """
        Handle one raw filesystem event.

        Args:
            raw_path: Host-relative path that changed

        Returns:
            The route taken
        """
        root = self._catalog.extensions_folder().rstrip("/") + "/"
        if not raw_path.startswith(root):
            return Route.IGNORED

        parts = raw_path[len(root):].split("/")
        if len(parts) == 1:
            if parts[0]:
                await self._watcher.watch(raw_path)
                return Route.WATCH
            return Route.IGNORED
        if len(parts) != 2:
            return Route.IGNORED

        directory_name, file_name = parts
        extension_id = self._registry.resolve(directory_name)

        if file_name in self._structural_files or extension_id is None:
            self.log.debug("structural_change", path=raw_path)
            self._request_rescan()
            return Route.RESCAN

        if file_name not in self._tracked_files:
            return Route.IGNORED

        await self._checker.check_version(extension_id)
        return Route.VERSION_CHECK
