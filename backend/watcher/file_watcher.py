"""
HotReload Local File System.

Host filesystem capability backed by the local disk, using watchdog
for change notification.
Requires Python 3.11+.
"""

import asyncio
import os
import stat as stat_module
from collections.abc import Callable
from pathlib import Path
from typing import Any

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from reloader.models import FileStat, FileType
from utils.logger import LoggerMixin

_RELEVANT_EVENTS = frozenset(
    {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED, EVENT_TYPE_MOVED}
)


class RawEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Forwards every relevant watchdog event as a plain absolute path.

    Moves are reported twice, once for the source and once for the
    destination. Open/close notifications are dropped.
    """

    def __init__(
        self,
        emit: Callable[[str], None],
        on_path_gone: Callable[[str], None] | None = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            emit: Called from the observer thread with each changed path
            on_path_gone: Called with each path that was deleted or moved away
        """
        super().__init__()
        self._emit = emit
        self._on_path_gone = on_path_gone

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any file/directory event."""
        if event.event_type not in _RELEVANT_EVENTS:
            return

        src_path = os.fsdecode(event.src_path)
        # A deleted watched directory may be reported as a file by its own watch
        if event.event_type in (EVENT_TYPE_DELETED, EVENT_TYPE_MOVED) and self._on_path_gone:
            self._on_path_gone(src_path)

        self._emit(src_path)
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            self._emit(os.fsdecode(dest_path))


class LocalFileSystem(LoggerMixin):
    """
    Local disk access relative to a host data directory.

    Paths going in and out are base-relative with POSIX separators.
    Events arrive on watchdog's observer thread and are handed to
    subscribers on the asyncio event loop.
    """

    def __init__(
        self,
        base_path: Path,
        recursive: bool = False,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Initialize the file system.

        Args:
            base_path: Host data directory every path is relative to
            recursive: Whether the base watch covers subdirectories
            loop: Event loop subscribers run on (defaults to the running loop at start)
        """
        # Not resolved: events under a symlinked directory keep the link's path
        self._base_path = Path(os.path.abspath(base_path))
        self._recursive = recursive
        self._loop = loop
        self._handler = RawEventHandler(self._dispatch, self._dispatch_path_gone)
        self._observer: BaseObserver | None = None
        self._watches: dict[str, ObservedWatch] = {}
        self._subscribers: list[Callable[[str], Any]] = []

    @property
    def base_path(self) -> Path:
        return self._base_path

    def start(self) -> None:
        """Start the observer with a watch on the base directory."""
        if self._observer is not None:
            return

        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        self._observer = Observer()
        self._observer.schedule(
            self._handler,
            str(self._base_path),
            recursive=self._recursive,
        )
        self._observer.start()

        self.log.info(
            "file_system_watch_started",
            path=str(self._base_path),
            recursive=self._recursive,
        )

    def stop(self) -> None:
        """Stop the observer and drop every watch."""
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self._watches.clear()
        self.log.info("file_system_watch_stopped")

    def absolute(self, path: str) -> Path:
        """Convert a base-relative path to an absolute one."""
        return self._base_path / path

    def relative(self, path: str) -> str | None:
        """Convert an absolute path to a base-relative POSIX path, or None if outside."""
        try:
            return Path(path).relative_to(self._base_path).as_posix()
        except ValueError:
            return None

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.lexists, self.absolute(path))

    async def stat(self, path: str) -> FileStat | None:
        return await asyncio.to_thread(self._stat, path)

    def _stat(self, path: str) -> FileStat | None:
        try:
            st = os.stat(self.absolute(path))
        except OSError:
            return None
        kind = FileType.FOLDER if stat_module.S_ISDIR(st.st_mode) else FileType.FILE
        return FileStat(type=kind, mtime=st.st_mtime, size=st.st_size)

    def is_watched(self, path: str) -> bool:
        return path in self._watches

    def start_watch(self, path: str) -> None:
        """
        Watch one directory (not its subdirectories).

        Raises:
            RuntimeError: If the observer has not been started
            OSError: If the directory cannot be watched
        """
        if self._observer is None:
            raise RuntimeError("LocalFileSystem.start() must be called before start_watch()")
        if path in self._watches:
            return

        self._watches[path] = self._observer.schedule(
            self._handler,
            str(self.absolute(path)),
            recursive=False,
        )

    def is_symlink(self, path: str) -> bool:
        try:
            return stat_module.S_ISLNK(os.lstat(self.absolute(path)).st_mode)
        except OSError:
            return False

    def subscribe(self, handler: Callable[[str], Any]) -> Callable[[], None]:
        """
        Register a handler for changed paths.

        Returns:
            Function that removes the handler
        """
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    def _dispatch(self, absolute_path: str) -> None:
        # Observer thread
        path = self.relative(absolute_path)
        if path is None or path == "." or self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._deliver, path)

    def _dispatch_path_gone(self, absolute_path: str) -> None:
        # Observer thread; scheduled ahead of the matching event delivery
        path = self.relative(absolute_path)
        if path is None or self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._drop_watch, path)

    def _drop_watch(self, path: str) -> None:
        """Forget the watch of a directory that no longer exists, so it can be watched again."""
        watch = self._watches.pop(path, None)
        if watch is None or self._observer is None:
            return

        try:
            self._observer.unschedule(watch)
        except KeyError:
            self.log.debug("watch_already_removed", path=path)
            return
        self.log.debug("watch_dropped", path=path)

    def _deliver(self, path: str) -> None:
        for handler in list(self._subscribers):
            try:
                handler(path)
            except Exception as e:
                self.log.error("event_handler_failed", path=path, error=str(e))

    @property
    def is_running(self) -> bool:
        """Check if the observer is running."""
        return self._observer is not None

    def __enter__(self) -> "LocalFileSystem":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
