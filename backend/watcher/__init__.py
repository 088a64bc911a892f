"""
HotReload File Watcher Package.

Debouncing, serial execution and local file system monitoring.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer, DebounceState
from watcher.file_watcher import LocalFileSystem
from watcher.task_queue import SerialTaskQueue

__all__ = ["Debouncer", "DebounceState", "LocalFileSystem", "SerialTaskQueue"]
