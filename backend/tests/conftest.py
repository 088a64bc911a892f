"""
HotReload Test Configuration.

Pytest fixtures and an in-memory host.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from reloader.engine import HotReloader
from reloader.models import ExtensionManifest, FileStat, FileType, ScrollOffsets
from utils.config import ReloaderSettings


class FakeCatalog:
    """Manifests held in memory."""

    def __init__(self, folder: str = "plugins") -> None:
        self.folder = folder
        self.entries: dict[str, ExtensionManifest] = {}

    def extensions_folder(self) -> str:
        return self.folder

    def manifests(self) -> dict[str, ExtensionManifest]:
        return dict(self.entries)


class FakeFileSystem:
    """Files, folders and watches held in memory."""

    def __init__(self) -> None:
        self.entries: dict[str, FileStat] = {}
        self.watched: set[str] = set()
        self.watch_calls: list[str] = []
        self.symlinks: set[str] = set()
        self.failing_paths: set[str] = set()
        self.stat_calls: list[str] = []
        self.handlers: list[Callable[[str], Any]] = []

    def add_file(self, path: str, mtime: float = 1.0) -> None:
        self.entries[path] = FileStat(type=FileType.FILE, mtime=mtime)

    def add_folder(self, path: str) -> None:
        self.entries[path] = FileStat(type=FileType.FOLDER, mtime=0.0)

    def remove(self, path: str) -> None:
        self.entries.pop(path, None)

    async def exists(self, path: str) -> bool:
        return path in self.entries

    async def stat(self, path: str) -> FileStat | None:
        self.stat_calls.append(path)
        if path in self.failing_paths:
            raise PermissionError(path)
        return self.entries.get(path)

    def is_watched(self, path: str) -> bool:
        return path in self.watched

    def start_watch(self, path: str) -> None:
        self.watch_calls.append(path)
        self.watched.add(path)

    def is_symlink(self, path: str) -> bool:
        return path in self.symlinks

    def subscribe(self, handler: Callable[[str], Any]) -> Callable[[], None]:
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    def emit(self, path: str) -> None:
        for handler in list(self.handlers):
            handler(path)


class FakePanels:
    """Settings window whose active panel closes when its extension is disabled."""

    def __init__(self) -> None:
        self.active: str | None = None
        self.shown = False
        self.offsets = ScrollOffsets()
        self.opened: list[str] = []
        self.scrolled: list[ScrollOffsets] = []

    def active_panel_id(self) -> str | None:
        return self.active

    def is_shown(self) -> bool:
        return self.shown

    def scroll_offsets(self) -> ScrollOffsets:
        return ScrollOffsets(top=self.offsets.top, left=self.offsets.left)

    def open_panel(self, extension_id: str) -> bool:
        self.opened.append(extension_id)
        self.active = extension_id
        return True

    def scroll_to(self, offsets: ScrollOffsets) -> None:
        self.scrolled.append(offsets)
        self.offsets = offsets


class FakeDebugFlags:
    """Flags in a dict, remembering every value seen."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.removed: list[str] = []

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def set(self, name: str, value: str) -> None:
        self.values[name] = value

    def remove(self, name: str) -> None:
        self.removed.append(name)
        self.values.pop(name, None)


class FakeLifecycle:
    """
    Extension manager recording a global call sequence.

    Each call yields to the event loop so concurrent reloads would
    interleave if nothing serialized them.
    """

    def __init__(self, panels: FakePanels, flags: FakeDebugFlags) -> None:
        self.enabled: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.flag_during_enable: list[str | None] = []
        self.fail_enable: set[str] = set()
        self.fail_disable: set[str] = set()
        self.delay = 0.01
        self._panels = panels
        self._flags = flags

    def is_enabled(self, extension_id: str) -> bool:
        return extension_id in self.enabled

    async def disable(self, extension_id: str) -> None:
        self.calls.append(("disable", extension_id))
        await asyncio.sleep(self.delay)
        if extension_id in self.fail_disable:
            raise RuntimeError(f"cannot disable {extension_id}")
        self.enabled.discard(extension_id)
        if self._panels.active == extension_id:
            self._panels.active = None

    async def enable(self, extension_id: str) -> None:
        self.calls.append(("enable", extension_id))
        self.flag_during_enable.append(self._flags.get("debug-plugin"))
        await asyncio.sleep(self.delay)
        if extension_id in self.fail_enable:
            raise RuntimeError(f"cannot enable {extension_id}")
        self.enabled.add(extension_id)


class FakeStore:
    """Settings persistence held in memory."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data = data
        self.saved: list[dict[str, Any]] = []

    async def load_data(self) -> dict[str, Any] | None:
        return self.data

    async def save_data(self, data: dict[str, Any]) -> None:
        self.saved.append(data)
        self.data = data


class FakeNotifier:
    """Collects notices."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notice(self, message: str) -> None:
        self.messages.append(message)


class FakeHost:
    """Every capability the engine needs, in memory."""

    def __init__(self) -> None:
        self.catalog = FakeCatalog()
        self.fs = FakeFileSystem()
        self.panels = FakePanels()
        self.debug_flags = FakeDebugFlags()
        self.lifecycle = FakeLifecycle(self.panels, self.debug_flags)
        self.store = FakeStore()
        self.notifier = FakeNotifier()
        self.fs.add_folder(self.catalog.folder)

    def install(
        self,
        extension_id: str,
        directory_name: str | None = None,
        marker: str | None = ".hotreload",
        enabled: bool = True,
        styles: bool = True,
        mtime: float = 1.0,
    ) -> str:
        """Install an extension and return its directory."""
        directory = f"{self.catalog.folder}/{directory_name or extension_id}"
        self.catalog.entries[extension_id] = ExtensionManifest(id=extension_id, dir=directory)
        self.fs.add_folder(directory)
        self.fs.add_file(f"{directory}/manifest.json")
        self.fs.add_file(f"{directory}/main.js", mtime)
        if styles:
            self.fs.add_file(f"{directory}/styles.css", mtime)
        if marker:
            self.fs.add_file(f"{directory}/{marker}")
        if enabled:
            self.lifecycle.enabled.add(extension_id)
        return directory

    def uninstall(self, extension_id: str) -> None:
        manifest = self.catalog.entries.pop(extension_id)
        for path in [p for p in self.fs.entries if p.startswith(manifest.dir)]:
            self.fs.remove(path)
        self.lifecycle.enabled.discard(extension_id)


@pytest.fixture
def host() -> FakeHost:
    """Create an in-memory host."""
    return FakeHost()


@pytest.fixture
def reloader_settings() -> ReloaderSettings:
    """Reloader settings with short cooldowns."""
    return ReloaderSettings(
        rescan_cooldown_ms=50,
        reload_cooldown_ms=100,
        explicit_watch_needed=True,
    )


@pytest.fixture
def engine(host: FakeHost, reloader_settings: ReloaderSettings) -> HotReloader:
    """Create an engine bound to the in-memory host."""
    return HotReloader(host, settings=reloader_settings)
