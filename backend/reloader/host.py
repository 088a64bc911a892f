"""
HotReload Host Capabilities.

Narrow contracts for everything the reload engine needs from its host.
The engine depends only on these signatures, never on a concrete host.
Requires Python 3.11+.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from reloader.models import ExtensionManifest, FileStat, ScrollOffsets

RawEventHandler = Callable[[str], Any]
Unsubscribe = Callable[[], None]


@runtime_checkable
class ExtensionCatalog(Protocol):
    """Installed extensions known to the host."""

    def extensions_folder(self) -> str:
        """Host-relative path of the extensions root."""
        ...

    def manifests(self) -> Mapping[str, ExtensionManifest]:
        """Current manifests keyed by extension id."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Host filesystem access and raw watch primitive."""

    async def exists(self, path: str) -> bool: ...

    async def stat(self, path: str) -> FileStat | None: ...

    def is_watched(self, path: str) -> bool: ...

    def start_watch(self, path: str) -> None: ...

    def is_symlink(self, path: str) -> bool: ...

    def subscribe(self, handler: RawEventHandler) -> Unsubscribe:
        """Deliver one call per changed host-relative path."""
        ...


@runtime_checkable
class ExtensionLifecycle(Protocol):
    """Enable and disable extensions by id."""

    def is_enabled(self, extension_id: str) -> bool: ...

    async def disable(self, extension_id: str) -> None: ...

    async def enable(self, extension_id: str) -> None: ...


@runtime_checkable
class SettingsPanels(Protocol):
    """The host's settings window and its per-extension panels."""

    def active_panel_id(self) -> str | None: ...

    def is_shown(self) -> bool: ...

    def scroll_offsets(self) -> ScrollOffsets: ...

    def open_panel(self, extension_id: str) -> bool:
        """Open an extension's panel; False if it has none."""
        ...

    def scroll_to(self, offsets: ScrollOffsets) -> None: ...


@runtime_checkable
class SettingsStore(Protocol):
    """Key-value persistence for this engine's own preferences."""

    async def load_data(self) -> dict[str, Any] | None: ...

    async def save_data(self, data: dict[str, Any]) -> None: ...


@runtime_checkable
class DebugFlag(Protocol):
    """Process-wide string flags controlling diagnostic verbosity."""

    def get(self, name: str) -> str | None: ...

    def set(self, name: str, value: str) -> None: ...

    def remove(self, name: str) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    """User-visible, non-interrupting notices."""

    def notice(self, message: str) -> None: ...


class ExtensionHost(Protocol):
    """Every capability the engine consumes, bundled for injection."""

    catalog: ExtensionCatalog
    fs: FileSystem
    lifecycle: ExtensionLifecycle
    panels: SettingsPanels
    store: SettingsStore
    debug_flags: DebugFlag
    notifier: Notifier


@dataclass
class HostCapabilities:
    """Plain bundle of capability implementations satisfying ExtensionHost."""

    catalog: ExtensionCatalog
    fs: FileSystem
    lifecycle: ExtensionLifecycle
    panels: SettingsPanels
    store: SettingsStore
    debug_flags: DebugFlag
    notifier: Notifier
