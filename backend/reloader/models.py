"""
HotReload Data Models.

Defines the records exchanged between the host and the reload engine.
Extension paths are host-relative strings with POSIX separators.
Requires Python 3.11+.
"""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel


class FileType(str, Enum):
    """Kinds of filesystem entries reported by the host."""

    FILE = "file"
    FOLDER = "folder"


@dataclass(slots=True, frozen=True)
class FileStat:
    """Result of a host stat call."""

    type: FileType
    mtime: float
    size: int = 0


@dataclass(slots=True, frozen=True)
class ExtensionManifest:
    """Host metadata for one installed extension."""

    id: str
    dir: str

    @property
    def directory_name(self) -> str:
        """Last segment of the extension's directory."""
        return self.dir.rstrip("/").rsplit("/", 1)[-1]


@dataclass(slots=True, frozen=True)
class ExtensionRecord:
    """One extension as seen by the most recent registry scan."""

    id: str
    directory_name: str
    is_auto_reload_enabled: bool = False


@dataclass(slots=True, frozen=True)
class WatchedFileStat:
    """Last known modification time of a tracked file."""

    path: str
    modified_time: float


@dataclass(slots=True)
class ScrollOffsets:
    """Scroll position of a settings panel."""

    top: float = 0.0
    left: float = 0.0


@dataclass(slots=True)
class ReloadSession:
    """
    UI state captured at the start of one reload cycle.

    Lives only for the duration of that cycle.
    """

    extension_id: str
    was_panel_active: bool = False
    scroll: ScrollOffsets = field(default_factory=ScrollOffsets)


class ReloadPreferences(BaseModel):
    """User-facing toggles, persisted through the host settings store."""

    should_reopen_active_panel: bool = True
    should_show_reload_notice: bool = True
