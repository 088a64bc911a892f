"""
HotReload Local Host Adapters.

Disk- and process-backed implementations of the host capabilities that
do not depend on a particular application: manifests on disk, a JSON
preferences file, debug flags in the environment and logged notices.
Requires Python 3.11+.
"""

import asyncio
import json
import os
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from reloader.host import ExtensionLifecycle, HostCapabilities, SettingsPanels
from reloader.models import ExtensionManifest, ScrollOffsets
from utils.config import Settings, get_settings
from utils.logger import LoggerMixin
from watcher.file_watcher import LocalFileSystem


class ManifestFile(BaseModel):
    """Contents of an extension's manifest file."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
    version: str | None = None


class DirectoryExtensionCatalog(LoggerMixin):
    """Reads ``<extensions folder>/<dir>/<manifest file>`` on every call."""

    def __init__(
        self,
        base_path: Path,
        extensions_folder: str = "plugins",
        manifest_file: str = "manifest.json",
    ) -> None:
        self._base_path = base_path
        self._extensions_folder = extensions_folder.strip("/")
        self._manifest_file = manifest_file

    def extensions_folder(self) -> str:
        return self._extensions_folder

    def manifests(self) -> dict[str, ExtensionManifest]:
        root = self._base_path / self._extensions_folder
        found: dict[str, ExtensionManifest] = {}
        try:
            entries = sorted(root.iterdir())
        except OSError:
            return found

        for entry in entries:
            manifest_path = entry / self._manifest_file
            if not manifest_path.is_file():
                continue
            try:
                manifest = ManifestFile.model_validate_json(manifest_path.read_bytes())
            except (OSError, ValidationError) as e:
                self.log.warning("manifest_invalid", path=str(manifest_path), error=str(e))
                continue
            found[manifest.id] = ExtensionManifest(
                id=manifest.id,
                dir=f"{self._extensions_folder}/{entry.name}",
            )
        return found


class JsonSettingsStore(LoggerMixin):
    """Persists a JSON object to a single file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    async def load_data(self) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read)

    def _read(self) -> dict[str, Any] | None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            self.log.warning("settings_unreadable", path=str(self._path), error=str(e))
            return None
        return data if isinstance(data, dict) else None

    async def save_data(self, data: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, data)

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)


class EnvironmentDebugFlag:
    """
    Debug flags stored in the process environment.

    ``debug-plugin`` maps to the ``DEBUG_PLUGIN`` variable.
    """

    def __init__(self, environ: MutableMapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    @staticmethod
    def variable(name: str) -> str:
        return name.upper().replace("-", "_")

    def get(self, name: str) -> str | None:
        return self._environ.get(self.variable(name))

    def set(self, name: str, value: str) -> None:
        self._environ[self.variable(name)] = value

    def remove(self, name: str) -> None:
        self._environ.pop(self.variable(name), None)


class LogNotifier(LoggerMixin):
    """Shows notices as info log entries."""

    def notice(self, message: str) -> None:
        self.log.info("notice", message=message)


class HeadlessPanels:
    """Settings window for hosts that have none: never shown, nothing active."""

    def active_panel_id(self) -> str | None:
        return None

    def is_shown(self) -> bool:
        return False

    def scroll_offsets(self) -> ScrollOffsets:
        return ScrollOffsets()

    def open_panel(self, extension_id: str) -> bool:
        return False

    def scroll_to(self, offsets: ScrollOffsets) -> None:
        return None


def build_local_host(
    lifecycle: ExtensionLifecycle,
    panels: SettingsPanels | None = None,
    settings: Settings | None = None,
) -> tuple[HostCapabilities, LocalFileSystem]:
    """
    Assemble host capabilities around a local data directory.

    The extension lifecycle always belongs to the embedding application.

    Args:
        lifecycle: Enables and disables extensions
        panels: Settings window, if the application has one
        settings: Application settings (defaults to global settings)

    Returns:
        The capabilities and the file system, which the caller starts and stops
    """
    settings = settings or get_settings()
    base_path = settings.local_host.base_path

    fs = LocalFileSystem(
        base_path,
        recursive=not settings.reloader.explicit_watch_needed,
    )
    host = HostCapabilities(
        catalog=DirectoryExtensionCatalog(
            base_path,
            extensions_folder=settings.local_host.extensions_folder,
            manifest_file=settings.reloader.manifest_file,
        ),
        fs=fs,
        lifecycle=lifecycle,
        panels=panels or HeadlessPanels(),
        store=JsonSettingsStore(base_path / settings.local_host.data_file),
        debug_flags=EnvironmentDebugFlag(),
        notifier=LogNotifier(),
    )
    return host, fs
