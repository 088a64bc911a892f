"""
HotReload Extension Registry.

Discovers installed extensions, decides which are opted into
auto-reload, and keeps their directories watched.
Requires Python 3.11+.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING

from reloader.host import ExtensionCatalog, FileSystem
from reloader.models import ExtensionRecord, FileStat, FileType
from utils.logger import LoggerMixin

if TYPE_CHECKING:
    from reloader.version_checker import VersionChecker


class ExtensionRegistry:
    """
    Snapshot of the most recent scan.

    Both mappings are replaced wholesale, never edited in place.
    """

    def __init__(self) -> None:
        # Cache: directory name -> record
        self._records: dict[str, ExtensionRecord] = {}
        self._enabled: frozenset[str] = frozenset()

    def replace(self, records: Iterable[ExtensionRecord]) -> None:
        """Install the result of a new scan."""
        records = list(records)
        self._records = {record.directory_name: record for record in records}
        self._enabled = frozenset(r.id for r in records if r.is_auto_reload_enabled)

    def forget(self, extension_id: str) -> None:
        """Drop an extension that no longer has a manifest."""
        self._records = {
            name: record for name, record in self._records.items() if record.id != extension_id
        }
        self._enabled = self._enabled - {extension_id}

    def resolve(self, directory_name: str) -> str | None:
        """Map an extension directory name to its id."""
        record = self._records.get(directory_name)
        return record.id if record is not None else None

    def is_auto_reload_enabled(self, extension_id: str) -> bool:
        return extension_id in self._enabled

    def known_ids(self) -> list[str]:
        return [record.id for record in self._records.values()]

    @property
    def records(self) -> list[ExtensionRecord]:
        return list(self._records.values())

    @property
    def enabled_ids(self) -> frozenset[str]:
        return self._enabled


class DirectoryWatcher(LoggerMixin):
    """Makes sure a host directory is watched, at most once."""

    def __init__(self, fs: FileSystem, explicit_watch_needed: bool = True) -> None:
        """
        Initialize the directory watcher.

        Args:
            fs: Host filesystem providing the watch primitive
            explicit_watch_needed: False where the host already receives
                native notifications for everything except symlinks
        """
        self._fs = fs
        self._explicit_watch_needed = explicit_watch_needed

    async def watch(self, path: str) -> bool:
        """
        Start watching a directory if it needs it.

        Args:
            path: Host-relative directory path

        Returns:
            True if a new watch was started
        """
        if self._fs.is_watched(path):
            return False

        stat = await self._stat(path)
        if stat is None or stat.type is not FileType.FOLDER:
            return False

        if not (self._explicit_watch_needed or self._fs.is_symlink(path)):
            return False

        try:
            self._fs.start_watch(path)
        except OSError as e:
            self.log.warning("watch_failed", path=path, error=str(e))
            return False

        self.log.debug("watch_started", path=path)
        return True

    async def _stat(self, path: str) -> FileStat | None:
        try:
            return await self._fs.stat(path)
        except OSError:
            return None


class RegistryScanner(LoggerMixin):
    """
    Rebuilds the extension registry from the host's manifests.

    After each scan every known extension is version-checked once,
    seeding the stat cache and catching edits made while unwatched.
    """

    def __init__(
        self,
        catalog: ExtensionCatalog,
        fs: FileSystem,
        registry: ExtensionRegistry,
        checker: "VersionChecker",
        watcher: DirectoryWatcher,
        opt_in_markers: Iterable[str] = (".git", ".hotreload"),
    ) -> None:
        self._catalog = catalog
        self._fs = fs
        self._registry = registry
        self._checker = checker
        self._watcher = watcher
        self._opt_in_markers = tuple(opt_in_markers)

    async def rescan(self) -> list[ExtensionRecord]:
        """
        Enumerate manifests and replace the registry snapshot.

        Returns:
            The records of the new snapshot
        """
        manifests = list(self._catalog.manifests().values())
        records: list[ExtensionRecord] = []

        for manifest in manifests:
            await self._watcher.watch(manifest.dir)
            records.append(
                ExtensionRecord(
                    id=manifest.id,
                    directory_name=manifest.directory_name,
                    is_auto_reload_enabled=await self._is_opted_in(manifest.dir),
                )
            )

        self._registry.replace(records)
        self._checker.prune(m.dir for m in manifests)

        self.log.info(
            "registry_rescanned",
            extensions=len(records),
            auto_reload=sorted(self._registry.enabled_ids),
        )

        await self._checker.check_all()
        return records

    async def _is_opted_in(self, directory: str) -> bool:
        for marker in self._opt_in_markers:
            try:
                if await self._fs.exists(f"{directory}/{marker}"):
                    return True
            except OSError as e:
                self.log.debug("marker_check_failed", directory=directory, error=str(e))
        return False
