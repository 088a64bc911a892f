"""
HotReload Engine.

Wires the registry, router, version checker and orchestrator to a host
and exposes the user-facing command and preferences.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from reloader.host import ExtensionHost, Unsubscribe
from reloader.models import ExtensionRecord, ReloadPreferences
from reloader.orchestrator import ReloadOrchestrator
from reloader.registry import DirectoryWatcher, ExtensionRegistry, RegistryScanner
from reloader.router import ChangeEventRouter
from reloader.version_checker import VersionChecker
from utils.config import ReloaderSettings, get_settings
from utils.logger import LoggerMixin
from watcher.debouncer import Debouncer
from watcher.task_queue import SerialTaskQueue

SCAN_COMMAND_ID = "scan-for-changes"
SCAN_COMMAND_NAME = "Check extensions for changes and reload them"

_RESCAN_KEY = "registry"


class HotReloader(LoggerMixin):
    """
    Reloads opted-in extensions whenever their code or styles change.

    Rescans and reloads share one serial queue, so the host's active
    extension set is never mutated by two actions at once.
    """

    def __init__(self, host: ExtensionHost, settings: ReloaderSettings | None = None) -> None:
        """
        Initialize the engine.

        Args:
            host: Capabilities of the hosting application
            settings: Reloader settings (defaults to global settings)
        """
        settings = settings or get_settings().reloader

        self.host = host
        self.settings = settings
        self.preferences = ReloadPreferences()

        self.queue = SerialTaskQueue("reload")
        self.registry = ExtensionRegistry()
        self.watcher = DirectoryWatcher(host.fs, settings.explicit_watch_needed)
        self.checker = VersionChecker(
            catalog=host.catalog,
            fs=host.fs,
            registry=self.registry,
            request_reload=self.request_reload,
            tracked_files=settings.tracked_files,
        )
        self.scanner = RegistryScanner(
            catalog=host.catalog,
            fs=host.fs,
            registry=self.registry,
            checker=self.checker,
            watcher=self.watcher,
            opt_in_markers=[*settings.vcs_markers, *settings.opt_in_markers],
        )
        self.router = ChangeEventRouter(
            catalog=host.catalog,
            registry=self.registry,
            checker=self.checker,
            watcher=self.watcher,
            request_rescan=self.reindex,
            tracked_files=settings.tracked_files,
            structural_files=settings.structural_files,
        )
        self.orchestrator = ReloadOrchestrator(
            lifecycle=host.lifecycle,
            panels=host.panels,
            debug_flags=host.debug_flags,
            notifier=host.notifier,
            preferences=lambda: self.preferences,
            debug_flag_name=settings.debug_flag_name,
        )

        self._rescan_trigger = Debouncer(
            delay_ms=settings.rescan_cooldown_ms,
            callback=lambda _key: self.queue.enqueue(self.scanner.rescan),
        )
        # One pending reload per extension id, created on first request
        self._reload_triggers = Debouncer(
            delay_ms=settings.reload_cooldown_ms,
            callback=self._enqueue_reload,
        )

        self._unsubscribe: Unsubscribe | None = None
        self._event_tasks: set[asyncio.Task[Any]] = set()

    @property
    def commands(self) -> dict[str, tuple[str, Callable[[], Any]]]:
        """User-invocable commands: id -> (name, callback)."""
        return {SCAN_COMMAND_ID: (SCAN_COMMAND_NAME, self.scan_for_changes)}

    async def start(self) -> None:
        """Scan the registry, load preferences and begin listening for changes."""
        if self._unsubscribe is not None:
            return

        await self.queue.enqueue(self.scanner.rescan)
        await self.load_preferences()

        self._unsubscribe = self.host.fs.subscribe(self._on_raw_event)
        root = self.host.catalog.extensions_folder()
        await self.watcher.watch(root)

        self.log.info(
            "hot_reloader_started",
            extensions_folder=root,
            extensions=len(self.registry.records),
            auto_reload=sorted(self.registry.enabled_ids),
        )

    async def stop(self) -> None:
        """Stop listening and let queued work settle."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        await self.wait_idle()
        self._rescan_trigger.clear()
        self._reload_triggers.clear()
        self.log.info("hot_reloader_stopped")

    async def wait_idle(self) -> None:
        """Wait until routed events and every queued rescan or reload have settled."""
        while self._event_tasks:
            await asyncio.wait(list(self._event_tasks))
        await self.queue.join()

    def _on_raw_event(self, path: str) -> None:
        task = asyncio.ensure_future(self.router.on_event(path))
        self._event_tasks.add(task)
        task.add_done_callback(self._on_event_done)

    def _on_event_done(self, task: asyncio.Task[Any]) -> None:
        self._event_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error("event_routing_failed", error=str(task.exception()))

    def reindex(self) -> bool:
        """
        Request a debounced registry rescan.

        Returns:
            True if a rescan was enqueued, False if one was just enqueued
        """
        return self._rescan_trigger.trigger(_RESCAN_KEY)

    def scan_for_changes(self) -> bool:
        """Check all extensions for changes and reload them."""
        self.log.info("scan_for_changes_requested")
        return self.reindex()

    def request_reload(self, extension_id: str) -> bool:
        """
        Request a debounced reload of an extension.

        Ignored for extensions that are not opted into auto-reload.

        Returns:
            True if a reload was enqueued
        """
        if not self.registry.is_auto_reload_enabled(extension_id):
            return False
        return self._reload_triggers.trigger(extension_id)

    def _enqueue_reload(self, extension_id: str) -> asyncio.Task[bool]:
        return self.queue.enqueue(lambda: self.orchestrator.reload(extension_id))

    async def load_preferences(self) -> ReloadPreferences:
        """Load persisted preferences over the defaults."""
        data = await self.host.store.load_data()
        try:
            self.preferences = ReloadPreferences.model_validate(data or {})
        except ValidationError as e:
            self.log.warning("preferences_invalid", error=str(e))
            self.preferences = ReloadPreferences()
        return self.preferences

    async def save_preferences(self) -> None:
        await self.host.store.save_data(self.preferences.model_dump())

    async def update_preferences(self, **changes: bool) -> ReloadPreferences:
        """
        Change one or more toggles and persist them.

        Raises:
            ValidationError: If a value is not a valid toggle
        """
        self.preferences = ReloadPreferences.model_validate(
            {**self.preferences.model_dump(), **changes}
        )
        await self.save_preferences()
        return self.preferences

    @property
    def extensions(self) -> list[ExtensionRecord]:
        """Extensions found by the most recent scan."""
        return self.registry.records

    @property
    def is_running(self) -> bool:
        return self._unsubscribe is not None
