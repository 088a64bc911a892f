"""
HotReload Reload Orchestrator.

Drives the disable -> enable cycle for one extension while keeping its
settings panel open and scrolled where the user left it.
Requires Python 3.11+.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from reloader.host import DebugFlag, ExtensionLifecycle, Notifier, SettingsPanels
from reloader.models import ReloadPreferences, ReloadSession
from utils.logger import LoggerMixin


@contextmanager
def preserved_flag(flags: DebugFlag, name: str, value: str = "1") -> Iterator[str | None]:
    """
    Set a process-wide flag for the duration of the block.

    The prior value (or its absence) is restored exactly once on exit,
    whether the block finished or raised.

    Yields:
        The value the flag had before
    """
    previous = flags.get(name)
    flags.set(name, value)
    try:
        yield previous
    finally:
        if previous is None:
            flags.remove(name)
        else:
            flags.set(name, previous)


class ReloadOrchestrator(LoggerMixin):
    """Runs one reload cycle at a time on behalf of the task queue."""

    def __init__(
        self,
        lifecycle: ExtensionLifecycle,
        panels: SettingsPanels,
        debug_flags: DebugFlag,
        notifier: Notifier,
        preferences: Callable[[], ReloadPreferences] = ReloadPreferences,
        debug_flag_name: str = "debug-plugin",
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            lifecycle: Host extension manager
            panels: Host settings window
            debug_flags: Process-wide diagnostic flags
            notifier: User-visible notices
            preferences: Returns the current user preferences
            debug_flag_name: Flag kept set while the extension loads
        """
        self._lifecycle = lifecycle
        self._panels = panels
        self._debug_flags = debug_flags
        self._notifier = notifier
        self._preferences = preferences
        self._debug_flag_name = debug_flag_name

    async def reload(self, extension_id: str) -> bool:
        """
        Reload an extension, logging instead of raising on failure.

        Args:
            extension_id: Extension to reload

        Returns:
            True if the full cycle completed
        """
        try:
            return await self._cycle(extension_id)
        except Exception as e:
            self.log.error(
                "extension_reload_failed",
                extension_id=extension_id,
                error=str(e),
                exc_info=True,
            )
            return False

    async def _cycle(self, extension_id: str) -> bool:
        if not self._lifecycle.is_enabled(extension_id):
            self.log.debug("reload_skipped_disabled", extension_id=extension_id)
            return False

        session = self.capture_session(extension_id)

        await self._lifecycle.disable(extension_id)
        self.log.debug("extension_disabled", extension_id=extension_id)

        # Keep diagnostics (source maps and the like) while the extension loads
        with preserved_flag(self._debug_flags, self._debug_flag_name):
            await self._lifecycle.enable(extension_id)
            self.restore_panel(session)

        self.show_notice(f'Extension "{extension_id}" has been reloaded')
        return True

    def capture_session(self, extension_id: str) -> ReloadSession:
        """Record whether this extension's panel is open, and where it is scrolled."""
        session = ReloadSession(extension_id=extension_id)
        if self._panels.active_panel_id() == extension_id:
            session.was_panel_active = True
            session.scroll = self._panels.scroll_offsets()
        return session

    def restore_panel(self, session: ReloadSession) -> bool:
        """
        Reopen the extension's panel if the reload closed it.

        Returns:
            True if the panel was reopened
        """
        if not (
            session.was_panel_active
            and self._panels.is_shown()
            and self._panels.active_panel_id() is None
            and self._preferences().should_reopen_active_panel
        ):
            return False

        if not self._panels.open_panel(session.extension_id):
            return False

        self._panels.scroll_to(session.scroll)
        return True

    def show_notice(self, message: str) -> None:
        """Log a message and, if the user wants it, show it as a notice."""
        self.log.debug("notice", message=message)
        if self._preferences().should_show_reload_notice:
            self._notifier.notice(message)
