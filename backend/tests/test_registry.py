"""
Tests for the Extension Registry and its Scanner.

Requires Python 3.11+.
"""

import pytest

from reloader.models import ExtensionManifest, ExtensionRecord
from reloader.registry import DirectoryWatcher, ExtensionRegistry, RegistryScanner
from reloader.version_checker import VersionChecker


@pytest.fixture
def registry() -> ExtensionRegistry:
    """Create an empty registry."""
    return ExtensionRegistry()


@pytest.fixture
def requests() -> list[str]:
    """Collect reload requests."""
    return []


@pytest.fixture
def checker(host, registry, requests) -> VersionChecker:
    """Create a version checker on the in-memory host."""
    return VersionChecker(host.catalog, host.fs, registry, requests.append)


@pytest.fixture
def scanner(host, registry, checker) -> RegistryScanner:
    """Create a scanner on the in-memory host."""
    return RegistryScanner(
        catalog=host.catalog,
        fs=host.fs,
        registry=registry,
        checker=checker,
        watcher=DirectoryWatcher(host.fs, explicit_watch_needed=True),
    )


class TestExtensionRegistry:
    """Test cases for ExtensionRegistry."""

    def test_replace_and_resolve(self):
        """Directory names resolve to ids from the latest snapshot."""
        registry = ExtensionRegistry()
        registry.replace([
            ExtensionRecord("foo-id", "foo", True),
            ExtensionRecord("bar-id", "bar", False),
        ])

        assert registry.resolve("foo") == "foo-id"
        assert registry.resolve("missing") is None
        assert registry.enabled_ids == frozenset({"foo-id"})
        assert sorted(registry.known_ids()) == ["bar-id", "foo-id"]

    def test_replace_is_wholesale(self):
        """A new snapshot drops everything the old one had."""
        registry = ExtensionRegistry()
        registry.replace([ExtensionRecord("foo", "foo", True)])
        registry.replace([ExtensionRecord("bar", "bar", False)])

        assert registry.resolve("foo") is None
        assert not registry.is_auto_reload_enabled("foo")

    def test_forget(self):
        """Forgetting an id removes its record and opt-in."""
        registry = ExtensionRegistry()
        registry.replace([ExtensionRecord("foo", "foo", True)])

        registry.forget("foo")

        assert registry.records == []
        assert registry.enabled_ids == frozenset()


class TestManifest:
    """Test cases for ExtensionManifest."""

    def test_directory_name(self):
        """The directory name is the last path segment."""
        manifest = ExtensionManifest(id="foo", dir=".config/plugins/foo-dir")
        assert manifest.directory_name == "foo-dir"


@pytest.mark.asyncio
class TestRegistryScanner:
    """Test cases for RegistryScanner."""

    async def test_rescan_builds_records(self, host, scanner, registry):
        """Every manifest becomes a record keyed by its directory name."""
        host.install("foo-id", directory_name="foo")
        host.install("bar", marker=None)

        records = await scanner.rescan()

        assert {r.id for r in records} == {"foo-id", "bar"}
        assert registry.resolve("foo") == "foo-id"
        assert registry.resolve("bar") == "bar"

    async def test_opt_in_markers(self, host, scanner, registry):
        """Both .hotreload and .git opt an extension in; nothing else does."""
        host.install("marked", marker=".hotreload")
        host.install("git", marker=".git")
        host.install("plain", marker=None)

        await scanner.rescan()

        assert registry.enabled_ids == frozenset({"marked", "git"})

    async def test_rescan_watches_each_directory_once(self, host, scanner):
        """Watches are established per directory and not repeated."""
        host.install("foo")
        host.install("bar")

        await scanner.rescan()
        await scanner.rescan()

        assert sorted(host.fs.watch_calls) == ["plugins/bar", "plugins/foo"]

    async def test_rescan_seeds_stat_cache_without_reloads(self, host, scanner, checker, requests):
        """The post-scan version check is a baseline only."""
        host.install("foo")

        await scanner.rescan()

        assert requests == []
        assert checker.get_stat("plugins/foo/main.js") is not None

    async def test_rescan_catches_change_made_while_unwatched(self, host, scanner, requests):
        """A change between two scans is detected by the second scan."""
        host.install("foo", mtime=1.0)
        await scanner.rescan()

        host.fs.add_file("plugins/foo/main.js", mtime=3.0)
        await scanner.rescan()

        assert requests == ["foo"]

    async def test_removed_extension_is_purged(self, host, scanner, registry, checker):
        """An extension missing from a new scan loses its records and cache."""
        host.install("foo")
        host.install("bar")
        await scanner.rescan()

        host.uninstall("bar")
        await scanner.rescan()

        assert registry.resolve("bar") is None
        assert checker.get_stat("plugins/bar/main.js") is None
        assert checker.get_stat("plugins/foo/main.js") is not None


@pytest.mark.asyncio
class TestDirectoryWatcher:
    """Test cases for DirectoryWatcher."""

    async def test_watch_is_idempotent(self, host):
        """A watched path is never watched again."""
        host.fs.add_folder("plugins/foo")
        watcher = DirectoryWatcher(host.fs, explicit_watch_needed=True)

        assert await watcher.watch("plugins/foo") is True
        assert await watcher.watch("plugins/foo") is False
        assert host.fs.watch_calls == ["plugins/foo"]

    async def test_files_are_not_watched(self, host):
        """Only folders get watches."""
        host.fs.add_file("plugins/readme.md")
        watcher = DirectoryWatcher(host.fs, explicit_watch_needed=True)

        assert await watcher.watch("plugins/readme.md") is False
        assert await watcher.watch("plugins/missing") is False
        assert host.fs.watch_calls == []

    async def test_native_platform_watches_only_symlinks(self, host):
        """With native notification only symlinked folders need a watch."""
        host.fs.add_folder("plugins/real")
        host.fs.add_folder("plugins/linked")
        host.fs.symlinks.add("plugins/linked")
        watcher = DirectoryWatcher(host.fs, explicit_watch_needed=False)

        assert await watcher.watch("plugins/real") is False
        assert await watcher.watch("plugins/linked") is True
        assert host.fs.watch_calls == ["plugins/linked"]
