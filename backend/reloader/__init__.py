"""
HotReload Reloader Package.

Change detection and reload coordination for host extensions.
Requires Python 3.11+.
"""

from reloader.engine import HotReloader
from reloader.host import ExtensionHost, HostCapabilities
from reloader.models import ExtensionManifest, ExtensionRecord, ReloadPreferences
from reloader.orchestrator import ReloadOrchestrator
from reloader.registry import ExtensionRegistry, RegistryScanner
from reloader.router import ChangeEventRouter, Route
from reloader.version_checker import VersionChecker

__all__ = [
    "HotReloader",
    "ExtensionHost",
    "HostCapabilities",
    "ExtensionManifest",
    "ExtensionRecord",
    "ReloadPreferences",
    "ReloadOrchestrator",
    "ExtensionRegistry",
    "RegistryScanner",
    "ChangeEventRouter",
    "Route",
    "VersionChecker",
]
