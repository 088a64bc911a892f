"""
HotReload Host Adapters Package.

Concrete host capabilities for running against a local directory.
Requires Python 3.11+.
"""

from host.local import (
    DirectoryExtensionCatalog,
    EnvironmentDebugFlag,
    HeadlessPanels,
    JsonSettingsStore,
    LogNotifier,
    build_local_host,
)

__all__ = [
    "DirectoryExtensionCatalog",
    "EnvironmentDebugFlag",
    "HeadlessPanels",
    "JsonSettingsStore",
    "LogNotifier",
    "build_local_host",
]
