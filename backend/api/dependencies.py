"""
HotReload API Dependencies.

Shared dependencies for FastAPI routes.
Requires Python 3.11+.
"""

from typing import Any

from fastapi import HTTPException

from reloader.engine import HotReloader


# Shared state - populated by the embedding application
_state: dict[str, Any] = {}


def set_reloader(reloader: HotReloader | None) -> None:
    """Set the shared engine instance."""
    _state["reloader"] = reloader


def get_reloader() -> HotReloader | None:
    """Get the shared engine instance."""
    return _state.get("reloader")


def require_reloader() -> HotReloader:
    """
    Dependency that requires an attached engine.

    Raises HTTPException if none is attached.
    """
    reloader = get_reloader()
    if reloader is None:
        raise HTTPException(
            status_code=503,
            detail="Hot reload engine not attached",
        )
    return reloader
