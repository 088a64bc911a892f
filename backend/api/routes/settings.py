"""
HotReload Settings API Routes.

The two preference toggles.
Requires Python 3.11+.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import require_reloader
from reloader.engine import HotReloader
from reloader.models import ReloadPreferences

router = APIRouter()


class PreferencesUpdate(BaseModel):
    """Partial update of the preferences; omitted toggles keep their value."""

    should_reopen_active_panel: bool | None = None
    should_show_reload_notice: bool | None = None


@router.get("", response_model=ReloadPreferences)
async def get_preferences(
    reloader: HotReloader = Depends(require_reloader),
) -> ReloadPreferences:
    """Get the current preferences."""
    return reloader.preferences


@router.put("", response_model=ReloadPreferences)
async def update_preferences(
    update: PreferencesUpdate,
    reloader: HotReloader = Depends(require_reloader),
) -> ReloadPreferences:
    """Change one or both toggles and persist them."""
    changes = update.model_dump(exclude_none=True)
    return await reloader.update_preferences(**changes)
