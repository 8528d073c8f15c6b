"""
/settings — read and update the user's timer settings.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ...actions.cycle import CycleEngine
from ...errors import InvalidSettings
from ...settings import DEFAULTS
from ..schemas import SettingsPatch

router = APIRouter(prefix="/settings", tags=["settings"])


def _get_cycle(request: Request) -> CycleEngine:
    return request.app.state.cycle


@router.get("")
async def read_settings(cycle: CycleEngine = Depends(_get_cycle)):
    """Return current settings with their defaults for reference."""
    return {"settings": cycle.settings.to_dict(), "defaults": DEFAULTS}


@router.put("")
async def write_settings(patch: SettingsPatch, cycle: CycleEngine = Depends(_get_cycle)):
    """Apply a partial update. Durations take effect from the next phase."""
    data = {k: v for k, v in patch.model_dump().items() if v is not None}
    try:
        settings = cycle.update_settings(data)
    except InvalidSettings as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "settings": settings.to_dict(),
        "persistence_warning": cycle.persistence_warning,
    }
