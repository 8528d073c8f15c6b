"""
/breathing — short guided breathing sequences.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from ...actions.breathing import PATTERNS, BreathingGuide
from ..schemas import BreathingStateOut

router = APIRouter(prefix="/breathing", tags=["breathing"])


def _get_guide(request: Request) -> BreathingGuide:
    return request.app.state.breathing


def _state(guide: BreathingGuide) -> BreathingStateOut:
    return BreathingStateOut(pattern=guide.pattern, prompt=guide.prompt, patterns=list(PATTERNS))


@router.get("", response_model=BreathingStateOut)
async def get_breathing(guide: BreathingGuide = Depends(_get_guide)):
    return _state(guide)


@router.post("/stop", response_model=BreathingStateOut)
async def stop_breathing(guide: BreathingGuide = Depends(_get_guide)):
    guide.stop()
    return _state(guide)


@router.post("/{pattern}", response_model=BreathingStateOut)
async def start_breathing(pattern: str, guide: BreathingGuide = Depends(_get_guide)):
    if pattern not in PATTERNS:
        raise HTTPException(status_code=404, detail="Pattern not found")
    guide.run(pattern)
    return _state(guide)
