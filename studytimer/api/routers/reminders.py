"""
/reminders — schedule, list and cancel one-shot reminders.
"""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from ...actions.reminders import PRESETS, ReminderScheduler
from ...errors import InvalidReminder, UnknownReminderId
from ..schemas import (
    CancelAllOut,
    CancelOut,
    PresetOut,
    ReminderIn,
    ReminderListOut,
    ReminderOut,
)

router = APIRouter(prefix="/reminders", tags=["reminders"])


def _get_reminders(request: Request) -> ReminderScheduler:
    return request.app.state.reminders


def _now(request: Request) -> float:
    return request.app.state.clock.now()


@router.get("", response_model=ReminderListOut)
async def list_reminders(
    reminders: ReminderScheduler = Depends(_get_reminders),
    now: float = Depends(_now),
):
    return ReminderListOut(
        reminders=[ReminderOut.from_reminder(r, now) for r in reminders.pending()],
        persistence_warning=reminders.persistence_warning,
    )


@router.post("", response_model=ReminderOut, status_code=201)
async def schedule_reminder(
    req: ReminderIn,
    reminders: ReminderScheduler = Depends(_get_reminders),
    now: float = Depends(_now),
):
    try:
        reminder_id = reminders.schedule(req.label, req.delay_minutes)
    except InvalidReminder as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ReminderOut.from_reminder(reminders.get(reminder_id), now)


@router.get("/presets", response_model=Dict[str, PresetOut])
async def list_presets():
    return {
        name: PresetOut(label=label, delay_minutes=minutes)
        for name, (label, minutes) in PRESETS.items()
    }


@router.post("/presets/{name}", response_model=ReminderOut, status_code=201)
async def schedule_preset(
    name: str,
    reminders: ReminderScheduler = Depends(_get_reminders),
    now: float = Depends(_now),
):
    if name not in PRESETS:
        raise HTTPException(status_code=404, detail="Preset not found")
    reminder_id = reminders.schedule_preset(name)
    return ReminderOut.from_reminder(reminders.get(reminder_id), now)


@router.get("/{reminder_id}", response_model=ReminderOut)
async def get_reminder(
    reminder_id: str,
    reminders: ReminderScheduler = Depends(_get_reminders),
    now: float = Depends(_now),
):
    try:
        return ReminderOut.from_reminder(reminders.get(reminder_id), now)
    except UnknownReminderId:
        raise HTTPException(status_code=404, detail="Reminder not found")


@router.delete("/{reminder_id}", response_model=CancelOut)
async def cancel_reminder(
    reminder_id: str,
    reminders: ReminderScheduler = Depends(_get_reminders),
):
    """Idempotent: unknown or already-fired ids return cancelled=false."""
    return CancelOut(cancelled=reminders.cancel(reminder_id))


@router.delete("", response_model=CancelAllOut)
async def cancel_all_reminders(reminders: ReminderScheduler = Depends(_get_reminders)):
    return CancelAllOut(cancelled=reminders.cancel_all())
