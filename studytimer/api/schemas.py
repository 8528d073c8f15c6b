"""
Pydantic schemas for the FastAPI local API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..actions.cycle import CycleSnapshot, Phase
from ..actions.reminders import Reminder

# ── Cycle ──────────────────────────────────────────────────────────────────

class CycleStateOut(BaseModel):
    phase: Phase
    is_running: bool
    remaining_seconds: float = Field(..., ge=0.0)
    duration_seconds: int
    progress_percent: int = Field(..., ge=0, le=100)
    completed_rounds: int = Field(..., ge=0)
    deadline: Optional[float] = None
    display: str
    persistence_warning: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snap: CycleSnapshot) -> "CycleStateOut":
        return cls(
            phase=snap.phase,
            is_running=snap.is_running,
            remaining_seconds=snap.remaining_seconds,
            duration_seconds=snap.duration_seconds,
            progress_percent=snap.progress_percent,
            completed_rounds=snap.completed_rounds,
            deadline=snap.deadline,
            display=snap.display,
            persistence_warning=snap.persistence_warning,
        )


class ResetRequest(BaseModel):
    phase: Optional[Phase] = None


# ── Settings ───────────────────────────────────────────────────────────────

class SettingsPatch(BaseModel):
    workMinutes:       Optional[int]  = Field(None, ge=1, le=240)
    shortBreakMinutes: Optional[int]  = Field(None, ge=1, le=120)
    longBreakMinutes:  Optional[int]  = Field(None, ge=1, le=240)
    roundsToLong:      Optional[int]  = Field(None, ge=1, le=20)
    autoStartNext:     Optional[bool] = None
    soundEnabled:      Optional[bool] = None
    notifyEnabled:     Optional[bool] = None


# ── Reminders ──────────────────────────────────────────────────────────────

class ReminderIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=200)
    delay_minutes: float = Field(..., gt=0, le=24 * 60)


class ReminderOut(BaseModel):
    id: str
    label: str
    fires_at: float
    remaining_seconds: float

    @classmethod
    def from_reminder(cls, r: Reminder, now: float) -> "ReminderOut":
        return cls(
            id=r.id,
            label=r.label,
            fires_at=r.fires_at,
            remaining_seconds=max(0.0, r.fires_at - now),
        )


class ReminderListOut(BaseModel):
    reminders: List[ReminderOut]
    persistence_warning: Optional[str] = None


class PresetOut(BaseModel):
    label: str
    delay_minutes: float


class CancelOut(BaseModel):
    cancelled: bool


class CancelAllOut(BaseModel):
    cancelled: int


# ── Breathing ──────────────────────────────────────────────────────────────

class BreathingStateOut(BaseModel):
    pattern: Optional[str] = None
    prompt: Optional[str] = None
    patterns: List[str] = Field(default_factory=list)
