"""
Error taxonomy. Nothing here is fatal to the process.
"""

from __future__ import annotations


class StudyTimerError(Exception):
    """Base class for every error raised by the timer core."""


class PersistenceError(StudyTimerError):
    """A store read or write failed. The in-memory state stays authoritative."""


class InvalidSettings(StudyTimerError, ValueError):
    """A settings patch carried a non-positive duration or round count."""


class InvalidReminder(StudyTimerError, ValueError):
    """A reminder was requested with an empty label or a non-positive delay."""


class UnknownReminderId(StudyTimerError, KeyError):
    """Lookup of a reminder that is not pending (never scheduled, fired or cancelled)."""

    def __init__(self, reminder_id: str):
        super().__init__(reminder_id)
        self.reminder_id = reminder_id

    def __str__(self) -> str:
        return f"no pending reminder with id {self.reminder_id!r}"
