"""
One-shot reminders — labeled deadlines independent of the focus cycle
("drink water in 60 minutes"). Each fires a notification once and removes
itself. Pending reminders are persisted; on start-up the overdue ones fire
immediately and the rest are re-armed with their remaining delay.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.clock import Clock
from ..core.store import Store
from ..errors import InvalidReminder, PersistenceError, UnknownReminderId
from ..log import setup_logger
from .notifications import Notifier

logger = setup_logger(__name__)

REMINDERS_KEY = "reminders"
MIN_DELAY_SECONDS = 1.0
NOTIFICATION_TITLE = "Reminder"

# name -> (label, delay in minutes)
PRESETS: Dict[str, tuple] = {
    "water":   ("Time to drink some water", 60),
    "stretch": ("Stretch break", 120),
}


@dataclass(frozen=True)
class Reminder:
    id: str
    label: str
    fires_at: float     # epoch seconds

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "firesAt": int(round(self.fires_at * 1000))}

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "Reminder":
        return cls(id=str(data["id"]), label=str(data["label"]), fires_at=int(data["firesAt"]) / 1000.0)


class ReminderScheduler:

    def __init__(self, clock: Clock, notifier: Notifier, store: Store):
        self._clock = clock
        self._notifier = notifier
        self._store = store
        self._reminders: Dict[str, Reminder] = {}
        self._handles: Dict[str, Any] = {}
        self.persistence_warning: Optional[str] = None
        self._restore()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def schedule(self, label: str, delay_minutes: float) -> str:
        """Arm a reminder and return its id without waiting for it."""
        label = (label or "").strip()
        if not label:
            raise InvalidReminder("label must not be empty")
        if delay_minutes <= 0:
            raise InvalidReminder(f"delay must be positive, got {delay_minutes}")

        now = self._clock.now()
        reminder = Reminder(id=uuid.uuid4().hex, label=label, fires_at=now + delay_minutes * 60.0)
        self._reminders[reminder.id] = reminder
        self._persist()
        self._arm(reminder, now)
        logger.info("Reminder %s scheduled in %.1f min: %s", reminder.id, delay_minutes, label)
        return reminder.id

    def schedule_preset(self, name: str) -> str:
        label, minutes = PRESETS[name]
        return self.schedule(label, minutes)

    def cancel(self, reminder_id: str) -> bool:
        """Drop a pending reminder. Unknown or already-fired ids are a no-op."""
        reminder = self._reminders.pop(reminder_id, None)
        self._disarm(reminder_id)
        if reminder is None:
            return False
        self._persist()
        logger.info("Reminder %s cancelled", reminder_id)
        return True

    def cancel_all(self) -> int:
        count = len(self._reminders)
        for reminder_id in list(self._handles):
            self._disarm(reminder_id)
        self._reminders.clear()
        self._persist()
        if count:
            logger.info("Cancelled %d reminder(s)", count)
        return count

    def get(self, reminder_id: str) -> Reminder:
        try:
            return self._reminders[reminder_id]
        except KeyError:
            raise UnknownReminderId(reminder_id) from None

    def pending(self) -> List[Reminder]:
        return sorted(self._reminders.values(), key=lambda r: r.fires_at)

    def dispose(self) -> None:
        """Disarm every callback; the persisted set is re-armed next session."""
        for reminder_id in list(self._handles):
            self._disarm(reminder_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _arm(self, reminder: Reminder, now: float) -> None:
        delay = max(MIN_DELAY_SECONDS, reminder.fires_at - now)
        self._handles[reminder.id] = self._clock.after(delay, lambda: self._fire(reminder.id))

    def _disarm(self, reminder_id: str) -> None:
        handle = self._handles.pop(reminder_id, None)
        if handle is not None:
            self._clock.cancel(handle)

    def _fire(self, reminder_id: str) -> None:
        self._handles.pop(reminder_id, None)
        reminder = self._reminders.pop(reminder_id, None)
        if reminder is None:
            return  # cancelled before the callback ran
        self._notifier.show_notification(NOTIFICATION_TITLE, reminder.label)
        self._persist()
        logger.info("Reminder %s fired: %s", reminder_id, reminder.label)

    def _restore(self) -> None:
        try:
            records = self._store.get(REMINDERS_KEY) or []
        except PersistenceError as e:
            logger.warning("Could not load reminders: %s", e)
            self.persistence_warning = "reminders could not be loaded"
            return

        for record in records:
            try:
                reminder = Reminder.from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping malformed reminder record %r: %s", record, e)
                continue
            self._reminders[reminder.id] = reminder

        now = self._clock.now()
        overdue = [r for r in self._reminders.values() if r.fires_at <= now]
        for reminder in self._reminders.values():
            if reminder.fires_at > now:
                self._arm(reminder, now)
        for reminder in sorted(overdue, key=lambda r: r.fires_at):
            logger.info("Reminder %s came due while closed", reminder.id)
            self._fire(reminder.id)
        if not overdue and len(records) != len(self._reminders):
            # malformed records were dropped
            self._persist()

    def _persist(self) -> None:
        if self._store.set(REMINDERS_KEY, [r.to_record() for r in self.pending()]):
            self.persistence_warning = None
        else:
            self.persistence_warning = "reminders could not be saved and will not survive a reload"
