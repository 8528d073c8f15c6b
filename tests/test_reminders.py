"""Tests for the one-shot reminder scheduler."""

from __future__ import annotations

import pytest

from studytimer.actions.reminders import (
    NOTIFICATION_TITLE,
    PRESETS,
    REMINDERS_KEY,
    ReminderScheduler,
)
from studytimer.core.store import MemoryStore
from studytimer.errors import InvalidReminder, UnknownReminderId


def _ms(ts: float) -> int:
    return int(round(ts * 1000))


@pytest.fixture
def scheduler(clock, notifier, store):
    return ReminderScheduler(clock, notifier, store)


class TestSchedule:
    def test_schedule_returns_id_and_persists(self, scheduler, clock, store):
        rid = scheduler.schedule("Drink water", 60)
        assert isinstance(rid, str) and rid
        assert [r.id for r in scheduler.pending()] == [rid]
        assert store.get(REMINDERS_KEY) == [
            {"id": rid, "label": "Drink water", "firesAt": _ms(clock.now() + 3600)},
        ]

    def test_fires_once_at_deadline(self, scheduler, clock, notifier, store):
        scheduler.schedule("Drink water", 60)
        clock.advance(3599)
        assert notifier.notifications == []
        clock.advance(1)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "Drink water")]
        assert scheduler.pending() == []
        assert store.get(REMINDERS_KEY) == []
        clock.advance(3600)
        assert len(notifier.notifications) == 1

    def test_ids_are_unique(self, scheduler):
        ids = {scheduler.schedule("x", 1) for _ in range(50)}
        assert len(ids) == 50

    def test_reminders_are_independent(self, scheduler, clock, notifier):
        first = scheduler.schedule("first", 10)
        scheduler.schedule("second", 20)
        scheduler.cancel(first)
        clock.advance(20 * 60)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "second")]

    def test_short_delay_is_floored_to_one_second(self, scheduler, clock, notifier):
        scheduler.schedule("soon", 0.001)
        clock.advance(0.5)
        assert notifier.notifications == []
        clock.advance(0.5)
        assert len(notifier.notifications) == 1

    @pytest.mark.parametrize("label,delay", [("", 10), ("   ", 10), ("ok", 0), ("ok", -5)])
    def test_invalid_requests_rejected(self, scheduler, label, delay):
        with pytest.raises(InvalidReminder):
            scheduler.schedule(label, delay)
        assert scheduler.pending() == []

    def test_preset(self, scheduler, clock):
        rid = scheduler.schedule_preset("water")
        reminder = scheduler.get(rid)
        label, minutes = PRESETS["water"]
        assert reminder.label == label
        assert reminder.fires_at == pytest.approx(clock.now() + minutes * 60, abs=1e-3)

    def test_unknown_preset(self, scheduler):
        with pytest.raises(KeyError):
            scheduler.schedule_preset("nap")


class TestCancel:
    def test_cancel_before_firing_suppresses_notification(self, scheduler, clock, notifier, store):
        rid = scheduler.schedule("Drink water", 60)
        clock.advance(30 * 60)
        assert scheduler.cancel(rid) is True
        clock.advance(30 * 60)
        assert notifier.notifications == []
        assert store.get(REMINDERS_KEY) == []
        assert clock.pending() == 0

    def test_cancel_unknown_is_noop(self, scheduler):
        assert scheduler.cancel("does-not-exist") is False

    def test_cancel_twice(self, scheduler):
        rid = scheduler.schedule("x", 5)
        assert scheduler.cancel(rid) is True
        assert scheduler.cancel(rid) is False

    def test_cancel_after_fire_is_noop(self, scheduler, clock):
        rid = scheduler.schedule("x", 1)
        clock.advance(60)
        assert scheduler.cancel(rid) is False

    def test_late_callback_after_cancel_is_noop(self, scheduler, notifier):
        rid = scheduler.schedule("x", 1)
        scheduler.cancel(rid)
        scheduler._fire(rid)
        assert notifier.notifications == []

    def test_cancel_all(self, scheduler, clock, notifier, store):
        for i in range(3):
            scheduler.schedule(f"r{i}", i + 1)
        assert scheduler.cancel_all() == 3
        clock.advance(3600)
        assert notifier.notifications == []
        assert store.get(REMINDERS_KEY) == []

    def test_get_unknown_raises(self, scheduler):
        with pytest.raises(UnknownReminderId):
            scheduler.get("nope")
        with pytest.raises(KeyError):
            scheduler.get("nope")


class TestRestore:
    def test_overdue_fire_immediately_and_future_rearm(self, clock, notifier):
        now = clock.now()
        store = MemoryStore({REMINDERS_KEY: [
            {"id": "late", "label": "missed while closed", "firesAt": _ms(now - 120)},
            {"id": "later", "label": "still ahead", "firesAt": _ms(now + 600)},
        ]})
        scheduler = ReminderScheduler(clock, notifier, store)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "missed while closed")]
        assert [r.id for r in scheduler.pending()] == ["later"]
        assert [r["id"] for r in store.get(REMINDERS_KEY)] == ["later"]

        clock.advance(599)
        assert len(notifier.notifications) == 1
        clock.advance(1)
        assert notifier.notifications[-1] == (NOTIFICATION_TITLE, "still ahead")

    def test_dispose_keeps_persisted_set(self, scheduler, clock, notifier, store):
        scheduler.schedule("Stretch", 10)
        scheduler.dispose()
        clock.advance(5 * 60)
        assert clock.pending() == 0

        ReminderScheduler(clock, notifier, store)
        clock.advance(5 * 60)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "Stretch")]

    def test_reload_after_deadline_fires_exactly_once(self, scheduler, clock, notifier, store):
        scheduler.schedule("Stretch", 10)
        scheduler.dispose()
        clock.jump(3600)
        ReminderScheduler(clock, notifier, store)
        clock.advance(3600)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "Stretch")]

    def test_malformed_records_dropped(self, clock, notifier):
        now = clock.now()
        store = MemoryStore({REMINDERS_KEY: [
            {"id": "ok", "label": "fine", "firesAt": _ms(now + 60)},
            {"label": "no id"},
            {"id": "bad", "label": "bad time", "firesAt": "soon"},
        ]})
        scheduler = ReminderScheduler(clock, notifier, store)
        assert [r.id for r in scheduler.pending()] == ["ok"]
        assert [r["id"] for r in store.get(REMINDERS_KEY)] == ["ok"]


class TestPersistenceFailures:
    def test_write_failure_keeps_reminder_armed(self, scheduler, clock, notifier, store):
        store.fail_writes = True
        scheduler.schedule("Drink water", 1)
        assert scheduler.persistence_warning is not None
        clock.advance(60)
        assert notifier.notifications == [(NOTIFICATION_TITLE, "Drink water")]

    def test_warning_clears_after_successful_write(self, scheduler, store):
        store.fail_writes = True
        scheduler.schedule("a", 1)
        store.fail_writes = False
        scheduler.schedule("b", 1)
        assert scheduler.persistence_warning is None
        assert len(store.get(REMINDERS_KEY)) == 2

    def test_read_failure_starts_empty(self, clock, notifier):
        store = MemoryStore()
        store.fail_reads = True
        scheduler = ReminderScheduler(clock, notifier, store)
        assert scheduler.pending() == []
        assert scheduler.persistence_warning is not None
