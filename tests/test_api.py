"""
Integration tests for the FastAPI application.
Uses httpx.AsyncClient with the ASGI transport (no running server needed).
Fixtures are provided by tests/conftest.py; the app runs on the simulated clock.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from studytimer.actions.cycle import STATE_KEY
from studytimer.actions.reminders import REMINDERS_KEY


class TestHealth:
    async def test_health_ok(self, client):
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["persistence_warnings"] == []

    async def test_health_reports_persistence_warning(self, client, store):
        store.fail_writes = True
        await client.post("/cycle/start")
        r = await client.get("/health")
        assert len(r.json()["persistence_warnings"]) == 1


class TestCycleEndpoints:
    async def test_get_cycle_schema(self, client):
        r = await client.get("/cycle")
        assert r.status_code == 200
        body = r.json()
        assert body["phase"] == "work"
        assert body["is_running"] is False
        assert body["remaining_seconds"] == 1500
        assert body["display"] == "25:00"
        assert body["progress_percent"] == 0
        assert body["completed_rounds"] == 0

    async def test_start_then_countdown(self, client, clock):
        r = await client.post("/cycle/start")
        assert r.json()["is_running"] is True
        clock.advance(90)
        r = await client.get("/cycle")
        assert r.json()["remaining_seconds"] == pytest.approx(1410)
        assert r.json()["display"] == "23:30"

    async def test_pause_preserves_remaining(self, client, clock):
        await client.post("/cycle/start")
        clock.advance(90)
        paused = (await client.post("/cycle/pause")).json()
        clock.advance(600)
        r = await client.get("/cycle")
        assert r.json()["is_running"] is False
        assert r.json()["remaining_seconds"] == pytest.approx(paused["remaining_seconds"])

    async def test_natural_completion_via_tick(self, client, clock, notifier):
        await client.post("/cycle/start")
        clock.advance(1500)
        r = await client.get("/cycle")
        assert r.json()["phase"] == "short_break"
        assert r.json()["completed_rounds"] == 1
        assert len(notifier.notifications) == 1

    async def test_skip(self, client, notifier):
        r = await client.post("/cycle/skip")
        assert r.status_code == 200
        assert r.json()["phase"] == "short_break"
        assert r.json()["completed_rounds"] == 1
        assert notifier.tones == 1

    async def test_reset_without_body(self, client):
        await client.post("/cycle/skip")
        r = await client.post("/cycle/reset")
        assert r.json()["phase"] == "work"
        assert r.json()["completed_rounds"] == 0
        assert r.json()["is_running"] is False

    async def test_reset_to_phase(self, client):
        r = await client.post("/cycle/reset", json={"phase": "long_break"})
        assert r.json()["phase"] == "long_break"
        assert r.json()["remaining_seconds"] == 900

    async def test_switch_phase(self, client):
        r = await client.post("/cycle/phase/short_break")
        assert r.status_code == 200
        assert r.json()["phase"] == "short_break"

    async def test_switch_to_unknown_phase_returns_422(self, client):
        r = await client.post("/cycle/phase/lunch")
        assert r.status_code == 422

    async def test_state_is_persisted(self, client, store):
        await client.post("/cycle/start")
        assert store.get(STATE_KEY)["isRunning"] is True

    async def test_write_failure_is_a_warning_not_an_error(self, client, store):
        store.fail_writes = True
        r = await client.post("/cycle/start")
        assert r.status_code == 200
        assert r.json()["is_running"] is True
        assert r.json()["persistence_warning"]


class TestReminderEndpoints:
    async def test_schedule_and_list(self, client, store):
        r = await client.post("/reminders", json={"label": "Drink water", "delay_minutes": 60})
        assert r.status_code == 201
        body = r.json()
        assert body["label"] == "Drink water"
        assert body["remaining_seconds"] == pytest.approx(3600)

        r = await client.get("/reminders")
        ids = [x["id"] for x in r.json()["reminders"]]
        assert ids == [body["id"]]
        assert [x["id"] for x in store.get(REMINDERS_KEY)] == ids

    async def test_get_reminder(self, client):
        rid = (await client.post("/reminders", json={"label": "x", "delay_minutes": 5})).json()["id"]
        r = await client.get(f"/reminders/{rid}")
        assert r.status_code == 200
        assert r.json()["id"] == rid

    async def test_get_unknown_reminder_returns_404(self, client):
        r = await client.get("/reminders/nonexistent-xyz")
        assert r.status_code == 404

    async def test_cancel_is_idempotent(self, client):
        rid = (await client.post("/reminders", json={"label": "x", "delay_minutes": 5})).json()["id"]
        r = await client.delete(f"/reminders/{rid}")
        assert r.status_code == 200
        assert r.json()["cancelled"] is True
        r = await client.delete(f"/reminders/{rid}")
        assert r.status_code == 200
        assert r.json()["cancelled"] is False

    async def test_cancelled_reminder_never_fires(self, client, clock, notifier):
        rid = (await client.post("/reminders", json={"label": "Water", "delay_minutes": 60})).json()["id"]
        clock.advance(30 * 60)
        await client.delete(f"/reminders/{rid}")
        clock.advance(30 * 60)
        assert notifier.notifications == []

    async def test_reminder_fires_and_disappears(self, client, clock, notifier):
        await client.post("/reminders", json={"label": "Stretch", "delay_minutes": 1})
        clock.advance(60)
        assert notifier.notifications == [("Reminder", "Stretch")]
        r = await client.get("/reminders")
        assert r.json()["reminders"] == []

    async def test_cancel_all(self, client):
        for i in range(3):
            await client.post("/reminders", json={"label": f"r{i}", "delay_minutes": 10})
        r = await client.delete("/reminders")
        assert r.json()["cancelled"] == 3
        assert (await client.get("/reminders")).json()["reminders"] == []

    @pytest.mark.parametrize("body", [
        {"label": "", "delay_minutes": 10},
        {"label": "x", "delay_minutes": 0},
        {"label": "x", "delay_minutes": -3},
        {"delay_minutes": 10},
    ])
    async def test_invalid_reminder_returns_422(self, client, body):
        r = await client.post("/reminders", json=body)
        assert r.status_code == 422

    async def test_whitespace_label_returns_422(self, client):
        r = await client.post("/reminders", json={"label": "   ", "delay_minutes": 10})
        assert r.status_code == 422

    async def test_presets(self, client):
        r = await client.get("/reminders/presets")
        assert set(r.json()) == {"water", "stretch"}
        r = await client.post("/reminders/presets/stretch")
        assert r.status_code == 201
        assert r.json()["remaining_seconds"] == pytest.approx(120 * 60)

    async def test_unknown_preset_returns_404(self, client):
        r = await client.post("/reminders/presets/nap")
        assert r.status_code == 404


class TestBreathingEndpoints:
    async def test_start_and_progress(self, client, clock):
        r = await client.post("/breathing/446")
        assert r.status_code == 200
        assert r.json()["pattern"] == "446"
        assert r.json()["prompt"] == "Get ready..."
        clock.advance(1)
        r = await client.get("/breathing")
        assert r.json()["prompt"] == "Breathe in for 4s..."

    async def test_stop(self, client):
        await client.post("/breathing/square")
        r = await client.post("/breathing/stop")
        assert r.json()["pattern"] is None
        assert r.json()["prompt"] is None

    async def test_unknown_pattern_returns_404(self, client):
        r = await client.post("/breathing/fast")
        assert r.status_code == 404


class TestLifecycle:
    async def test_shutdown_cancels_pending_callbacks(self, app, clock):
        from httpx import ASGITransport, AsyncClient

        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                await ac.post("/cycle/start")
                await ac.post("/reminders", json={"label": "x", "delay_minutes": 5})
                await ac.post("/breathing/446")
                assert clock.pending() > 0
        assert clock.pending() == 0


def test_cycle_websocket_streams_changes(app):
    with TestClient(app) as tc:
        with tc.websocket_connect("/cycle/ws") as ws:
            first = ws.receive_json()
            assert first["phase"] == "work"
            assert first["is_running"] is False

            tc.post("/cycle/start")
            update = ws.receive_json()
            assert update["is_running"] is True
