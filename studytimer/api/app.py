"""
FastAPI application — local study timer API.
Runs on http://127.0.0.1:8765 by default.

The engines live on app.state so that each call to create_app() produces a
fully independent instance with no shared module-level globals. Clock,
notifier and store can be injected, which is how the tests run the whole
app on a simulated clock.

Routes are async: every engine call happens on the event loop that owns the
AsyncioClock, so engine state never needs locking.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..actions.breathing import BreathingGuide
from ..actions.cycle import CycleEngine
from ..actions.notifications import Notifier, build_notifier
from ..actions.reminders import ReminderScheduler
from ..config import config
from ..core.clock import AsyncioClock, Clock
from ..core.store import SqliteStore, Store
from ..log import setup_logger

logger = setup_logger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: build and tear down per-app state
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    overrides = app.state.overrides
    clock: Clock = overrides.get("clock") or AsyncioClock(asyncio.get_running_loop())
    notifier: Notifier = overrides.get("notifier") or build_notifier(config.notifier)
    store: Store = overrides.get("store") or SqliteStore(config.store_path, config.profile)

    # one engine pair per (process, profile): the single writer of its records
    app.state.clock = clock
    app.state.cycle = CycleEngine(clock, notifier, store)
    app.state.reminders = ReminderScheduler(clock, notifier, store)
    app.state.breathing = BreathingGuide(clock)
    logger.info("Study timer ready for profile %r", config.profile)

    yield

    app.state.breathing.dispose()
    app.state.reminders.dispose()
    app.state.cycle.dispose()
    logger.info("Study timer stopped")


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    clock: Optional[Clock] = None,
    notifier: Optional[Notifier] = None,
    store: Optional[Store] = None,
) -> FastAPI:
    app = FastAPI(
        title="Study Timer",
        description="Focus cycle and reminder engine for the study dashboard",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.overrides = {"clock": clock, "notifier": notifier, "store": store}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import breathing, cycle, reminders, settings

    app.include_router(cycle.router)
    app.include_router(settings.router)
    app.include_router(reminders.router)
    app.include_router(breathing.router)

    @app.get("/health")
    async def health(request: Request):
        cycle_engine = getattr(request.app.state, "cycle", None)
        reminder_set = getattr(request.app.state, "reminders", None)
        warnings = [
            w for w in (
                cycle_engine.persistence_warning if cycle_engine else None,
                reminder_set.persistence_warning if reminder_set else None,
            )
            if w
        ]
        return {"status": "ok", "version": "0.1.0", "persistence_warnings": warnings}

    return app


app = create_app()
