"""
Shared pytest fixtures and configuration.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from studytimer.api.app import create_app
from studytimer.core.clock import SimulatedClock
from studytimer.core.store import MemoryStore


class RecordingNotifier:
    """Collects side effects instead of performing them."""

    def __init__(self):
        self.tones = 0
        self.notifications: list[tuple[str, str]] = []

    def play_tone(self) -> None:
        self.tones += 1

    def show_notification(self, title: str, body: str) -> None:
        self.notifications.append((title, body))


@pytest.fixture
def clock():
    return SimulatedClock(start=1_700_000_000.0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app(clock, notifier, store):
    """A fresh app per test, wired to the simulated clock."""
    return create_app(clock=clock, notifier=notifier, store=store)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
