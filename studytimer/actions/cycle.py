"""
Focus cycle — work / short break / long break state machine.

Remaining time is always derived from the absolute deadline and the clock,
never accumulated from ticks, so throttled or missed ticks cannot drift it.
Skip and natural completion share one evaluation path (tick / _evaluate).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import config
from ..core.clock import Clock
from ..core.store import Store
from ..errors import InvalidSettings, PersistenceError
from ..log import setup_logger
from ..settings import SETTINGS_KEY, TimerSettings
from .notifications import Notifier

logger = setup_logger(__name__)

STATE_KEY = "cycleState"


class Phase(str, Enum):
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


_MESSAGES = {
    Phase.SHORT_BREAK: ("Focus session complete", "Time for a short break"),
    Phase.LONG_BREAK:  ("Focus session complete", "Time for a long break"),
    Phase.WORK:        ("Break is over", "Time to focus"),
}


@dataclass
class CycleState:
    phase: Phase = Phase.WORK
    is_running: bool = False
    deadline: Optional[float] = None      # epoch seconds; None = full duration left
    paused_at: Optional[float] = None     # set whenever stopped with a deadline
    completed_rounds: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "isRunning": self.is_running,
            "deadline": _to_ms(self.deadline),
            "pausedAt": _to_ms(self.paused_at),
            "completedRounds": self.completed_rounds,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> "CycleState":
        state = cls(
            phase=Phase(data.get("phase", Phase.WORK.value)),
            is_running=bool(data.get("isRunning", False)),
            deadline=_from_ms(data.get("deadline")),
            paused_at=_from_ms(data.get("pausedAt")),
            completed_rounds=max(0, int(data.get("completedRounds", 0))),
        )
        if state.is_running and state.deadline is None:
            state.is_running = False
        if state.is_running:
            state.paused_at = None
        return state


@dataclass(frozen=True)
class CycleSnapshot:
    phase: Phase
    is_running: bool
    remaining_seconds: float
    duration_seconds: int
    progress_percent: int
    completed_rounds: int
    deadline: Optional[float]
    display: str
    persistence_warning: Optional[str] = None


class CycleEngine:
    """
    Owns the CycleState and the timer Settings for one profile.

    Every operation mutates the state, persists it, notifies subscribers
    and returns a CycleSnapshot. A failed save leaves the in-memory state
    in charge and shows up as snapshot.persistence_warning.
    """

    def __init__(
        self,
        clock: Clock,
        notifier: Notifier,
        store: Store,
        tick_interval_ms: Optional[int] = None,
    ):
        self._clock = clock
        self._notifier = notifier
        self._store = store
        self._tick_interval = (tick_interval_ms or config.tick_interval_ms) / 1000.0
        self._tick_handle: Any = None
        self._listeners: List[Callable[[CycleSnapshot], None]] = []
        self._warnings: Dict[str, str] = {}
        self._disposed = False

        self.settings = self._load_settings()
        self.state = self._load_state()
        if self.state.is_running:
            self._arm()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def duration(self, phase: Optional[Phase] = None) -> int:
        """Configured length of *phase* (default: current) in seconds."""
        phase = phase or self.state.phase
        s = self.settings
        if phase is Phase.WORK:
            return s.work_minutes * 60
        if phase is Phase.SHORT_BREAK:
            return s.short_break_minutes * 60
        return s.long_break_minutes * 60

    def remaining(self) -> float:
        s = self.state
        full = float(self.duration(s.phase))
        if s.deadline is None:
            return full
        # clamp guards against deadlines computed from a longer, older duration
        return min(full, max(0.0, s.deadline - self._reference_time()))

    def _reference_time(self) -> float:
        """The clock while running; the pause instant while stopped."""
        s = self.state
        if not s.is_running and s.paused_at is not None:
            return s.paused_at
        return self._clock.now()

    def progress(self) -> int:
        full = self.duration()
        return max(0, round(100 * (full - self.remaining()) / full))

    def snapshot(self) -> CycleSnapshot:
        remaining = self.remaining()
        return CycleSnapshot(
            phase=self.state.phase,
            is_running=self.state.is_running,
            remaining_seconds=remaining,
            duration_seconds=self.duration(),
            progress_percent=self.progress(),
            completed_rounds=self.state.completed_rounds,
            deadline=self.state.deadline,
            display=format_mmss(remaining),
            persistence_warning=self.persistence_warning,
        )

    @property
    def persistence_warning(self) -> Optional[str]:
        if not self._warnings:
            return None
        return "; ".join(self._warnings[k] for k in sorted(self._warnings))

    # ------------------------------------------------------------------
    # Manual operations
    # ------------------------------------------------------------------

    def start(self) -> CycleSnapshot:
        s = self.state
        if s.is_running:
            return self.snapshot()
        now = self._clock.now()
        if s.deadline is None:
            s.deadline = now + self.duration()
        else:
            s.deadline = now + self.remaining()
        s.paused_at = None
        s.is_running = True
        self._arm()
        logger.debug("Started %s, deadline %.3f", s.phase.value, s.deadline)
        return self._commit()

    def pause(self) -> CycleSnapshot:
        s = self.state
        if not s.is_running:
            return self.snapshot()
        now = self._clock.now()
        s.deadline = now + self.remaining()
        s.paused_at = now
        s.is_running = False
        self._disarm()
        logger.debug("Paused %s with %.3fs left", s.phase.value, s.deadline - now)
        return self._commit()

    def reset(self, phase: Optional[Phase] = None) -> CycleSnapshot:
        self._disarm()
        self.state = CycleState(phase=phase or Phase.WORK)
        logger.debug("Reset to %s", self.state.phase.value)
        return self._commit()

    def switch_phase(self, phase: Phase) -> CycleSnapshot:
        return self.reset(phase)

    def skip(self) -> CycleSnapshot:
        """End the current phase now, through the same path as natural completion."""
        s = self.state
        now = self._clock.now()
        s.deadline = now - 1.0
        if not s.is_running:
            s.paused_at = now
        return self._evaluate(force=True)

    def tick(self) -> CycleSnapshot:
        """Re-read the clock; run the phase transition if the deadline has passed."""
        return self._evaluate(force=False)

    def update_settings(self, patch: Dict[str, Any]) -> TimerSettings:
        """
        Apply a partial settings update. Raises InvalidSettings and keeps the
        previous settings if the result is invalid. New durations apply from
        the next transition; a running deadline is only ever clamped down.
        """
        self.settings = self.settings.merged(patch)
        self._persist(SETTINGS_KEY, self.settings.to_dict())
        logger.info("Settings updated: %s", self.settings.to_dict())

        s = self.state
        if s.deadline is not None:
            ref = self._reference_time()
            left = self.remaining()
            if s.deadline - ref > left:
                # a shorter duration pulls the deadline in to the clamp
                s.deadline = ref + left
                self._commit()
                return self.settings
        self._publish(self.snapshot())
        return self.settings

    # ------------------------------------------------------------------
    # Observers / lifecycle
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[CycleSnapshot], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def dispose(self) -> None:
        """Cancel the tick; the persisted state is left for the next session."""
        self._disposed = True
        self._disarm()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Transition
    # ------------------------------------------------------------------

    def _evaluate(self, force: bool) -> CycleSnapshot:
        s = self.state
        if s.deadline is None or not (s.is_running or force):
            return self.snapshot()
        if self.remaining() > 0:
            return self.snapshot()
        self._complete_phase()
        return self._commit()

    def _complete_phase(self) -> None:
        s = self.state
        finished = s.phase
        if finished is Phase.WORK:
            s.completed_rounds += 1
            if s.completed_rounds % self.settings.rounds_to_long == 0:
                upcoming = Phase.LONG_BREAK
            else:
                upcoming = Phase.SHORT_BREAK
        else:
            upcoming = Phase.WORK

        now = self._clock.now()
        s.phase = upcoming
        s.deadline = now + self.duration(upcoming)
        if self.settings.auto_start_next:
            s.is_running = True
            s.paused_at = None
            self._arm()
        else:
            s.is_running = False
            s.paused_at = now
            self._disarm()
        logger.info(
            "%s finished -> %s (rounds completed: %d)",
            finished.value, upcoming.value, s.completed_rounds,
        )
        # side effects only after the new phase is in place
        self._announce(upcoming)

    def _announce(self, upcoming: Phase) -> None:
        title, body = _MESSAGES[upcoming]
        try:
            if self.settings.sound_enabled:
                self._notifier.play_tone()
            if self.settings.notify_enabled:
                self._notifier.show_notification(title, body)
        except Exception:
            logger.exception("Notifier failed announcing %s", upcoming.value)

    # ------------------------------------------------------------------
    # Tick scheduling
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        self._disarm()
        if not self._disposed:
            self._tick_handle = self._clock.after(self._tick_interval, self._on_tick)

    def _disarm(self) -> None:
        if self._tick_handle is not None:
            self._clock.cancel(self._tick_handle)
            self._tick_handle = None

    def _on_tick(self) -> None:
        self._tick_handle = None
        if self._disposed:
            return
        try:
            self.tick()
        except Exception:
            logger.exception("Cycle tick failed")
        if self.state.is_running and self._tick_handle is None:
            self._arm()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self) -> CycleSnapshot:
        self._persist(STATE_KEY, self.state.to_record())
        snap = self.snapshot()
        self._publish(snap)
        return snap

    def _publish(self, snap: CycleSnapshot) -> None:
        for cb in list(self._listeners):
            try:
                cb(snap)
            except Exception:
                logger.exception("Cycle listener failed")

    def _persist(self, key: str, value: Dict[str, Any]) -> None:
        if self._store.set(key, value):
            self._warnings.pop(key, None)
        else:
            self._warnings[key] = f"{key} could not be saved and will not survive a reload"

    def _load(self, key: str) -> Optional[Any]:
        try:
            return self._store.get(key)
        except PersistenceError as e:
            logger.warning("Falling back to defaults for %s: %s", key, e)
            self._warnings[key] = f"{key} could not be loaded; defaults in use"
            return None

    def _load_settings(self) -> TimerSettings:
        data = self._load(SETTINGS_KEY)
        if not isinstance(data, dict):
            return TimerSettings()
        try:
            return TimerSettings.from_dict(data)
        except InvalidSettings as e:
            logger.warning("Stored settings rejected, using defaults: %s", e)
            return TimerSettings()

    def _load_state(self) -> CycleState:
        data = self._load(STATE_KEY)
        if not isinstance(data, dict):
            return CycleState()
        try:
            state = CycleState.from_record(data)
        except (TypeError, ValueError) as e:
            logger.warning("Stored cycle state rejected, starting fresh: %s", e)
            return CycleState()
        if not state.is_running and state.deadline is not None and state.paused_at is None:
            state.paused_at = self._clock.now()
        if state.deadline is not None:
            ref = state.paused_at if not state.is_running else self._clock.now()
            latest = ref + self.duration(state.phase)
            if state.deadline > latest:
                # stored deadline outlives the configured phase length
                logger.warning(
                    "Restored %s deadline exceeds phase length, pulling it in",
                    state.phase.value,
                )
                state.deadline = latest
        if state.is_running:
            logger.info(
                "Resuming %s, deadline %.3f (now %.3f)",
                state.phase.value, state.deadline, self._clock.now(),
            )
        return state


def format_mmss(seconds: float) -> str:
    total = int(round(max(0.0, seconds)))
    m, s = divmod(total, 60)
    return f"{m:02d}:{s:02d}"


def _to_ms(ts: Optional[float]) -> Optional[int]:
    return None if ts is None else int(round(ts * 1000))


def _from_ms(ms: Optional[Any]) -> Optional[float]:
    return None if ms is None else int(ms) / 1000.0
