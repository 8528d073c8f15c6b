"""
Study Day Simulator — runs the focus cycle and reminders on a simulated
clock so you can watch a whole day of transitions in a second, without
waiting or touching the real store.

Usage:
    python scripts/simulate.py                   # 4 hours, default settings
    python scripts/simulate.py --hours 8
    python scripts/simulate.py --work 50 --short 10 --long 30 --rounds 3
    python scripts/simulate.py --throttle 90     # tick only every 90 s (background tab)
    python scripts/simulate.py --reminder water --reminder stretch
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from studytimer.actions.cycle import CycleEngine, Phase  # noqa: E402
from studytimer.actions.reminders import PRESETS, ReminderScheduler  # noqa: E402
from studytimer.core.clock import SimulatedClock  # noqa: E402
from studytimer.core.store import MemoryStore  # noqa: E402


class PrintNotifier:
    """Prints side effects with the simulated time."""

    def __init__(self, clock: SimulatedClock):
        self._clock = clock

    def _stamp(self) -> str:
        return datetime.fromtimestamp(self._clock.now(), tz=timezone.utc).strftime("%H:%M:%S")

    def play_tone(self) -> None:
        print(f"  {self._stamp()}  ♪")

    def show_notification(self, title: str, body: str) -> None:
        print(f"  {self._stamp()}  [{title}] {body}")


def run(args: argparse.Namespace) -> None:
    start = datetime(2024, 1, 8, 8, 0, tzinfo=timezone.utc).timestamp()
    clock = SimulatedClock(start=start)
    notifier = PrintNotifier(clock)
    store = MemoryStore()

    cycle = CycleEngine(clock, notifier, store)
    cycle.update_settings({
        "workMinutes": args.work,
        "shortBreakMinutes": args.short,
        "longBreakMinutes": args.long,
        "roundsToLong": args.rounds,
        "autoStartNext": True,
    })
    reminders = ReminderScheduler(clock, notifier, store)
    for name in args.reminder:
        reminders.schedule_preset(name)

    entered = {p: 0 for p in Phase}
    current = [cycle.state.phase]

    def _count(snap) -> None:
        if snap.phase is not current[0]:
            entered[snap.phase] += 1
            current[0] = snap.phase

    cycle.subscribe(_count)
    cycle.start()

    end = start + args.hours * 3600
    print(f"Simulating {args.hours:g} h from 08:00 UTC\n")
    if args.throttle:
        # tick loop starved: time leaps, evaluation happens only occasionally
        while clock.now() < end:
            clock.jump(args.throttle)
            clock.advance(0)
    else:
        clock.advance(end - clock.now())

    snap = cycle.snapshot()
    print()
    print(f"Completed work sessions : {snap.completed_rounds}")
    print(f"Short / long breaks     : {entered[Phase.SHORT_BREAK]} / {entered[Phase.LONG_BREAK]}")
    print(f"Current phase           : {snap.phase.value} ({snap.display} left)")
    print(f"Reminders still pending : {len(reminders.pending())}")

    cycle.dispose()
    reminders.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a study day on the focus cycle")
    parser.add_argument("--hours", type=float, default=4.0)
    parser.add_argument("--work", type=int, default=25, help="Work minutes")
    parser.add_argument("--short", type=int, default=5, help="Short break minutes")
    parser.add_argument("--long", type=int, default=15, help="Long break minutes")
    parser.add_argument("--rounds", type=int, default=4, help="Work sessions before a long break")
    parser.add_argument("--throttle", type=float, default=0.0,
                        help="Only evaluate every N seconds, as a throttled tab would")
    parser.add_argument("--reminder", action="append", default=[], choices=sorted(PRESETS),
                        help="Schedule a preset reminder (repeatable)")
    run(parser.parse_args())


if __name__ == "__main__":
    main()
