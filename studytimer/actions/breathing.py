"""
Guided breathing — a short timed sequence of prompts driven by the Clock.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Dict, List, Optional, Tuple

from ..core.clock import Clock
from ..log import setup_logger

logger = setup_logger(__name__)

READY_PROMPT = "Get ready..."

# pattern -> [(seconds after start, prompt)]; a None prompt ends the sequence
PATTERNS: Dict[str, List[Tuple[float, Optional[str]]]] = {
    "446": [
        (0.3,  "Breathe in for 4s..."),
        (4.3,  "Hold for 4s..."),
        (8.3,  "Breathe out for 6s..."),
        (14.3, "Done, stay calm"),
        (17.3, None),
    ],
    "square": [
        (0.3,  "Breathe in for 4s..."),
        (4.3,  "Hold for 4s..."),
        (8.3,  "Breathe out for 4s..."),
        (12.3, "Hold for 4s..."),
        (16.3, "Done, breathe normally"),
        (19.3, None),
    ],
}


class BreathingGuide:

    def __init__(self, clock: Clock):
        self._clock = clock
        self._handles: List[Any] = []
        self.pattern: Optional[str] = None
        self.prompt: Optional[str] = None

    def run(self, pattern: str) -> Optional[str]:
        """Start *pattern*, replacing any sequence already in progress."""
        if pattern not in PATTERNS:
            raise ValueError(f"unknown breathing pattern {pattern!r}")
        self.stop()
        self.pattern = pattern
        self.prompt = READY_PROMPT
        for offset, prompt in PATTERNS[pattern]:
            self._handles.append(self._clock.after(offset, partial(self._show, prompt)))
        logger.debug("Breathing pattern %s started", pattern)
        return self.prompt

    def stop(self) -> None:
        for handle in self._handles:
            self._clock.cancel(handle)
        self._handles = []
        self.pattern = None
        self.prompt = None

    dispose = stop

    def _show(self, prompt: Optional[str]) -> None:
        self.prompt = prompt
        if prompt is None:
            self.pattern = None
            self._handles = []
