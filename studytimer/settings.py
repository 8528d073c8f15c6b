"""
User-tunable timer settings — persisted under the store key "settings".

The cycle engine owns the live instance; read it through engine.settings and
change it through engine.update_settings(patch).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping

from .errors import InvalidSettings

SETTINGS_KEY = "settings"

# Wire names match the persisted JSON record.
DEFAULTS: Dict[str, Any] = {
    "workMinutes":       25,
    "shortBreakMinutes": 5,
    "longBreakMinutes":  15,
    "roundsToLong":      4,      # completed work sessions before a long break
    "autoStartNext":     True,
    "soundEnabled":      True,
    "notifyEnabled":     True,
}

_POSITIVE_FIELDS = ("workMinutes", "shortBreakMinutes", "longBreakMinutes", "roundsToLong")

_ATTRS = {
    "workMinutes":       "work_minutes",
    "shortBreakMinutes": "short_break_minutes",
    "longBreakMinutes":  "long_break_minutes",
    "roundsToLong":      "rounds_to_long",
    "autoStartNext":     "auto_start_next",
    "soundEnabled":      "sound_enabled",
    "notifyEnabled":     "notify_enabled",
}


@dataclass(frozen=True)
class TimerSettings:
    work_minutes: int = DEFAULTS["workMinutes"]
    short_break_minutes: int = DEFAULTS["shortBreakMinutes"]
    long_break_minutes: int = DEFAULTS["longBreakMinutes"]
    rounds_to_long: int = DEFAULTS["roundsToLong"]
    auto_start_next: bool = DEFAULTS["autoStartNext"]
    sound_enabled: bool = DEFAULTS["soundEnabled"]
    notify_enabled: bool = DEFAULTS["notifyEnabled"]

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        return {wire: values[attr] for wire, attr in _ATTRS.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimerSettings":
        """Build validated settings from a (possibly partial) wire dict."""
        merged = dict(DEFAULTS)
        merged.update(_coerce(data))
        validate(merged)
        return cls(**{attr: merged[wire] for wire, attr in _ATTRS.items()})

    def merged(self, patch: Mapping[str, Any]) -> "TimerSettings":
        """Return a copy with *patch* applied (unknown keys ignored)."""
        current = self.to_dict()
        current.update(_coerce(patch))
        return TimerSettings.from_dict(current)


def validate(data: Mapping[str, Any]) -> None:
    for key in _POSITIVE_FIELDS:
        if data[key] < 1:
            raise InvalidSettings(f"{key} must be >= 1, got {data[key]}")


def _coerce(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in data.items():
        if k not in DEFAULTS:
            continue
        try:
            # coerce to the same type as the default
            out[k] = type(DEFAULTS[k])(v)
        except (TypeError, ValueError) as e:
            raise InvalidSettings(f"{k}: cannot use {v!r}") from e
    return out
