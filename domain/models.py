# -*- coding: utf-8 -*-

import math
import secrets
import string
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Phase(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "Phase":
        try:
            return cls(str(value).strip('"'))
        except ValueError:
            raise ValueError(f"unknown timer phase: {value}")


_PHASE_LABELS = {
    Phase.FOCUS: "Focus",
    Phase.SHORT_BREAK: "Short break",
    Phase.LONG_BREAK: "Long break",
}


_SETTINGS_BOUNDS: Dict[str, Tuple[int, int]] = {
    "focus_min": (1, 180),
    "short_break_min": (1, 60),
    "long_break_min": (1, 90),
    "long_break_every": (2, 10),
    "remote_control_port": (1024, 65535),
}

_SETTINGS_JSON_KEYS = {
    "focus_min": "focusMin",
    "short_break_min": "shortBreakMin",
    "long_break_min": "longBreakMin",
    "long_break_every": "longBreakEvery",
    "theme": "theme",
    "sound_enabled": "soundEnabled",
    "notifications_enabled": "notificationsEnabled",
    "remote_control_enabled": "remoteControlEnabled",
    "remote_control_port": "remoteControlPort",
    "remote_control_token": "remoteControlToken",
}

TOKEN_LENGTH = 32
_TOKEN_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class Settings:
    focus_min: int = 25
    short_break_min: int = 5
    long_break_min: int = 15
    long_break_every: int = 4
    theme: str = "light"
    sound_enabled: bool = True
    notifications_enabled: bool = True
    remote_control_enabled: bool = False
    remote_control_port: int = 48484
    remote_control_token: str = ""

    def duration_for_phase(self, phase: Phase) -> int:
        if phase == Phase.FOCUS:
            return self.focus_min * 60
        if phase == Phase.SHORT_BREAK:
            return self.short_break_min * 60
        return self.long_break_min * 60

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, name) for name, key in _SETTINGS_JSON_KEYS.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Missing or wrongly typed keys keep their defaults."""
        defaults = cls()
        values: Dict[str, Any] = {}
        for f in fields(cls):
            raw = data.get(_SETTINGS_JSON_KEYS[f.name]) if isinstance(data, dict) else None
            values[f.name] = _coerce(raw, getattr(defaults, f.name))
        return cls(**values)


def _coerce(raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    if isinstance(default, bool):
        return raw if isinstance(raw, bool) else default
    if isinstance(default, int):
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return default
        if isinstance(raw, float) and not math.isfinite(raw):
            return default
        return int(raw)
    if isinstance(default, str):
        return raw if isinstance(raw, str) else default
    return default


def settings_field_names() -> List[str]:
    return [f.name for f in fields(Settings)]


def validate_settings_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a partial update (snake_case field names) against the Settings field types.
    None leaves a field unchanged. Unknown names or wrongly typed values raise ValueError.
    """
    unknown = sorted(set(patch) - set(settings_field_names()))
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    defaults = Settings()
    changes: Dict[str, Any] = {}
    for name, value in patch.items():
        if value is None:
            continue
        default = getattr(defaults, name)
        if isinstance(default, bool):
            ok = isinstance(value, bool)
        elif isinstance(default, int):
            ok = isinstance(value, int) and not isinstance(value, bool)
        else:
            ok = isinstance(value, str)
        if not ok:
            raise ValueError(
                f"Setting '{name}' must be {type(default).__name__}, got {value!r}"
            )
        changes[name] = value
    return changes


def generate_remote_token() -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def normalize_settings(settings: Settings) -> Settings:
    clamped = {
        name: min(max(int(getattr(settings, name)), lo), hi)
        for name, (lo, hi) in _SETTINGS_BOUNDS.items()
    }
    theme = "dark" if (settings.theme or "").strip().lower() == "dark" else "light"
    return replace(settings, theme=theme, **clamped)


def ensure_remote_token(settings: Settings) -> Settings:
    if (settings.remote_control_token or "").strip():
        return settings
    return replace(settings, remote_control_token=generate_remote_token())


@dataclass(frozen=True)
class SessionRecord:
    started_at: int
    ended_at: int
    phase: Phase
    duration_sec: int
    completed: bool
    interruptions: int
    project_id: Optional[int] = None
    tag_ids: Tuple[int, ...] = ()
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
            "phase": self.phase.value,
            "durationSec": self.duration_sec,
            "completed": self.completed,
            "interruptions": self.interruptions,
            "projectId": self.project_id,
            "tagIds": list(self.tag_ids),
        }


@dataclass(frozen=True)
class Project:
    id: int
    name: str
    color: Optional[str] = None
    archived: bool = False


@dataclass(frozen=True)
class Tag:
    id: int
    name: str


@dataclass(frozen=True)
class PhaseCompleted:
    completed_phase: Phase
    next_phase: Phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completedPhase": self.completed_phase.value,
            "nextPhase": self.next_phase.value,
        }


@dataclass(frozen=True)
class AnalyticsRange:
    from_ts: Optional[int] = None
    to_ts: Optional[int] = None
    project_id: Optional[int] = None
    tag_id: Optional[int] = None


@dataclass(frozen=True)
class AnalyticsSummary:
    total_focus_sec: int = 0
    completed_pomodoros: int = 0
    streak_days: int = 0
    interruptions: int = 0
    avg_daily_focus_sec: int = 0


@dataclass
class TimeseriesPoint:
    date: str  # yyyy-mm-dd, local time
    focus_seconds: int = 0
    completed_pomodoros: int = 0
    interruptions: int = 0
