# -*- coding: utf-8 -*-

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from domain.models import Phase, SessionRecord, Settings


class _Keep:
    def __repr__(self) -> str:
        return "KEEP"


# "leave the current project alone"; None means "clear it"
KEEP: Any = _Keep()


@dataclass(frozen=True)
class TimerState:
    phase: Phase
    remaining_seconds: int
    is_running: bool
    cycle_index: int
    started_at: Optional[int]
    phase_total_seconds: int
    interruptions: int = 0
    current_project_id: Optional[int] = None
    current_tag_ids: Tuple[int, ...] = ()
    target_ends_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "remainingSeconds": self.remaining_seconds,
            "isRunning": self.is_running,
            "cycleIndex": self.cycle_index,
            "startedAt": self.started_at,
            "phaseTotalSeconds": self.phase_total_seconds,
            "interruptions": self.interruptions,
            "currentProjectId": self.current_project_id,
            "currentTagIds": list(self.current_tag_ids),
            "targetEndsAt": self.target_ends_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimerState":
        """Raises KeyError / ValueError / TypeError on malformed input."""
        return cls(
            phase=Phase.parse(data["phase"]),
            remaining_seconds=int(data["remainingSeconds"]),
            is_running=bool(data["isRunning"]),
            cycle_index=int(data["cycleIndex"]),
            started_at=_opt_int(data.get("startedAt")),
            phase_total_seconds=int(data["phaseTotalSeconds"]),
            interruptions=int(data.get("interruptions") or 0),
            current_project_id=_opt_int(data.get("currentProjectId")),
            current_tag_ids=tuple(int(t) for t in data.get("currentTagIds") or ()),
            target_ends_at=_opt_int(data.get("targetEndsAt")),
        )


def _opt_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


# ---- construction / normalisation ----
def default_state(settings: Settings) -> TimerState:
    total = settings.duration_for_phase(Phase.FOCUS)
    return TimerState(
        phase=Phase.FOCUS,
        remaining_seconds=total,
        is_running=False,
        cycle_index=0,
        started_at=None,
        phase_total_seconds=total,
    )


def normalize(state: TimerState, settings: Settings) -> TimerState:
    """
    Bring a loaded state back inside its invariants.
    Out-of-range remaining time is treated as corrupt: full duration, paused.
    """
    total = settings.duration_for_phase(state.phase)
    state = replace(
        state,
        phase_total_seconds=total,
        cycle_index=max(state.cycle_index, 0),
        interruptions=max(state.interruptions, 0),
    )
    if state.remaining_seconds <= 0 or state.remaining_seconds > total:
        state = replace(
            state, remaining_seconds=total, is_running=False, target_ends_at=None
        )
    elif state.is_running and state.target_ends_at is None:
        state = replace(state, is_running=False)
    elif not state.is_running and state.target_ends_at is not None:
        state = replace(state, target_ends_at=None)
    return state


def retime_idle(state: TimerState, settings: Settings) -> TimerState:
    """Durations changed while paused: restart the current phase at full length."""
    if state.is_running:
        return state
    total = settings.duration_for_phase(state.phase)
    return replace(
        state,
        phase_total_seconds=total,
        remaining_seconds=total,
        started_at=None,
        target_ends_at=None,
    )


# ---- transitions ----
def refresh(state: TimerState, now: int) -> TimerState:
    if not state.is_running or state.target_ends_at is None:
        return state
    return replace(state, remaining_seconds=max(state.target_ends_at - now, 0))


def set_context(
    state: TimerState, project_id: Any = KEEP, tag_ids: Optional[Iterable[int]] = None
) -> TimerState:
    changes: Dict[str, Any] = {}
    if project_id is not KEEP:
        changes["current_project_id"] = project_id
    if tag_ids is not None:
        changes["current_tag_ids"] = tuple(int(t) for t in tag_ids)
    return replace(state, **changes) if changes else state


def start(
    state: TimerState,
    now: int,
    project_id: Any = KEEP,
    tag_ids: Optional[Iterable[int]] = None,
) -> TimerState:
    state = set_context(state, project_id, tag_ids)
    remaining = state.remaining_seconds
    if remaining <= 0:
        remaining = state.phase_total_seconds
    return replace(
        state,
        remaining_seconds=remaining,
        started_at=state.started_at if state.started_at is not None else now,
        is_running=True,
        target_ends_at=now + remaining,
    )


def resume(
    state: TimerState,
    now: int,
    project_id: Any = KEEP,
    tag_ids: Optional[Iterable[int]] = None,
) -> TimerState:
    return start(state, now, project_id, tag_ids)


def pause(state: TimerState, now: int) -> TimerState:
    state = refresh(state, now)
    interruptions = state.interruptions
    if state.phase == Phase.FOCUS and state.is_running:
        interruptions += 1
    return replace(
        state, is_running=False, target_ends_at=None, interruptions=interruptions
    )


def toggle(state: TimerState, now: int) -> TimerState:
    """Running -> pause, started before -> resume, otherwise start."""
    state = refresh(state, now)
    if state.is_running:
        return pause(state, now)
    if state.started_at is not None:
        return resume(state, now)
    return start(state, now)


def next_phase(phase: Phase, cycle_index: int, long_break_every: int) -> Tuple[Phase, int]:
    """Returns (next phase, next cycle index)."""
    if phase != Phase.FOCUS:
        return Phase.FOCUS, cycle_index
    cycle_index += 1
    if cycle_index % long_break_every == 0:
        return Phase.LONG_BREAK, cycle_index
    return Phase.SHORT_BREAK, cycle_index


def advance(state: TimerState, settings: Settings) -> TimerState:
    phase, cycle_index = next_phase(
        state.phase, state.cycle_index, settings.long_break_every
    )
    total = settings.duration_for_phase(phase)
    return replace(
        state,
        phase=phase,
        cycle_index=cycle_index,
        phase_total_seconds=total,
        remaining_seconds=total,
        is_running=False,
        started_at=None,
        target_ends_at=None,
        interruptions=0,
    )


def session_for(state: TimerState, now: int, completed: bool) -> SessionRecord:
    total = state.phase_total_seconds
    if completed:
        elapsed = total
    else:
        elapsed = min(max(total - state.remaining_seconds, 0), total)

    started_at = state.started_at
    if started_at is None:
        started_at = now - max(elapsed, 1)

    is_focus = state.phase == Phase.FOCUS
    return SessionRecord(
        started_at=started_at,
        ended_at=now,
        phase=state.phase,
        duration_sec=elapsed,
        completed=completed,
        interruptions=state.interruptions,
        project_id=state.current_project_id if is_focus else None,
        tag_ids=state.current_tag_ids if is_focus else (),
    )


def complete(
    state: TimerState, settings: Settings, now: int, completed: bool
) -> Tuple[SessionRecord, TimerState]:
    """Close the current phase: the session to record plus the advanced state."""
    return session_for(state, now, completed), advance(state, settings)


# ---- presentation ----
def format_clock(seconds: int) -> str:
    m = max(0, seconds) // 60
    s = max(0, seconds) % 60
    return f"{m:02d}:{s:02d}"


def status_line(state: TimerState) -> str:
    status = "Running" if state.is_running else "Paused"
    return f"{state.phase.label} {format_clock(state.remaining_seconds)} {status}"
