# -*- coding: utf-8 -*-

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from core import timer_engine as engine
from core.clock import Clock, now_ts
from core.timer_engine import KEEP, TimerState
from domain.models import PhaseCompleted, SessionRecord, Settings
from services import events
from services.app_model import AppModel, ModelGuard
from services.events import EventBus
from services.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Completion:
    record: SessionRecord
    phase_event: PhaseCompleted
    timer: TimerState
    notify: bool


class TimerService:
    """
    Orchestrates:
    - TimerEngine transitions on the shared model (one per guard hold)
    - SQLite persistence of the timer and finished sessions
    - Snapshot / completion events and notifications, after the guard is released

    Used by the UI, the remote control server and the ticker alike.
    """

    def __init__(
        self,
        guard: ModelGuard,
        bus: EventBus,
        notifier: Optional[Notifier] = None,
        clock: Clock = now_ts,
    ):
        self.guard = guard
        self.bus = bus
        self.notifier = notifier
        self.clock = clock

    # ----- Public API -----
    def get_state(self) -> TimerState:
        with self.guard.hold() as model:
            return engine.refresh(model.timer, self.clock())

    def get_settings(self) -> Settings:
        with self.guard.hold() as model:
            return model.settings

    def start(
        self, project_id: Any = KEEP, tag_ids: Optional[Iterable[int]] = None
    ) -> TimerState:
        return self._mutate(
            lambda t, now: engine.start(engine.refresh(t, now), now, project_id, tag_ids)
        )

    def resume(
        self, project_id: Any = KEEP, tag_ids: Optional[Iterable[int]] = None
    ) -> TimerState:
        return self._mutate(
            lambda t, now: engine.resume(engine.refresh(t, now), now, project_id, tag_ids)
        )

    def pause(self) -> TimerState:
        return self._mutate(engine.pause)

    def toggle(self) -> TimerState:
        return self._mutate(engine.toggle)

    def set_context(
        self, project_id: Any = KEEP, tag_ids: Optional[Iterable[int]] = None
    ) -> TimerState:
        return self._mutate(
            lambda t, now: engine.set_context(engine.refresh(t, now), project_id, tag_ids)
        )

    def skip(self) -> TimerState:
        """Close the current phase early (recorded as not completed) and advance."""
        with self.guard.hold() as model:
            now = self.clock()
            timer = engine.refresh(model.timer, now)
            completion = self._complete(model, timer, now, completed=False)
        self._publish_completion(completion)
        return completion.timer

    def tick(self) -> Optional[TimerState]:
        """
        Called once per second by the Ticker.
        Returns the emitted snapshot, or None when nothing changed.
        """
        completion: Optional[_Completion] = None
        snapshot: Optional[TimerState] = None

        with self.guard.hold() as model:
            if not model.timer.is_running:
                return None

            now = self.clock()
            before = model.timer.remaining_seconds
            refreshed = engine.refresh(model.timer, now)

            if refreshed.remaining_seconds <= 0:
                completion = self._complete(model, refreshed, now, completed=True)
            elif refreshed.remaining_seconds != before:
                snapshot = model.save_timer(refreshed)

        if completion is not None:
            self._publish_completion(completion)
            return completion.timer
        if snapshot is not None:
            self.bus.publish(events.TIMER_STATE, snapshot)
        return snapshot

    # ----- internals -----
    def _mutate(self, op: Callable[[TimerState, int], TimerState]) -> TimerState:
        with self.guard.hold() as model:
            timer = model.save_timer(op(model.timer, self.clock()))
        self.bus.publish(events.TIMER_STATE, timer)
        return timer

    def _complete(
        self, model: AppModel, timer: TimerState, now: int, completed: bool
    ) -> _Completion:
        finished = timer.phase
        draft, next_timer = engine.complete(timer, model.settings, now, completed)
        record = model.record_completion(draft, next_timer)
        phase_event = PhaseCompleted(completed_phase=finished, next_phase=next_timer.phase)
        logger.info(
            "%s %s after %ss; next: %s",
            finished.label,
            "completed" if completed else "skipped",
            record.duration_sec,
            next_timer.phase.label,
        )
        return _Completion(
            record=record,
            phase_event=phase_event,
            timer=next_timer,
            notify=model.settings.notifications_enabled,
        )

    def _publish_completion(self, completion: _Completion) -> None:
        phase_event = completion.phase_event
        self.bus.publish(events.SESSION_COMPLETED, completion.record)
        self.bus.publish(events.PHASE_COMPLETED, phase_event)
        self.bus.publish(events.TIMER_STATE, completion.timer)

        if completion.notify and self.notifier is not None:
            body = (
                f"{phase_event.completed_phase.label} complete. "
                f"Next: {phase_event.next_phase.label}"
            )
            self.notifier.notify("Pomodoro update", body)
