# -*- coding: utf-8 -*-

import logging
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple

from core import timer_engine as engine
from core.timer_engine import TimerState
from domain.models import (
    Settings,
    ensure_remote_token,
    normalize_settings,
    validate_settings_patch,
)
from services import events
from services.app_model import ModelGuard
from services.events import EventBus

logger = logging.getLogger(__name__)


class SettingsService:
    """
    Settings reads/updates and the full data reset.
    Both re-apply the remote control listener once the guard is released.
    """

    def __init__(self, guard: ModelGuard, bus: EventBus, remote=None):
        self.guard = guard
        self.bus = bus
        # remote.server.RemoteControl; optional so tests can run without sockets
        self.remote = remote

    def get(self) -> Settings:
        with self.guard.hold() as model:
            return model.settings

    def update(self, patch: Dict[str, Any]) -> Settings:
        """
        Apply a partial update (snake_case field names).
        A paused timer is re-timed to the new duration of its phase.
        """
        changes = validate_settings_patch(patch)
        if "theme" in changes:
            changes["theme"] = changes["theme"].strip().lower()

        with self.guard.hold() as model:
            settings = replace(model.settings, **changes)
            settings = ensure_remote_token(normalize_settings(settings))
            model.save_settings(settings)

            timer = model.timer
            if not timer.is_running:
                timer = model.save_timer(engine.retime_idle(timer, settings))

        logger.info("settings updated: %s", ", ".join(sorted(patch)) or "(none)")
        self._after_change(settings, timer)
        return settings

    def regenerate_token(self) -> Settings:
        return self.update({"remote_control_token": ""})

    def reset_all_data(self) -> Tuple[Settings, TimerState]:
        """Wipe sessions, projects, tags and settings; recreate defaults."""
        with self.guard.hold() as model:
            model.reset_all()
            settings, timer = model.settings, model.timer

        logger.warning("all data reset")
        self._after_change(settings, timer)
        return settings, timer

    def apply_remote(self, settings: Optional[Settings] = None) -> None:
        if self.remote is None:
            return
        if settings is None:
            settings = self.get()
        self.remote.apply(settings)

    def _after_change(self, settings: Settings, timer: TimerState) -> None:
        self.apply_remote(settings)
        self.bus.publish(events.SETTINGS_CHANGED, settings)
        self.bus.publish(events.TIMER_STATE, timer)
