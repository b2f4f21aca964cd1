# -*- coding: utf-8 -*-

import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator

from core import timer_engine as engine
from core.timer_engine import TimerState
from domain.models import (
    SessionRecord,
    Settings,
    ensure_remote_token,
    normalize_settings,
)
from services.errors import ModelUnavailableError, StorageError
from storage.db import Database
from storage.repos import AppStateRepo, ProjectRepo, SessionRepo, TagRepo

logger = logging.getLogger(__name__)

APP_SETTINGS_KEY = "app_settings"
TIMER_STATE_KEY = "timer_state"


class AppModel:
    """
    The single shared aggregate: storage handle, settings, timer state.
    Only touched while holding its ModelGuard.

    save_* methods write first and swap the in-memory value only on success,
    so what is persisted and what gets emitted never diverge.
    """

    def __init__(self, db: Database, settings: Settings, timer: TimerState):
        self.db = db
        self.app_state = AppStateRepo(db)
        self.sessions = SessionRepo(db)
        self.projects = ProjectRepo(db)
        self.tags = TagRepo(db)
        self.settings = settings
        self.timer = timer

    @classmethod
    def load(cls, db: Database) -> "AppModel":
        model = cls(db, Settings(), engine.default_state(Settings()))
        settings = model._load_settings()
        timer = model._load_timer(settings)
        try:
            model.app_state.set_json(APP_SETTINGS_KEY, settings.to_dict(), commit=False)
            model.app_state.set_json(TIMER_STATE_KEY, timer.to_dict(), commit=False)
            db.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        model.settings = settings
        model.timer = timer
        return model

    def _load_settings(self) -> Settings:
        try:
            raw = self.app_state.get_json(APP_SETTINGS_KEY)
        except ValueError:
            logger.warning("stored settings are not valid JSON; using defaults")
            raw = None
        settings = Settings.from_dict(raw) if raw is not None else Settings()
        return ensure_remote_token(normalize_settings(settings))

    def _load_timer(self, settings: Settings) -> TimerState:
        try:
            raw = self.app_state.get_json(TIMER_STATE_KEY)
            if raw is None:
                return engine.default_state(settings)
            timer = TimerState.from_dict(raw)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning("stored timer state is malformed (%s); starting fresh", e)
            return engine.default_state(settings)
        return engine.normalize(timer, settings)

    # ---- persistence (caller holds the guard) ----
    def save_timer(self, timer: TimerState) -> TimerState:
        try:
            self.app_state.set_json(TIMER_STATE_KEY, timer.to_dict())
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        self.timer = timer
        return timer

    def save_settings(self, settings: Settings) -> Settings:
        try:
            self.app_state.set_json(APP_SETTINGS_KEY, settings.to_dict())
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        self.settings = settings
        return settings

    def record_completion(
        self, draft: SessionRecord, next_timer: TimerState
    ) -> SessionRecord:
        """Insert the finished session and persist the advanced timer atomically."""
        try:
            with self.db.conn:
                record = self.sessions.insert(draft, commit=False)
                self.app_state.set_json(
                    TIMER_STATE_KEY, next_timer.to_dict(), commit=False
                )
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        self.timer = next_timer
        return record

    def reset_all(self) -> None:
        """Drop every row and recreate default settings and timer."""
        settings = ensure_remote_token(normalize_settings(Settings()))
        timer = engine.default_state(settings)
        try:
            self.db.wipe()
            self.app_state.set_json(APP_SETTINGS_KEY, settings.to_dict(), commit=False)
            self.app_state.set_json(TIMER_STATE_KEY, timer.to_dict(), commit=False)
            self.db.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        self.settings = settings
        self.timer = timer


class ModelGuard:
    """Mutual exclusion over one AppModel, with a bounded wait."""

    def __init__(self, model: AppModel, timeout: float = 5.0):
        self._model = model
        self._lock = threading.Lock()
        self.timeout = timeout

    @contextmanager
    def hold(self) -> Iterator[AppModel]:
        if not self._lock.acquire(timeout=self.timeout):
            raise ModelUnavailableError("timer model is busy")
        try:
            yield self._model
        finally:
            self._lock.release()
