# -*- coding: utf-8 -*-

import queue
from typing import List

import pytest

from services.app_model import AppModel, ModelGuard
from services.catalog_service import CatalogService
from services.events import Event, EventBus
from services.settings_service import SettingsService
from services.stats_service import StatsService
from services.timer_service import TimerService
from storage.db import Database

T0 = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))


class FakeRemote:
    def __init__(self):
        self.applied = []

    def apply(self, settings) -> None:
        self.applied.append(settings)


def drain(q: "queue.Queue[Event]") -> List[Event]:
    out = []
    while True:
        try:
            out.append(q.get_nowait())
        except queue.Empty:
            return out


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    database = Database(":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def model(db):
    return AppModel.load(db)


@pytest.fixture
def guard(model):
    return ModelGuard(model, timeout=0.2)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    return bus.subscribe()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def timer_service(guard, bus, notifier, clock):
    return TimerService(guard, bus, notifier=notifier, clock=clock)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def settings_service(guard, bus, remote):
    return SettingsService(guard, bus, remote=remote)


@pytest.fixture
def catalog_service(guard):
    return CatalogService(guard)


@pytest.fixture
def stats_service(guard):
    return StatsService(guard)
