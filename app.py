#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import os

from remote.server import RemoteControl, RemoteHandler
from services.app_model import AppModel, ModelGuard
from services.catalog_service import CatalogService
from services.events import EventBus
from services.notifier import Notifier
from services.settings_service import SettingsService
from services.stats_service import StatsService
from services.ticker import Ticker
from services.timer_service import TimerService
from storage.db import Database
from ui.main_window import MainWindow

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def main():
    logging.basicConfig(
        level=os.environ.get("POMODORO_LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
    )

    db = Database(db_path=os.environ.get("POMODORO_DB", "pomodoro.db"))
    db.init_schema()

    guard = ModelGuard(AppModel.load(db))
    bus = EventBus()

    timer_service = TimerService(guard, bus, notifier=Notifier())
    stats_service = StatsService(guard)
    catalog_service = CatalogService(guard)

    remote = RemoteControl(
        RemoteHandler(timer_service),
        host=os.environ.get("POMODORO_REMOTE_HOST", "0.0.0.0"),
    )
    settings_service = SettingsService(guard, bus, remote=remote)

    Ticker(timer_service).start()
    settings_service.apply_remote()

    app = MainWindow(timer_service, settings_service, catalog_service, stats_service, bus)
    try:
        app.run()
    finally:
        remote.stop()
        db.close()


if __name__ == "__main__":
    main()
