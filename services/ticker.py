# -*- coding: utf-8 -*-

import logging
import threading
import time

from services.errors import ServiceError
from services.timer_service import TimerService

logger = logging.getLogger(__name__)


class Ticker:
    """
    Background thread that drives TimerService.tick() once per second
    for the lifetime of the process.
    """

    def __init__(self, timer_service: TimerService, interval: float = 1.0):
        self.timer_service = timer_service
        self.interval = interval
        self._thread = threading.Thread(target=self._run, name="timer-ticker", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while True:
            time.sleep(self.interval)
            try:
                self.timer_service.tick()
            except ServiceError as e:
                # retried on the next wake
                logger.warning("tick skipped: %s", e)
            except Exception:
                logger.exception("unexpected error in timer tick")
