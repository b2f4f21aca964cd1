# -*- coding: utf-8 -*-

import logging
import shutil
import subprocess

logger = logging.getLogger(__name__)


class Notifier:
    """Desktop notifications through notify-send. Fire and forget."""

    def __init__(self, command: str = "notify-send", app_name: str = "Pomodoro"):
        self.command = command
        self.app_name = app_name

    def notify(self, title: str, body: str) -> None:
        exe = shutil.which(self.command)
        if not exe:
            logger.debug("%s not found; skipping notification", self.command)
            return
        try:
            subprocess.Popen(
                [exe, "--app-name", self.app_name, title, body],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug("notification failed: %s", e)
