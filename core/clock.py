# -*- coding: utf-8 -*-

import time
from typing import Callable

Clock = Callable[[], int]


def now_ts() -> int:
    """Current epoch seconds."""
    return int(time.time())
