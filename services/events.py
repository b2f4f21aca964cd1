# -*- coding: utf-8 -*-

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, List

logger = logging.getLogger(__name__)

TIMER_STATE = "timer://state"
SESSION_COMPLETED = "session://completed"
PHASE_COMPLETED = "timer://phase-completed"
SETTINGS_CHANGED = "settings://changed"


@dataclass(frozen=True)
class Event:
    topic: str
    payload: Any


class EventBus:
    """
    Outward notification channel.
    Publishers never call into observers; each subscriber drains its own queue.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List["queue.Queue[Event]"] = []

    def subscribe(self, maxsize: int = 256) -> "queue.Queue[Event]":
        q: "queue.Queue[Event]" = queue.Queue(maxsize=maxsize)
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: "queue.Queue[Event]") -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def publish(self, topic: str, payload: Any) -> None:
        event = Event(topic=topic, payload=payload)
        with self._lock:
            subscribers = list(self._subscribers)
        for q in subscribers:
            try:
                q.put_nowait(event)
            except queue.Full:
                logger.debug("dropping %s for a slow subscriber", topic)
