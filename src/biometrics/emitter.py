"""Metric delivery to renderers and relays.

Estimators publish ``(topic, payload)`` pairs to an :class:`Emitter`.
Listeners are plain callables; :class:`MetricQueue` is a listener that
buffers payloads for a consumer that drains them at its own pace.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[str, dict], None]

HEART_RATE = "heart_rate"
ATTENTION = "attention"
GAZE = "gaze"


class Emitter:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, topic: str, payload: dict) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(topic, payload)
            except Exception:
                # One broken consumer must not starve the others
                logger.exception("metric listener failed for topic %s", topic)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)


class MetricQueue:
    """Bounded listener; when full the oldest payload is dropped."""

    def __init__(self, maxsize: int = 256, topics: Optional[set[str]] = None) -> None:
        self._items: Deque[tuple[str, dict]] = deque(maxlen=maxsize)
        self._topics = topics
        self._lock = threading.Lock()

    def __call__(self, topic: str, payload: dict) -> None:
        if self._topics is not None and topic not in self._topics:
            return
        with self._lock:
            self._items.append((topic, payload))

    def get_nowait(self) -> Optional[tuple[str, dict]]:
        with self._lock:
            return self._items.popleft() if self._items else None

    def drain(self) -> list[tuple[str, dict]]:
        with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
