from __future__ import annotations

import threading


class LivenessMarker:
    """Unix timestamp of the last accepted push; never moves backwards."""

    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    def mark(self, timestamp: float) -> None:
        with self._lock:
            if timestamp > self._value:
                self._value = timestamp

    @property
    def value(self) -> float:
        with self._lock:
            return self._value
