from __future__ import annotations

import threading
from typing import Dict, List

from ..models.samples import Sample


class SampleStore:
    """In-memory sample store keyed by sensor id.

    Reads never filter on expiry; the worker sweep and the collector do that.
    """

    def __init__(self) -> None:
        self._samples: Dict[int, Sample] = {}
        self._lock = threading.Lock()

    def upsert(self, sample: Sample) -> None:
        with self._lock:
            self._samples[sample.id] = sample

    def snapshot_all(self) -> List[Sample]:
        with self._lock:
            return list(self._samples.values())

    def sweep_expired(self, now: float) -> int:
        with self._lock:
            expired = [sensor_id for sensor_id, sample in self._samples.items() if sample.is_expired(now)]
            for sensor_id in expired:
                del self._samples[sensor_id]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
