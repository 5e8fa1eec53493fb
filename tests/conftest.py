from __future__ import annotations

import threading

import pytest

from domoticz_exporter.config.settings import Settings
from domoticz_exporter.models.samples import Report


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        staleness_window_seconds=300,
        sweep_interval_seconds=60,
        export_process_metrics=False,
    )


@pytest.fixture
def energy_report() -> Report:
    return Report.model_validate(
        {"id": 5, "type": "counter", "sType": "energy", "name": "kWh", "value": 12.3, "unit": "kWh"}
    )
