"""Prometheus collector exposing the live samples."""
from __future__ import annotations

import time
from typing import Callable, Iterator

import structlog
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from ..models.samples import Sample, ValueKind
from ..store.liveness import LivenessMarker
from ..store.samples import SampleStore

logger = structlog.get_logger(__name__)

LAST_PUSH_METRIC = "domoticz_last_push_timestamp_seconds"
LAST_PUSH_HELP = "Unix timestamp of the last received domoticz metrics push in seconds."


class DomoticzCollector(Collector):
    def __init__(
        self,
        store: SampleStore,
        liveness: LivenessMarker,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._liveness = liveness
        self._clock = clock

    def describe(self) -> Iterator[Metric]:
        yield GaugeMetricFamily(LAST_PUSH_METRIC, LAST_PUSH_HELP)

    def collect(self) -> Iterator[Metric]:
        yield GaugeMetricFamily(LAST_PUSH_METRIC, LAST_PUSH_HELP, value=self._liveness.value)

        samples = self._store.snapshot_all()
        now = self._clock()
        for sample in samples:
            # The sweep may not have caught up yet.
            if sample.is_expired(now):
                continue
            try:
                family = _to_family(sample)
            except ValueError:
                logger.warning("collector.invalid_sample", sensor_id=sample.id, name=sample.name)
                continue
            yield family


def _to_family(sample: Sample) -> Metric:
    label_names = sorted(sample.labels)
    family_cls = CounterMetricFamily if sample.kind is ValueKind.COUNTER else GaugeMetricFamily
    family = family_cls(sample.name, sample.help, labels=label_names)
    family.add_metric([sample.labels[key] for key in label_names], sample.value)
    return family
