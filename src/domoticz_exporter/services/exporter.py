from __future__ import annotations

import time
from typing import Callable, Optional

import structlog
from prometheus_client import CollectorRegistry, Counter, PlatformCollector, ProcessCollector

from ..config.settings import Settings
from ..models.samples import Report, Sample
from ..observability.collector import DomoticzCollector
from ..queue.mailbox import HandoffMailbox
from ..store.liveness import LivenessMarker
from ..store.samples import SampleStore
from ..workers.updater import UpdateWorker
from .naming import describe

logger = structlog.get_logger(__name__)


class ExporterContext:
    """Process-wide state shared by the push and scrape handlers.

    Build one per process and hand it to the HTTP layer; nothing here is a
    module global.
    """

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time) -> None:
        self.settings = settings
        self.clock = clock
        self.store = SampleStore()
        self.liveness = LivenessMarker()
        self.mailbox: HandoffMailbox[Sample] = HandoffMailbox()
        self.worker = UpdateWorker(self.store, self.mailbox, settings.sweep_interval_seconds, clock=clock)

        self.registry = CollectorRegistry()
        self.collector = DomoticzCollector(self.store, self.liveness, clock=clock)
        self.registry.register(self.collector)
        self.pushes_metric = Counter(
            "domoticz_exporter_pushes",
            "Pushes received from domoticz by outcome",
            ["status"],
            registry=self.registry,
        )
        if settings.export_process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)

    def start(self) -> None:
        self.worker.start()

    def stop(self) -> None:
        self.worker.stop()

    def build_sample(self, report: Report, now: float) -> Sample:
        name, help_text, kind = describe(report)
        return Sample(
            id=report.id,
            name=name,
            help=help_text,
            value=report.value,
            kind=kind,
            expiry=now + self.settings.sample_lifetime_seconds,
        )

    def ingest(self, report: Report, timeout: Optional[float] = None) -> Sample:
        """Record a decoded push and block until the worker has applied it.

        Raises ``MailboxTimeout`` or ``MailboxClosed`` when the hand-off fails.
        """
        now = self.clock()
        self.liveness.mark(now)
        sample = self.build_sample(report, now)
        self.mailbox.send(sample, timeout=timeout if timeout is not None else self.settings.push_timeout_seconds)
        logger.debug("push.applied", sensor_id=sample.id, metric=sample.name, value=sample.value)
        return sample
