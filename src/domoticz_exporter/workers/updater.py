from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import structlog

from ..models.samples import Sample
from ..queue.mailbox import HandoffMailbox
from ..store.samples import SampleStore

logger = structlog.get_logger(__name__)


class UpdateWorker:
    """Single thread that owns every mutation of the sample store.

    It applies samples handed over through the mailbox and, once per sweep
    interval, drops the samples whose expiry has passed. Both kinds of event
    are processed one at a time on the same thread.
    """

    def __init__(
        self,
        store: SampleStore,
        mailbox: HandoffMailbox[Sample],
        sweep_interval: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._mailbox = mailbox
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._thread: Optional[threading.Thread] = None
        self._shutdown = threading.Event()

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.alive:
            return
        self._mailbox.reopen()
        self._shutdown.clear()
        self._thread = threading.Thread(target=self._run_loop, name="domoticz-update-worker", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._shutdown.set()
        self._mailbox.close()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("worker.stopped")

    def _run_loop(self) -> None:
        logger.info("worker.started", sweep_interval=self._sweep_interval)
        next_sweep = time.monotonic() + self._sweep_interval
        while not self._shutdown.is_set():
            remaining = next_sweep - time.monotonic()
            if remaining <= 0:
                self.sweep()
                next_sweep = time.monotonic() + self._sweep_interval
                continue
            envelope = self._mailbox.receive(timeout=remaining)
            if envelope is None:
                if self._mailbox.closed:
                    break
                continue
            try:
                self._store.upsert(envelope.item)
            except Exception:
                logger.exception("worker.upsert_failed", sensor_id=envelope.item.id)
            finally:
                envelope.done()

    def sweep(self) -> int:
        try:
            removed = self._store.sweep_expired(self._clock())
        except Exception:
            logger.exception("worker.sweep_failed")
            return 0
        if removed:
            logger.info("worker.sweep", removed=removed, remaining=len(self._store))
        return removed
