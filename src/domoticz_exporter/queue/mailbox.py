from __future__ import annotations

import threading
import time
from typing import Generic, Optional

from .base import Envelope, MailboxClosed, MailboxTimeout, T


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


class HandoffMailbox(Generic[T]):
    """Zero-capacity channel between many senders and a single receiver.

    ``send`` returns only after the receiver has taken the item and marked
    its envelope done, so the sender observes the item as applied.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._slot: Optional[Envelope[T]] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, item: T, timeout: Optional[float] = None) -> None:
        envelope: Envelope[T] = Envelope(item)
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._condition:
            if not self._condition.wait_for(lambda: self._closed or self._slot is None, _remaining(deadline)):
                raise MailboxTimeout("mailbox busy")
            if self._closed:
                raise MailboxClosed("mailbox closed")
            self._slot = envelope
            self._condition.notify_all()
            self._condition.wait_for(lambda: envelope.taken or self._closed, _remaining(deadline))
            if not envelope.taken:
                # Retract so the receiver can never apply it after we give up.
                self._slot = None
                self._condition.notify_all()
                if self._closed:
                    raise MailboxClosed("mailbox closed")
                raise MailboxTimeout("receiver did not take the item in time")
        envelope.wait_done()

    def receive(self, timeout: Optional[float] = None) -> Optional[Envelope[T]]:
        with self._condition:
            if not self._condition.wait_for(lambda: self._closed or self._slot is not None, timeout):
                return None
            if self._closed:
                return None
            envelope = self._slot
            assert envelope is not None
            self._slot = None
            envelope.taken = True
            self._condition.notify_all()
            return envelope

    def close(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    def reopen(self) -> None:
        with self._condition:
            self._closed = False
