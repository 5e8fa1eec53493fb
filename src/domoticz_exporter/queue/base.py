from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class MailboxError(RuntimeError):
    """Base class for hand-off failures."""


class MailboxTimeout(MailboxError):
    """The worker did not take the item before the deadline."""


class MailboxClosed(MailboxError):
    """The mailbox was closed before the item was taken."""


@dataclass
class Envelope(Generic[T]):
    item: T
    taken: bool = False
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    def done(self) -> None:
        self._done.set()

    def wait_done(self) -> None:
        self._done.wait()
