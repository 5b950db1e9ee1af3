"""Receipt observation for a submitted transaction."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .exceptions import ConfirmationFailed
from .types import ReceiptStatus

_LOG = logging.getLogger(__name__)


class ConfirmationTracker:
    """Lazy, restartable view of one submission handle's receipt lifecycle.

    Each iteration opens a fresh ``receipts.watch(handle)`` stream and yields
    PENDING (once, however many polls it takes) followed by exactly one of
    CONFIRMED or FAILED.  Errors raised by the receipt service become FAILED;
    the original error is kept on :attr:`error`.
    """

    def __init__(self, receipts, handle: str):
        self._receipts = receipts
        self.handle = handle
        self.status: Optional[ReceiptStatus] = None
        self.error: Optional[ConfirmationFailed] = None

    @property
    def is_confirming(self) -> bool:
        return self.status is None or self.status is ReceiptStatus.PENDING

    @property
    def is_confirmed(self) -> bool:
        return self.status is ReceiptStatus.CONFIRMED

    @property
    def is_failed(self) -> bool:
        return self.status is ReceiptStatus.FAILED

    def __iter__(self) -> Iterator[ReceiptStatus]:
        last = None
        for status in self.snapshots():
            if status is not last:
                last = status
                yield status

    def snapshots(self) -> Iterator[ReceiptStatus]:
        """Like iterating the tracker, but one item per receipt poll.

        Repeated PENDING snapshots are passed through, so each ``next()``
        costs exactly one read of the receipt service.
        """
        self.status = None
        self.error = None
        try:
            for status in self._receipts.watch(self.handle):
                status = ReceiptStatus(status)
                self.status = status
                if status is ReceiptStatus.FAILED:
                    self.error = ConfirmationFailed(f"transaction {self.handle} reverted")
                yield status
                if status.terminal:
                    return
        except Exception as e:
            _LOG.warning("receipt watch for tx=%s failed: %s", self.handle, e)
            self.error = ConfirmationFailed(f"could not confirm {self.handle}: {e}")
            self.error.__cause__ = e
        else:
            self.error = ConfirmationFailed(
                f"receipt stream for {self.handle} ended without a final status"
            )
        self.status = ReceiptStatus.FAILED
        yield ReceiptStatus.FAILED

    def wait(self) -> ReceiptStatus:
        """Consume the stream until it reaches a terminal status."""
        for _ in self:
            pass
        return self.status
