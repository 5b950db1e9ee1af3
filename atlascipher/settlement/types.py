from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional

from ..request import SettlementRequest
from .exceptions import InvalidRecordTransition


class TransactionKind(str, enum.Enum):
    CREATE = "create"
    SETTLE = "settle"


class TransactionStatus(str, enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (TransactionStatus.CONFIRMED, TransactionStatus.FAILED)

    @property
    def in_flight(self) -> bool:
        return self in (TransactionStatus.SUBMITTING, TransactionStatus.PENDING)


class ReceiptStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not ReceiptStatus.PENDING


_ALLOWED = {
    TransactionStatus.IDLE: {TransactionStatus.SUBMITTING},
    TransactionStatus.SUBMITTING: {TransactionStatus.PENDING, TransactionStatus.FAILED},
    TransactionStatus.PENDING: {
        TransactionStatus.PENDING,
        TransactionStatus.CONFIRMED,
        TransactionStatus.FAILED,
    },
}


@dataclass(frozen=True)
class SubmissionHandle:
    tx_hash: str
    return_value: Any = None


@dataclass(frozen=True)
class RecordView:
    key: int
    kind: TransactionKind
    status: TransactionStatus
    id: Optional[int]
    submission_handle: Optional[str]
    error: Optional[Exception]
    request: Optional[SettlementRequest]


@dataclass
class TransactionRecord:
    kind: TransactionKind
    request: Optional[SettlementRequest] = None
    id: Optional[int] = None
    status: TransactionStatus = TransactionStatus.IDLE
    submission_handle: Optional[str] = None
    error: Optional[Exception] = None
    key: int = 0

    def advance(self, status: TransactionStatus) -> bool:
        """Move to *status*.  Returns False when nothing changed.

        Terminal records never change.  Any other backwards or skipping move
        raises InvalidRecordTransition.
        """
        if self.status.terminal or status == self.status:
            return False
        if status not in _ALLOWED[self.status]:
            raise InvalidRecordTransition(
                f"record {self.key}: {self.status.value} -> {status.value} not allowed"
            )
        self.status = status
        return True

    def view(self) -> RecordView:
        return RecordView(
            key=self.key,
            kind=self.kind,
            status=self.status,
            id=self.id,
            submission_handle=self.submission_handle,
            error=self.error,
            request=self.request.copy() if self.request is not None else None,
        )
