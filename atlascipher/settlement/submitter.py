"""Contract-call submission for settlement transactions.

The submitter is the only component that issues contract calls and the only
owner of ``TransactionRecord`` instances.  Callers receive ``RecordView``
snapshots; status changes flow back in through :meth:`TransactionSubmitter.observe`.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Callable, Optional

from ..codec import FieldCodec, ReversibleFieldCodec
from ..errors import InvalidInput, NotConnected, UnsupportedChain
from ..request import SettlementRequest
from .contract import CREATE_TRANSACTION, SETTLE_TRANSACTION, abi_entry, load_abi
from .exceptions import ConfirmationFailed, SubmissionFailed
from .types import (
    ReceiptStatus,
    RecordView,
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)

_LOG = logging.getLogger(__name__)

AMOUNT_CONTEXT = "amount"
FEE_CONTEXT = "fee"
SETTLEMENT_PROOF_CONTEXT = "settlement-proof"
PROOF_DATA_CONTEXT = "proof-data"

_RECEIPT_TO_RECORD = {
    ReceiptStatus.PENDING: TransactionStatus.PENDING,
    ReceiptStatus.CONFIRMED: TransactionStatus.CONFIRMED,
    ReceiptStatus.FAILED: TransactionStatus.FAILED,
}


class TransactionSubmitter:
    """Issues createTransaction / settleTransaction calls.

    Each submit issues exactly one external call and creates exactly one
    record.  Nothing is retried; call again to retry.
    """

    def __init__(
        self,
        caller,
        contract_address: str,
        codec: Optional[FieldCodec] = None,
        clock: Callable[[], float] = time.time,
        abi: Optional[list[dict[str, Any]]] = None,
    ):
        self._caller = caller
        self.contract_address = contract_address
        self.codec = codec if codec is not None else ReversibleFieldCodec()
        self._clock = clock
        abi = abi if abi is not None else load_abi()
        self._create_entry = abi_entry(CREATE_TRANSACTION, abi)
        self._settle_entry = abi_entry(SETTLE_TRANSACTION, abi)
        self._records: dict[int, TransactionRecord] = {}
        self._keys = itertools.count(1)

    @property
    def records(self) -> tuple[RecordView, ...]:
        return tuple(r.view() for r in self._records.values())

    def record(self, key: int) -> RecordView:
        return self._records[key].view()

    def clear(self) -> None:
        self._records.clear()

    def submit_create(self, request: SettlementRequest, wallet) -> RecordView:
        """Encode *request* and call createTransaction.

        Raises:
            NotConnected: If *wallet* is not a connected account.
            UnsupportedChain: If *wallet* is on a chain the pipeline does not serve.
            InvalidInput: If *request* fails validation.
        """
        self._require_wallet(wallet)
        request.validate()

        snapshot = request.copy()
        now_ms = self._now_ms()
        amount = self.codec.encode(snapshot.amount, AMOUNT_CONTEXT, now_ms)
        fee = self.codec.encode(snapshot.fee or "0", FEE_CONTEXT, now_ms)
        input_proof = self.codec.submission_proof(amount, now_ms)

        record = self._open(TransactionKind.CREATE, request=snapshot)
        args = [
            snapshot.recipient_address,
            amount.ciphertext,
            fee.ciphertext,
            snapshot.memo,
            input_proof,
        ]
        return self._issue(record, self._create_entry, args, wallet)

    def submit_settle(self, transaction_id: int, wallet) -> RecordView:
        """Call settleTransaction for an already created transaction."""
        self._require_wallet(wallet)
        if isinstance(transaction_id, bool) or not isinstance(transaction_id, int) or transaction_id < 0:
            raise InvalidInput(f"transaction id must be a non-negative integer, got {transaction_id!r}")

        now_ms = self._now_ms()
        settlement_proof = self.codec.encode(
            f"settlement-{transaction_id}-{now_ms}", SETTLEMENT_PROOF_CONTEXT, now_ms
        )
        proof_data = self.codec.encode(f"proof-{transaction_id}", PROOF_DATA_CONTEXT, now_ms)

        record = self._open(TransactionKind.SETTLE)
        record.id = transaction_id
        args = [transaction_id, settlement_proof.ciphertext, proof_data.ciphertext]
        return self._issue(record, self._settle_entry, args, wallet)

    def observe(
        self, key: int, status: ReceiptStatus, error: Optional[Exception] = None
    ) -> RecordView:
        """Apply a receipt status to the record *key*.

        Terminal records are left untouched.
        """
        record = self._records[key]
        if record.advance(_RECEIPT_TO_RECORD[status]):
            if record.status is TransactionStatus.FAILED:
                record.error = error or ConfirmationFailed(
                    f"transaction {record.submission_handle} failed on-chain"
                )
                _LOG.warning(
                    "%s tx=%s failed: %s", record.kind.value, record.submission_handle, record.error
                )
            elif record.status is TransactionStatus.CONFIRMED:
                _LOG.info("%s tx=%s confirmed", record.kind.value, record.submission_handle)
        return record.view()

    # -- internal helpers --

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _require_wallet(wallet) -> None:
        if wallet is None or not getattr(wallet, "connected", False):
            raise NotConnected("Please connect your wallet first.")
        chain = wallet.chain
        if not chain.supported:
            raise UnsupportedChain(f"{chain.name} (id {chain.id}) is not supported")

    def _open(self, kind: TransactionKind, request: Optional[SettlementRequest] = None) -> TransactionRecord:
        record = TransactionRecord(kind=kind, request=request, key=next(self._keys))
        self._records[record.key] = record
        return record

    def _issue(self, record: TransactionRecord, entry: dict, args: list, wallet) -> RecordView:
        record.advance(TransactionStatus.SUBMITTING)
        _LOG.info("submitting %s record=%s from=%s", entry["name"], record.key, wallet.address)
        try:
            handle = self._caller.call(
                self.contract_address, entry, args, value=0, sender=wallet
            )
        except Exception as e:
            record.error = SubmissionFailed(e)
            record.advance(TransactionStatus.FAILED)
            _LOG.warning("%s record=%s failed: %s", entry["name"], record.key, e)
            return record.view()

        record.submission_handle = handle.tx_hash
        if record.kind is TransactionKind.CREATE and handle.return_value is not None:
            record.id = int(handle.return_value)
        record.advance(TransactionStatus.PENDING)
        _LOG.info("%s record=%s tx=%s pending", entry["name"], record.key, handle.tx_hash)
        return record.view()
