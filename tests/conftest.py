"""In-memory stand-ins for the contract-call and receipt boundaries."""

from __future__ import annotations

import pytest

from atlascipher.notify import DEFAULT
from atlascipher.request import SettlementRequest
from atlascipher.settlement import (
    ReceiptStatus,
    SettlementWorkflow,
    SubmissionHandle,
    TransactionSubmitter,
)
from atlascipher.wallet import LocalWalletProvider

CONTRACT = "0x742d35Cc6BF44a52e4F6E0E6fA2A5A5A5A5A5A5A"
FIXED_NOW = 1_700_000_000.0


class FakeContractCaller:
    """Records every call; returns sequential handles and transaction ids."""

    def __init__(self):
        self.calls: list[dict] = []
        self.fail_with: Exception | None = None
        self.on_call = None
        self._next_id = 1

    def call(self, address, abi_entry, args, value=0, *, sender):
        self.calls.append(
            {"address": address, "name": abi_entry["name"], "args": list(args), "value": value, "sender": sender}
        )
        if self.on_call is not None:
            self.on_call()
        if self.fail_with is not None:
            raise self.fail_with
        n = len(self.calls)
        tx_id = self._next_id
        self._next_id += 1
        return SubmissionHandle(tx_hash=f"0x{n:064x}", return_value=tx_id)


class FakeReceipts:
    """Plays back a scripted status sequence per handle.

    Script items are ReceiptStatus values or exceptions to raise.
    """

    def __init__(self, default=(ReceiptStatus.PENDING, ReceiptStatus.CONFIRMED)):
        self.default = list(default)
        self.scripts: dict[str, list] = {}
        self.watched: list[str] = []
        self.reads = 0

    def script_next(self, *items) -> None:
        """Use *items* for every handle without an explicit script."""
        self.default = list(items)

    def watch(self, handle):
        self.watched.append(handle)
        for item in self.scripts.get(handle, self.default):
            self.reads += 1
            if isinstance(item, Exception):
                raise item
            yield item


class RecordingNotifier:
    def __init__(self):
        self.messages: list[tuple[str, str, str]] = []

    def notify(self, title, description, variant=DEFAULT):
        self.messages.append((title, description, variant))

    @property
    def titles(self) -> list[str]:
        return [m[0] for m in self.messages]


@pytest.fixture
def wallet_provider():
    return LocalWalletProvider.generate()


@pytest.fixture
def caller():
    return FakeContractCaller()


@pytest.fixture
def receipts():
    return FakeReceipts()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def submitter(caller):
    return TransactionSubmitter(caller, CONTRACT, clock=lambda: FIXED_NOW)


@pytest.fixture
def workflow(wallet_provider, submitter, receipts, notifier):
    return SettlementWorkflow(wallet_provider, submitter, receipts, notifier=notifier)


@pytest.fixture
def request_500():
    return SettlementRequest(
        recipient_name="Ana",
        recipient_address="0xRCPT",
        amount="500",
        fee="5",
        currency="USDT",
    )
