"""Settlement workflow: the step machine a UI renders.

Transition table:
    CONNECT_WALLET -> ENTER_DETAILS   (wallet_connected)
    ENTER_DETAILS  -> CONFIRM         (proceed, details must pass the gate)
    ENTER_DETAILS  -> CONNECT_WALLET  (back)
    CONFIRM        -> ENTER_DETAILS   (back)
    any but COMPLETE -> COMPLETE      (create_confirmed, create record CONFIRMED)
    COMPLETE       -> CONNECT_WALLET  (new_settlement)

Confirming and settling submit transactions without changing step.  While a
record is SUBMITTING or PENDING no further submission is accepted.  Going
back does not cancel an in-flight create; if it later confirms, the workflow
moves to COMPLETE from whichever step it is on.
"""

from __future__ import annotations

import enum
import logging
from typing import Iterator, Optional

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from ..errors import InvalidInput, NotConnected, UnsupportedChain
from ..notify import DESTRUCTIVE, LoggingNotifier, send
from ..request import SettlementRequest
from .exceptions import SettlementMisconfiguration, SubmissionInFlight, WorkflowStepError
from .submitter import TransactionSubmitter
from .tracker import ConfirmationTracker
from .types import RecordView, TransactionKind, TransactionStatus

_LOG = logging.getLogger(__name__)


class Step(enum.IntEnum):
    CONNECT_WALLET = 1
    ENTER_DETAILS = 2
    CONFIRM = 3
    COMPLETE = 4


class SettlementSteps(StateMachine):
    """Legal step transitions.  Guards beyond the table live in SettlementWorkflow."""

    connect_wallet = State("Connect Wallet", value=Step.CONNECT_WALLET, initial=True)
    enter_details = State("Enter Details", value=Step.ENTER_DETAILS)
    confirm = State("Confirm", value=Step.CONFIRM)
    complete = State("Complete", value=Step.COMPLETE)

    wallet_connected = connect_wallet.to(enter_details)
    proceed = enter_details.to(confirm)
    back = confirm.to(enter_details) | enter_details.to(connect_wallet)
    create_confirmed = (
        confirm.to(complete, cond="create_is_confirmed")
        | enter_details.to(complete, cond="create_is_confirmed")
        | connect_wallet.to(complete, cond="create_is_confirmed")
    )
    new_settlement = complete.to(connect_wallet)

    def __init__(self, workflow: "SettlementWorkflow"):
        self._workflow = workflow
        super().__init__()

    def create_is_confirmed(self) -> bool:
        record = self._workflow.create_record
        return record is not None and record.status is TransactionStatus.CONFIRMED


class SettlementWorkflow:
    """One settlement session: wallet, request, submissions and step."""

    def __init__(
        self,
        wallet_provider,
        submitter: TransactionSubmitter,
        receipts,
        notifier=None,
        request: Optional[SettlementRequest] = None,
    ):
        self._wallet = wallet_provider
        self._submitter = submitter
        self._receipts = receipts
        self._notifier = notifier if notifier is not None else LoggingNotifier()
        self.request = request if request is not None else SettlementRequest()
        self.last_error: Optional[Exception] = None
        self._handle = None
        self._create_key: Optional[int] = None
        self._settle_key: Optional[int] = None
        self._trackers: dict[int, tuple[ConfirmationTracker, Iterator]] = {}
        self._steps = SettlementSteps(self)

    # -- read-only state ----------------------------------------------------

    @property
    def step(self) -> Step:
        return Step(self._steps.current_state.value)

    @property
    def records(self) -> tuple[RecordView, ...]:
        return self._submitter.records

    @property
    def create_record(self) -> Optional[RecordView]:
        return self._submitter.record(self._create_key) if self._create_key is not None else None

    @property
    def settle_record(self) -> Optional[RecordView]:
        return self._submitter.record(self._settle_key) if self._settle_key is not None else None

    @property
    def in_flight(self) -> bool:
        return any(r.status.in_flight for r in self._submitter.records)

    @property
    def can_confirm(self) -> bool:
        return self.step is Step.CONFIRM and not self.in_flight

    @property
    def tracker(self) -> Optional[ConfirmationTracker]:
        """Tracker of the in-flight record, if any."""
        for tracker, _ in self._trackers.values():
            return tracker
        return None

    # -- wallet -------------------------------------------------------------

    def connect(self):
        """Connect the wallet and leave CONNECT_WALLET if it is usable."""
        self._handle = self._wallet.connect()
        handle = self._require_wallet()
        if self.step is Step.CONNECT_WALLET:
            self._fire("wallet_connected")
        return handle

    def disconnect(self) -> None:
        self._wallet.disconnect()
        self._handle = None
        self._notify("Wallet Disconnected", "Your wallet has been safely disconnected.", DESTRUCTIVE)

    # -- navigation ---------------------------------------------------------

    def proceed(self) -> Step:
        """Move from ENTER_DETAILS to CONFIRM once the details pass the gate."""
        self._expect(Step.ENTER_DETAILS, "continue")
        self._require_wallet()
        if not self.request.can_advance_from_details():
            error = InvalidInput("recipient address and a positive amount are required")
            self._notify("Missing Information", "Please fill in all required fields.", DESTRUCTIVE)
            raise error
        self._fire("proceed")
        return self.step

    def back(self) -> Step:
        self._fire("back")
        return self.step

    def new_settlement(self) -> Step:
        """Start over: clears every record and the request."""
        self._fire("new_settlement")
        if self._trackers:
            _LOG.warning("discarding %d unresolved submission(s)", len(self._trackers))
        self._trackers.clear()
        self._submitter.clear()
        self._create_key = None
        self._settle_key = None
        self.last_error = None
        self.request = SettlementRequest()
        return self.step

    # -- submissions --------------------------------------------------------

    def confirm(self) -> RecordView:
        """Submit the create call for the current request.

        Raises:
            SubmissionInFlight: If an earlier submission has not resolved.
            NotConnected, UnsupportedChain: If the wallet is not usable.
        """
        self._expect(Step.CONFIRM, "confirm")
        self._require_idle()
        wallet = self._require_wallet()
        view = self._submitter.submit_create(self.request, wallet)
        self._create_key = view.key
        if view.status is TransactionStatus.FAILED:
            self.last_error = view.error
            self._notify(
                "Transaction Failed",
                "Failed to create encrypted transaction. Please try again.",
                DESTRUCTIVE,
            )
        else:
            self.last_error = None
            self._track(view)
            self._notify(
                "Transaction Created",
                "Your encrypted transaction has been submitted to the blockchain.",
            )
        return view

    def settle(self) -> RecordView:
        """Submit the settle call for the confirmed create transaction."""
        self._expect(Step.COMPLETE, "settle")
        self._require_idle()
        created = self.create_record
        if created is None or created.id is None:
            raise SettlementMisconfiguration("no transaction id was returned by the create call")
        settled = self.settle_record
        if settled is not None and settled.status is TransactionStatus.CONFIRMED:
            raise WorkflowStepError(f"transaction {created.id} is already settled")
        wallet = self._require_wallet()
        view = self._submitter.submit_settle(created.id, wallet)
        self._settle_key = view.key
        if view.status is TransactionStatus.FAILED:
            self.last_error = view.error
            self._notify("Settlement Failed", "Failed to settle transaction. Please try again.", DESTRUCTIVE)
        else:
            self.last_error = None
            self._track(view)
        return view

    # -- confirmation -------------------------------------------------------

    def poll(self) -> tuple[RecordView, ...]:
        """Advance every in-flight record by one receipt snapshot.

        Each record costs one read of the receipt service per call.
        """
        updated = []
        for key, (tracker, stream) in list(self._trackers.items()):
            status = next(stream, None)
            if status is None:
                del self._trackers[key]
                continue
            view = self._submitter.observe(key, status, tracker.error)
            if view.status.terminal:
                del self._trackers[key]
                self._route(view)
            updated.append(view)
        return tuple(updated)

    def wait(self) -> Step:
        """Poll until nothing is in flight.  Returns the resulting step."""
        while self._trackers:
            self.poll()
        return self.step

    # -- internal helpers --

    def _track(self, view: RecordView) -> None:
        tracker = ConfirmationTracker(self._receipts, view.submission_handle)
        self._trackers[view.key] = (tracker, tracker.snapshots())

    def _route(self, view: RecordView) -> None:
        confirmed = view.status is TransactionStatus.CONFIRMED
        if view.kind is TransactionKind.CREATE:
            if view.key != self._create_key:
                return
            if confirmed:
                if self.step is not Step.COMPLETE:
                    self._fire("create_confirmed")
                request = view.request
                self._notify(
                    "Payment Confirmed",
                    f"Your confidential payment of {request.amount} {request.currency.value} "
                    f"to {request.recipient_address} has been recorded.",
                )
            else:
                self.last_error = view.error
                self._notify("Transaction Failed", f"{view.error}. Please try again.", DESTRUCTIVE)
        elif confirmed:
            self._notify("Transaction Settled", "Your encrypted transaction has been settled on-chain.")
        else:
            self.last_error = view.error
            self._notify("Settlement Failed", f"{view.error}. Please try again.", DESTRUCTIVE)

    def _require_wallet(self):
        if self._handle is None or not self._handle.connected or self._wallet.current_account() is None:
            self._notify("Wallet Not Connected", "Please connect your wallet first.", DESTRUCTIVE)
            raise NotConnected("Please connect your wallet first.")
        chain = self._wallet.current_chain()
        if not chain.supported:
            self._notify("Wrong Network", f"Switch to a supported network (on {chain.name}).", DESTRUCTIVE)
            raise UnsupportedChain(f"{chain.name} (id {chain.id}) is not supported")
        return self._handle

    def _require_idle(self) -> None:
        if self.in_flight:
            raise SubmissionInFlight("a previous submission has not resolved yet")

    def _expect(self, step: Step, action: str) -> None:
        if self.step is not step:
            raise WorkflowStepError(f"cannot {action} at step {self.step.name}")

    def _fire(self, event: str) -> None:
        try:
            self._steps.send(event)
        except TransitionNotAllowed as e:
            raise WorkflowStepError(f"cannot {event} at step {self.step.name}") from e
        _LOG.info("settlement step -> %s", self.step.name)

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        send(self._notifier, title, description, variant)
