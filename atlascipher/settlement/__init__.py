"""Settlement pipeline: submission, confirmation tracking and the step workflow.

The web3 chain client lives in ``atlascipher.settlement.evm`` and needs the
``evm`` extra:  pip install -e ".[evm]"
"""

from .contract import CREATE_TRANSACTION, SETTLE_TRANSACTION, abi_entry, load_abi
from .exceptions import (
    CallError,
    CallRejected,
    ConfirmationFailed,
    InvalidRecordTransition,
    SettlementError,
    SettlementMisconfiguration,
    SettlementTimeout,
    SubmissionFailed,
    SubmissionInFlight,
    WorkflowStepError,
)
from .submitter import TransactionSubmitter
from .tracker import ConfirmationTracker
from .types import (
    ReceiptStatus,
    RecordView,
    SubmissionHandle,
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)
from .workflow import SettlementSteps, SettlementWorkflow, Step

__all__ = [
    "CREATE_TRANSACTION",
    "SETTLE_TRANSACTION",
    "CallError",
    "CallRejected",
    "ConfirmationFailed",
    "ConfirmationTracker",
    "InvalidRecordTransition",
    "ReceiptStatus",
    "RecordView",
    "SettlementError",
    "SettlementMisconfiguration",
    "SettlementSteps",
    "SettlementTimeout",
    "SettlementWorkflow",
    "Step",
    "SubmissionFailed",
    "SubmissionHandle",
    "SubmissionInFlight",
    "TransactionKind",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionSubmitter",
    "WorkflowStepError",
    "abi_entry",
    "load_abi",
]
