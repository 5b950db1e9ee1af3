from ..errors import AtlasCipherError, CallError, CallRejected


class SettlementError(AtlasCipherError):
    pass


class SubmissionFailed(SettlementError):
    """A contract call could not be submitted.  ``cause`` holds the call-layer error."""

    def __init__(self, cause: Exception):
        super().__init__(f"submission failed: {cause}")
        self.cause = cause


class ConfirmationFailed(SettlementError):
    """A submitted transaction resolved to failure or could not be observed."""


class SubmissionInFlight(SettlementError):
    """A previous submission has not resolved yet."""


class InvalidRecordTransition(SettlementError):
    pass


class WorkflowStepError(SettlementError):
    """The action is not available at the current workflow step."""


class SettlementMisconfiguration(SettlementError):
    pass


class SettlementTimeout(SettlementError):
    """Raised when transaction confirmation times out.

    This doesn't necessarily mean the transaction failed - it may still
    be pending or already confirmed on the blockchain.
    """


__all__ = [
    "CallError",
    "CallRejected",
    "ConfirmationFailed",
    "InvalidRecordTransition",
    "SettlementError",
    "SettlementMisconfiguration",
    "SettlementTimeout",
    "SubmissionFailed",
    "SubmissionInFlight",
    "WorkflowStepError",
]
