"""Machine-readable error categories for Atlas Cipher client failures."""


class AtlasCipherError(Exception):
    """Base exception for all Atlas Cipher errors."""


class InvalidInput(AtlasCipherError):
    """Settlement details failed validation (never reaches the submitter)."""


class CodecError(AtlasCipherError):
    """Encoded field payload could not be decoded."""


class CanonicalizationError(AtlasCipherError):
    """JSON canonicalization failed."""


class WalletError(AtlasCipherError):
    """Wallet key loading or generation error."""


class NotConnected(AtlasCipherError):
    """No wallet account is connected."""


class UnsupportedChain(AtlasCipherError):
    """The connected wallet is on a network this client does not support."""


class CallRejected(AtlasCipherError):
    """The wallet holder declined to sign the contract call."""


class CallError(AtlasCipherError):
    """RPC transport failure or contract revert while issuing a call."""
