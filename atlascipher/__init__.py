"""Atlas Cipher Python client v0.1."""

from .codec import EncryptedField, FieldCodec, ReversibleFieldCodec
from .errors import (
    AtlasCipherError,
    CallError,
    CallRejected,
    CanonicalizationError,
    CodecError,
    InvalidInput,
    NotConnected,
    UnsupportedChain,
    WalletError,
)
from .notify import LoggingNotifier
from .request import Currency, SettlementRequest
from .wallet import ChainInfo, LocalWalletProvider, WalletHandle

__all__ = [
    "AtlasCipherError",
    "CallError",
    "CallRejected",
    "CanonicalizationError",
    "ChainInfo",
    "CodecError",
    "Currency",
    "EncryptedField",
    "FieldCodec",
    "InvalidInput",
    "LocalWalletProvider",
    "LoggingNotifier",
    "NotConnected",
    "ReversibleFieldCodec",
    "SettlementRequest",
    "UnsupportedChain",
    "WalletError",
    "WalletHandle",
]
