"""Wallet identity: a local secp256k1 key acting as the connected account.

``LocalWalletProvider`` implements the wallet boundary used by the settlement
pipeline: connect, disconnect, current account and current chain.  Keys are
generated, loaded and saved the same way regardless of chain.

Environment variables (used by ``from_env``):
    ACX_EVM_PRIVATE_KEY   – hex-encoded private key
    ACX_EVM_CHAIN_ID      – chain id the wallet is on (default 11155111, Sepolia)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import CallRejected, NotConnected, WalletError

_LOG = logging.getLogger(__name__)

SEPOLIA_CHAIN_ID = 11155111

SUPPORTED_CHAINS = {
    SEPOLIA_CHAIN_ID: "Sepolia",
    # Local dev chains
    31337: "Anvil",
    1337: "Hardhat",
}


@dataclass(frozen=True)
class ChainInfo:
    id: int
    name: str
    supported: bool


def chain_info(chain_id: int, supported_chains: dict[int, str]) -> ChainInfo:
    name = supported_chains.get(chain_id)
    return ChainInfo(id=chain_id, name=name or f"chain {chain_id}", supported=name is not None)


class WalletHandle:
    """Signing capability for one connected account.

    A handle stops working once its provider disconnects.  ``approve`` is
    consulted before every signature; returning False models the user
    declining the request in their wallet.
    """

    def __init__(
        self,
        account: LocalAccount,
        chain_id: int,
        approve: Optional[Callable[[dict], bool]] = None,
        supported_chains: Optional[dict[int, str]] = None,
    ):
        self._account = account
        self.chain_id = chain_id
        self._approve = approve
        self._supported = SUPPORTED_CHAINS if supported_chains is None else supported_chains
        self._connected = True

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def chain(self) -> ChainInfo:
        return chain_info(self.chain_id, self._supported)

    def sign_transaction(self, tx: dict):
        if not self._connected:
            raise NotConnected("wallet disconnected before signing")
        if self._approve is not None and not self._approve(tx):
            raise CallRejected("user declined the signature request")
        return self._account.sign_transaction(tx)

    def _revoke(self) -> None:
        self._connected = False

    def __repr__(self) -> str:
        return f"WalletHandle(address={self.address!r}, chain_id={self.chain_id})"


class LocalWalletProvider:
    """Wallet provider backed by an in-process private key."""

    def __init__(
        self,
        account: LocalAccount,
        chain_id: int = SEPOLIA_CHAIN_ID,
        supported_chains: Optional[dict[int, str]] = None,
        approve: Optional[Callable[[dict], bool]] = None,
    ):
        self._account = account
        self._chain_id = chain_id
        self._supported = dict(SUPPORTED_CHAINS if supported_chains is None else supported_chains)
        self._approve = approve
        self._handle: Optional[WalletHandle] = None

    # -- key management -----------------------------------------------------

    @classmethod
    def generate(cls, **kwargs) -> "LocalWalletProvider":
        """Generate a new random key (in-memory only)."""
        return cls(Account.create(), **kwargs)

    @classmethod
    def from_key(cls, private_key: str | bytes, **kwargs) -> "LocalWalletProvider":
        try:
            account = Account.from_key(private_key)
        except Exception as e:
            raise WalletError(f"Invalid private key: {e}") from e
        return cls(account, **kwargs)

    @classmethod
    def from_env(cls) -> "LocalWalletProvider":
        """Build provider from environment variables."""
        try:
            pk = os.environ["ACX_EVM_PRIVATE_KEY"]
        except KeyError as e:
            raise WalletError("ACX_EVM_PRIVATE_KEY is not set") from e
        chain_id = int(os.environ.get("ACX_EVM_CHAIN_ID", str(SEPOLIA_CHAIN_ID)))
        return cls.from_key(pk, chain_id=chain_id)

    @classmethod
    def create(cls, path: str, **kwargs) -> "LocalWalletProvider":
        """Generate a new key and save it to *path*. Creates parent dirs.

        Raises:
            WalletError: If *path* already exists (will not overwrite).
        """
        p = Path(path)
        if p.exists():
            raise WalletError(f"Key file already exists: {path}")
        provider = cls.generate(**kwargs)
        provider.save(path)
        return provider

    @classmethod
    def load(cls, path: str, **kwargs) -> "LocalWalletProvider":
        """Load a secp256k1 private key from a file (raw 32 bytes)."""
        p = Path(path)
        if not p.exists():
            raise WalletError(f"Key file not found: {path}")
        raw = p.read_bytes()
        if len(raw) != 32:
            raise WalletError(f"Invalid key file: expected 32 bytes, got {len(raw)}")
        return cls.from_key(raw, **kwargs)

    def save(self, path: str) -> None:
        """Save the raw 32-byte private key to disk. Creates parent dirs."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(bytes(self._account.key))

    # -- wallet boundary ----------------------------------------------------

    @property
    def handle(self) -> Optional[WalletHandle]:
        return self._handle

    def connect(self) -> WalletHandle:
        if self._handle is None or not self._handle.connected:
            self._handle = WalletHandle(
                self._account, self._chain_id, approve=self._approve, supported_chains=self._supported
            )
            _LOG.info("wallet connected account=%s chain=%s", self._account.address, self._chain_id)
        return self._handle

    def disconnect(self) -> None:
        if self._handle is not None:
            self._handle._revoke()
            self._handle = None
            _LOG.info("wallet disconnected account=%s", self._account.address)

    def current_account(self) -> Optional[str]:
        return self._handle.address if self._handle is not None else None

    def current_chain(self) -> ChainInfo:
        return chain_info(self._chain_id, self._supported)

    def switch_chain(self, chain_id: int) -> ChainInfo:
        """Move the wallet to *chain_id*.  An open handle follows the switch."""
        self._chain_id = chain_id
        if self._handle is not None:
            self._handle.chain_id = chain_id
        return self.current_chain()
