"""EVM chain client for Atlas Cipher settlement.

Implements both boundaries the submitter and workflow need: issuing a
contract call (``call``) and watching its receipt (``watch``).  Signing is
delegated to the wallet handle passed as ``sender``; this module never holds
a private key.

Install with:  pip install -e ".[evm]"

Environment variables (all overridable via constructor args):
    ACX_EVM_RPC_URL       – JSON-RPC endpoint  (default http://localhost:8545)
    ACX_CONTRACT_ADDRESS  – deployed AtlasCipher address
    ACX_EVM_CHAIN_ID      – chain id (default 11155111, Sepolia)
    ACX_TX_TIMEOUT        – receipt wait timeout in seconds (default 120)
    ACX_TX_POLL           – poll latency in seconds (default 2)
    ACX_TX_GAS            – gas limit per call (default 300000)
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Iterator, Optional, Sequence

from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound

from ..errors import CallError
from .exceptions import SettlementTimeout
from .types import ReceiptStatus, SubmissionHandle

_LOG = logging.getLogger(__name__)

EXPLORERS = {
    1: "https://etherscan.io",
    11155111: "https://sepolia.etherscan.io",
    10: "https://optimistic.etherscan.io",
    42161: "https://arbiscan.io",
    137: "https://polygonscan.com",
    # Local/dev chains - no explorer
    31337: None,
    1337: None,
}


def _to_hex(value: bytes | str) -> str:
    if isinstance(value, str):
        return value if value.startswith("0x") else f"0x{value}"
    h = HexBytes(value).hex()
    return h if h.startswith("0x") else f"0x{h}"


class EvmChainClient:
    """Contract-call and receipt boundary over web3.py."""

    def __init__(
        self,
        rpc_url: str | None = None,
        contract_address: str | None = None,
        chain_id: int | None = None,
        timeout: int | None = None,
        poll_latency: float | None = None,
        gas: int | None = None,
        w3: Web3 | None = None,
    ):
        self.rpc_url = rpc_url or os.environ.get("ACX_EVM_RPC_URL", "http://localhost:8545")
        self.contract_address = contract_address or os.environ.get("ACX_CONTRACT_ADDRESS")
        self.chain_id = chain_id or int(os.environ.get("ACX_EVM_CHAIN_ID", "11155111"))
        self.timeout = timeout if timeout is not None else int(os.environ.get("ACX_TX_TIMEOUT", "120"))
        self.poll_latency = (
            poll_latency if poll_latency is not None else float(os.environ.get("ACX_TX_POLL", "2"))
        )
        self.gas = gas or int(os.environ.get("ACX_TX_GAS", "300000"))
        self.w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(self.rpc_url))

    @classmethod
    def from_env(cls) -> "EvmChainClient":
        """Build client from environment variables."""
        return cls()

    # -- contract-call boundary ---------------------------------------------

    def call(
        self,
        address: str,
        abi_entry: dict[str, Any],
        args: Sequence[Any],
        value: int = 0,
        *,
        sender,
    ) -> SubmissionHandle:
        """Simulate, sign and send one contract call.

        The simulated return value (e.g. the new transaction id) is carried
        on the handle.

        Raises:
            CallRejected: If the wallet holder declines to sign.
            CallError: On RPC failure, revert or chain mismatch.
        """
        name = abi_entry.get("name", "<unnamed>")
        if sender.chain_id != self.chain_id:
            raise CallError(
                f"wallet is on chain {sender.chain_id} but RPC {self.rpc_url} is chain {self.chain_id}"
            )
        try:
            contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(address), abi=[abi_entry]
            )
            fn = getattr(contract.functions, name)(*self.normalize_args(abi_entry, args))
            params = {"from": sender.address}
            if value:
                params["value"] = value
            return_value = fn.call(params)
            tx = fn.build_transaction(
                {
                    **params,
                    "nonce": self.w3.eth.get_transaction_count(sender.address),
                    "gas": self.gas,
                    "gasPrice": self.w3.eth.gas_price,
                    "chainId": self.chain_id,
                }
            )
        except ContractLogicError as e:
            raise CallError(f"{name} reverted: {e}") from e
        except Exception as e:
            raise CallError(f"{name} could not be prepared: {e}") from e

        signed = sender.sign_transaction(tx)
        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise CallError(f"sending {name} failed: {e}") from e

        tx_hex = _to_hex(tx_hash)
        _LOG.info("sent %s tx=%s from=%s", name, tx_hex, sender.address)
        return SubmissionHandle(tx_hash=tx_hex, return_value=return_value)

    @staticmethod
    def normalize_args(abi_entry: dict[str, Any], args: Sequence[Any]) -> list[Any]:
        """Checksum address-typed arguments; other arguments pass through."""
        inputs = abi_entry.get("inputs", [])
        if len(inputs) != len(args):
            raise CallError(
                f"{abi_entry.get('name')} takes {len(inputs)} arguments, got {len(args)}"
            )
        out = []
        for param, arg in zip(inputs, args):
            if param.get("type") == "address":
                arg = Web3.to_checksum_address(arg)
            out.append(arg)
        return out

    # -- receipt boundary ---------------------------------------------------

    def watch(self, handle: bytes | str) -> Iterator[ReceiptStatus]:
        """Poll for the receipt of *handle*.

        Yields PENDING while the transaction is unmined, then CONFIRMED or
        FAILED.

        Raises:
            SettlementTimeout: If no receipt appears within ``timeout`` seconds.
                This doesn't mean the transaction failed - check the explorer link.
        """
        tx_hash = self._normalize_tx_hash(handle)
        tx_hex = _to_hex(bytes(tx_hash))
        deadline = time.monotonic() + self.timeout
        while True:
            receipt = self._fetch_receipt(tx_hash)
            if receipt is not None:
                break
            _LOG.debug("tx=%s pending", tx_hex)
            yield ReceiptStatus.PENDING
            if time.monotonic() >= deadline:
                raise SettlementTimeout(
                    f"Transaction confirmation timeout after {self.timeout} seconds. "
                    f"It may still succeed: {self.explorer_url(tx_hex)} "
                    f"(increase ACX_TX_TIMEOUT to wait longer)"
                )
            time.sleep(self.poll_latency)

        if int(receipt.get("status", 0)) == 1:
            yield ReceiptStatus.CONFIRMED
        else:
            _LOG.warning("tx reverted: %s", self.tx_failure_details(tx_hash))
            yield ReceiptStatus.FAILED

    def _fetch_receipt(self, tx_hash: HexBytes) -> Optional[dict]:
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def explorer_url(self, tx_hash: str) -> str:
        """Block explorer URL for *tx_hash*, or a note when the chain has none."""
        tx_hash = _to_hex(tx_hash)
        base_url = EXPLORERS.get(self.chain_id)
        if base_url:
            return f"{base_url}/tx/{tx_hash}"
        return f"No explorer available for chain {self.chain_id}. Transaction: {tx_hash}"

    def _normalize_tx_hash(self, tx_hash: bytes | str) -> HexBytes:
        """Normalize bytes/hex-string tx hash into HexBytes."""
        if isinstance(tx_hash, (bytes, bytearray)):
            return HexBytes(tx_hash)
        if isinstance(tx_hash, str):
            return HexBytes(_to_hex(tx_hash.strip()))
        raise TypeError(f"unsupported tx_hash type: {type(tx_hash)!r}")

    def tx_failure_details(self, tx_hash: bytes | str) -> str:
        """Best-effort failure details for a reverted transaction."""
        tx_hash = self._normalize_tx_hash(tx_hash)
        details = [f"tx={_to_hex(bytes(tx_hash))}"]
        try:
            tx = self.w3.eth.get_transaction(tx_hash)
            call = {
                "from": tx.get("from"),
                "to": tx.get("to"),
                "data": tx.get("input"),
                "value": tx.get("value", 0),
            }
            block_num = tx.get("blockNumber")
            block_id = block_num - 1 if isinstance(block_num, int) and block_num > 0 else "latest"
            self.w3.eth.call(call, block_identifier=block_id)
            details.append("eth_call: no revert data")
        except Exception as e:
            details.append(f"eth_call error: {e}")
        return " | ".join(details)
