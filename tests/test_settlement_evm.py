"""Unit tests for atlascipher.settlement.evm.

These tests do NOT require a running chain, except the last one, which
drives the full workflow against a local node when one is reachable and an
AtlasCipher contract address is configured.
"""

import os

import pytest

# These imports will fail if the evm extras are not installed.
# Mark the whole module so pytest skips cleanly in that case.
pytestmark = pytest.mark.skipif(
    not __import__("importlib").util.find_spec("web3"),
    reason="evm extras not installed (pip install -e '.[evm]')",
)

RPC_URL = os.environ.get("ACX_EVM_RPC_URL", "http://localhost:8545")
ANVIL_PK0 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ANVIL_WORKER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def client():
    from atlascipher.settlement.evm import EvmChainClient

    return EvmChainClient(rpc_url="http://127.0.0.1:1", chain_id=31337, timeout=0, poll_latency=0)


@pytest.fixture
def create_entry():
    from atlascipher.settlement import CREATE_TRANSACTION, abi_entry

    return abi_entry(CREATE_TRANSACTION)


def test_normalize_args_checksums_addresses(client, create_entry):
    args = client.normalize_args(create_entry, [ANVIL_WORKER.lower(), b"\x01", b"\x02", "memo", b"\x03"])
    assert args == [ANVIL_WORKER, b"\x01", b"\x02", "memo", b"\x03"]


def test_normalize_args_rejects_wrong_arity(client, create_entry):
    from atlascipher.errors import CallError

    with pytest.raises(CallError, match="takes 5 arguments"):
        client.normalize_args(create_entry, [ANVIL_WORKER])


def test_explorer_url():
    from atlascipher.settlement.evm import EvmChainClient

    sepolia = EvmChainClient(rpc_url="http://127.0.0.1:1", chain_id=11155111)
    assert sepolia.explorer_url(TX_HASH) == f"https://sepolia.etherscan.io/tx/{TX_HASH}"
    assert sepolia.explorer_url(TX_HASH[2:]) == f"https://sepolia.etherscan.io/tx/{TX_HASH}"


def test_explorer_url_local_chain(client):
    assert "No explorer available for chain 31337" in client.explorer_url(TX_HASH)


def test_env_configuration(monkeypatch):
    from atlascipher.settlement.evm import EvmChainClient

    monkeypatch.setenv("ACX_EVM_RPC_URL", "http://127.0.0.1:9999")
    monkeypatch.setenv("ACX_CONTRACT_ADDRESS", ANVIL_WORKER)
    monkeypatch.setenv("ACX_EVM_CHAIN_ID", "31337")
    monkeypatch.setenv("ACX_TX_TIMEOUT", "5")
    monkeypatch.setenv("ACX_TX_POLL", "0.5")
    c = EvmChainClient.from_env()
    assert c.rpc_url == "http://127.0.0.1:9999"
    assert c.contract_address == ANVIL_WORKER
    assert c.chain_id == 31337
    assert c.timeout == 5
    assert c.poll_latency == 0.5
    assert c.gas == 300_000


def test_watch_pending_then_confirmed(client, monkeypatch):
    from atlascipher.settlement import ReceiptStatus

    receipts = iter([None, None, {"status": 1}])
    monkeypatch.setattr(client, "_fetch_receipt", lambda tx_hash: next(receipts))
    client.timeout = 60
    assert list(client.watch(TX_HASH)) == [
        ReceiptStatus.PENDING,
        ReceiptStatus.PENDING,
        ReceiptStatus.CONFIRMED,
    ]


def test_watch_reverted(client, monkeypatch):
    from atlascipher.settlement import ReceiptStatus

    monkeypatch.setattr(client, "_fetch_receipt", lambda tx_hash: {"status": 0})
    monkeypatch.setattr(client, "tx_failure_details", lambda tx_hash: "tx=reverted")
    assert list(client.watch(TX_HASH)) == [ReceiptStatus.FAILED]


def test_watch_timeout(client, monkeypatch):
    from atlascipher.settlement import ReceiptStatus, SettlementTimeout

    monkeypatch.setattr(client, "_fetch_receipt", lambda tx_hash: None)
    stream = client.watch(TX_HASH)
    assert next(stream) is ReceiptStatus.PENDING
    with pytest.raises(SettlementTimeout, match="timeout after 0 seconds"):
        next(stream)


def test_tracker_turns_timeout_into_failed(client, monkeypatch):
    from atlascipher.settlement import ConfirmationTracker, ReceiptStatus

    monkeypatch.setattr(client, "_fetch_receipt", lambda tx_hash: None)
    tracker = ConfirmationTracker(client, TX_HASH)
    assert list(tracker) == [ReceiptStatus.PENDING, ReceiptStatus.FAILED]
    assert "timeout" in str(tracker.error)


def test_call_rejects_chain_mismatch(client, create_entry):
    from atlascipher.errors import CallError
    from atlascipher.wallet import LocalWalletProvider

    wallet = LocalWalletProvider.from_key(ANVIL_PK0, chain_id=11155111).connect()
    with pytest.raises(CallError, match="chain"):
        client.call(ANVIL_WORKER, create_entry, [], sender=wallet)


def test_call_wraps_transport_errors(client, create_entry):
    from atlascipher.errors import CallError
    from atlascipher.wallet import LocalWalletProvider

    wallet = LocalWalletProvider.from_key(ANVIL_PK0, chain_id=31337).connect()
    args = [ANVIL_WORKER, b"\x01", b"\x02", "memo", b"\x03"]
    with pytest.raises(CallError, match="could not be prepared"):
        client.call(ANVIL_WORKER, create_entry, args, sender=wallet)


def _rpc_ready() -> bool:
    import requests

    try:
        resp = requests.post(
            RPC_URL,
            json={"jsonrpc": "2.0", "method": "eth_chainId", "params": [], "id": 1},
            timeout=3,
        )
        return resp.status_code == 200 and "result" in resp.json()
    except Exception:
        return False


def test_workflow_against_local_node():
    """Full create -> confirm -> settle against a deployed AtlasCipher contract."""
    if not os.environ.get("ACX_CONTRACT_ADDRESS"):
        pytest.skip("ACX_CONTRACT_ADDRESS not set")
    if not _rpc_ready():
        pytest.skip(f"RPC {RPC_URL} is not available")

    from atlascipher.request import SettlementRequest
    from atlascipher.settlement import SettlementWorkflow, Step, TransactionSubmitter
    from atlascipher.settlement.evm import EvmChainClient
    from atlascipher.wallet import LocalWalletProvider

    chain = EvmChainClient(rpc_url=RPC_URL, chain_id=31337, timeout=60, poll_latency=0.2)
    wallet = LocalWalletProvider.from_key(
        os.environ.get("ACX_EVM_PRIVATE_KEY", ANVIL_PK0), chain_id=31337
    )
    workflow = SettlementWorkflow(wallet, TransactionSubmitter(chain, chain.contract_address), chain)
    workflow.connect()
    workflow.request = SettlementRequest(recipient_address=ANVIL_WORKER, amount="500", fee="5")
    workflow.proceed()
    workflow.confirm()
    assert workflow.wait() is Step.COMPLETE

    workflow.settle()
    workflow.wait()
    assert workflow.settle_record.status.value == "confirmed"
