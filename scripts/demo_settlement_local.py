#!/usr/bin/env python3
"""Demo: drive one Atlas Cipher settlement on a local Anvil node.

Prerequisites
─────────────
1. Anvil running at localhost:8545
2. AtlasCipher contract deployed
3. Environment variables set:
     ACX_EVM_PRIVATE_KEY   – hex key of Anvil account #0  (sender)
     ACX_CONTRACT_ADDRESS  – deployed contract address
     ACX_EVM_CHAIN_ID      – 31337 for Anvil

Optional env:
     ACX_EVM_RPC_URL       – defaults to http://localhost:8545

Usage:
    python scripts/demo_settlement_local.py [amount] [currency]
"""

from __future__ import annotations

import logging
import sys

from atlascipher import LocalWalletProvider, SettlementRequest
from atlascipher.settlement import SettlementWorkflow, TransactionSubmitter
from atlascipher.settlement.evm import EvmChainClient

# Anvil default account #1 (recipient)
ANVIL_ACCOUNT_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    amount = sys.argv[1] if len(sys.argv) > 1 else "1000.00"
    currency = sys.argv[2] if len(sys.argv) > 2 else "USDT"

    chain = EvmChainClient.from_env()
    wallet = LocalWalletProvider.from_env()
    workflow = SettlementWorkflow(
        wallet, TransactionSubmitter(chain, chain.contract_address), chain
    )

    print(f"RPC              = {chain.rpc_url}")
    print(f"Contract         = {chain.contract_address}")
    print(f"Chain            = {wallet.current_chain()}")
    print()

    workflow.connect()
    print(f"Sender           = {wallet.current_account()}")
    workflow.request = SettlementRequest(
        recipient_name="Demo recipient",
        recipient_address=ANVIL_ACCOUNT_1,
        amount=amount,
        currency=currency,
        memo="demo settlement",
    )
    workflow.proceed()
    print(f"Amount           = {amount} {currency}")
    print(f"Network fee      = {workflow.request.network_fee()}")
    print(f"Total            = {workflow.request.total_amount()}")
    print()

    print("--- createTransaction ---")
    record = workflow.confirm()
    print(f"  tx_hash: {record.submission_handle}")
    print(f"  status:  {record.status.value}")
    step = workflow.wait()
    record = workflow.create_record
    print(f"  final:   {record.status.value}  id={record.id}  step={step.name}")
    if record.error is not None:
        print(f"  error:   {record.error}")
        sys.exit(1)
    print()

    print("--- settleTransaction ---")
    record = workflow.settle()
    print(f"  tx_hash: {record.submission_handle}")
    workflow.wait()
    record = workflow.settle_record
    print(f"  final:   {record.status.value}")
    if record.error is not None:
        print(f"  error:   {record.error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
