"""AtlasCipher contract ABI.

The ABI ships as ``abi/AtlasCipher.json`` next to this module so that the
submitter can look up call signatures without importing web3.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from .exceptions import SettlementMisconfiguration

_ABI_PATH = Path(__file__).parent / "abi" / "AtlasCipher.json"

CREATE_TRANSACTION = "createTransaction"
SETTLE_TRANSACTION = "settleTransaction"


@lru_cache(maxsize=None)
def _load_abi_text() -> str:
    with open(_ABI_PATH) as f:
        return f.read()


def load_abi() -> list[dict[str, Any]]:
    raw = json.loads(_load_abi_text())

    # Accept either a plain ABI list or a foundry artifact with an `abi` field.
    if isinstance(raw, list):
        return raw
    if isinstance(raw, dict) and isinstance(raw.get("abi"), list):
        return raw["abi"]
    raise SettlementMisconfiguration(f"Unsupported ABI JSON shape in {_ABI_PATH}")


def abi_entry(name: str, abi: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Return the function entry called *name* from the contract ABI."""
    for item in abi if abi is not None else load_abi():
        if item.get("type") == "function" and item.get("name") == name:
            return item
    raise SettlementMisconfiguration(f"ABI has no function named {name!r}")
