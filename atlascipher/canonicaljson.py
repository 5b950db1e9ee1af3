"""Proof preimages: RFC 8785 canonical JSON hashed with keccak-256.

A preimage is a flat JSON object whose values are strings or integers.
Floats are refused: their canonical text follows ES6 number formatting,
which a contract-side verifier does not reproduce.
"""

import jcs as _jcs
from eth_utils import keccak

from .errors import CanonicalizationError


def canonicalize(preimage: dict) -> bytes:
    """Canonical UTF-8 bytes of a proof preimage per RFC 8785.

    Raises:
        CanonicalizationError: If *preimage* is not a flat object of string
            or integer values, or cannot be canonicalized.
    """
    if not isinstance(preimage, dict):
        raise CanonicalizationError("proof preimage must be a JSON object (dict)")
    for key, value in preimage.items():
        if not isinstance(key, str):
            raise CanonicalizationError(f"preimage keys must be strings, got {key!r}")
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise CanonicalizationError(
                f"preimage field {key!r} must be a string or integer, got {type(value).__name__}"
            )
    try:
        return _jcs.canonicalize(preimage)
    except Exception as e:
        raise CanonicalizationError(f"Canonicalization failed: {e}") from e


def proof_digest(preimage: dict) -> bytes:
    """keccak-256 of the canonical form of *preimage* (32 bytes)."""
    return keccak(canonicalize(preimage))
