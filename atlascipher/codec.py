"""Field-level encoding for sensitive settlement values.

The contract call takes amount and fee as opaque ``bytes`` together with an
input proof.  ``ReversibleFieldCodec`` produces those payloads with a keccak
derived XOR mask.  It is reversible by anyone and offers NO confidentiality;
it only fixes the interface a real confidential encoding has to satisfy.

Payload layout (all lengths in bytes)::

    magic (1) | version (1) | context length (1) | context | masked plaintext

An empty plaintext encodes to the header alone, which is the empty-payload
sentinel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from eth_utils import keccak

from .canonicaljson import proof_digest
from .errors import CodecError

MAGIC = 0xAC
VERSION = 0x01
MAX_CONTEXT_BYTES = 255
_HEADER_BYTES = 3
# Lone surrogates survive the round trip.
_TEXT_ERRORS = "surrogatepass"


@dataclass(frozen=True)
class EncryptedField:
    ciphertext: bytes
    proof: bytes
    context: str
    timestamp: int = 0

    @property
    def is_empty(self) -> bool:
        """True when this field carries the empty-payload sentinel."""
        return len(self.ciphertext) == _HEADER_BYTES + len(self.context.encode("utf-8", _TEXT_ERRORS))


class FieldCodec(Protocol):
    """Encoding used for amounts, fees and settlement proofs.

    ``decode(encode(p, c).ciphertext) == p`` for every ``str`` *p* and every
    context *c* the codec accepts.  ``ReversibleFieldCodec`` accepts any
    non-empty context of at most 255 UTF-8 bytes and raises CodecError for
    the rest.
    """

    def encode(self, plaintext: str, context: str, timestamp: int = 0) -> EncryptedField: ...

    def decode(self, ciphertext: bytes) -> str: ...

    def submission_proof(self, field: EncryptedField, timestamp: int) -> bytes: ...


def _context_bytes(context: str) -> bytes:
    if not isinstance(context, str) or not context:
        raise CodecError("context must be a non-empty string")
    raw = context.encode("utf-8", _TEXT_ERRORS)
    if len(raw) > MAX_CONTEXT_BYTES:
        raise CodecError(
            f"context must encode to at most {MAX_CONTEXT_BYTES} bytes, got {len(raw)}"
        )
    return raw


def _keystream(context: bytes, length: int) -> bytes:
    out = bytearray()
    counter = 0
    while len(out) < length:
        out += keccak(context + b"\x00" + counter.to_bytes(4, "big"))
        counter += 1
    return bytes(out[:length])


def _mask(data: bytes, context: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(data, _keystream(context, len(data))))


class ReversibleFieldCodec:
    """Placeholder codec: deterministic, context-separated, reversible."""

    def encode(self, plaintext: str, context: str, timestamp: int = 0) -> EncryptedField:
        """Encode *plaintext* for the use-site named by *context*.

        Numbers are accepted and encoded through their ``str()`` form.
        The proof is deterministic given (plaintext, context, timestamp).
        """
        ctx = _context_bytes(context)
        body = _mask(str(plaintext).encode("utf-8", _TEXT_ERRORS), ctx)
        ciphertext = bytes((MAGIC, VERSION, len(ctx))) + ctx + body
        proof = proof_digest({"ciphertext": ciphertext.hex(), "timestamp": int(timestamp)})
        return EncryptedField(
            ciphertext=ciphertext, proof=proof, context=context, timestamp=int(timestamp)
        )

    def decode(self, ciphertext: bytes) -> str:
        """Recover the plaintext from a payload produced by :meth:`encode`.

        Raises:
            CodecError: If the payload is truncated or was not produced by
                this codec.
        """
        ciphertext = bytes(ciphertext)
        if len(ciphertext) < _HEADER_BYTES:
            raise CodecError("payload shorter than header")
        magic, version, ctx_len = ciphertext[0], ciphertext[1], ciphertext[2]
        if magic != MAGIC:
            raise CodecError(f"bad payload magic: 0x{magic:02x}")
        if version != VERSION:
            raise CodecError(f"unsupported payload version: {version}")
        if ctx_len == 0 or len(ciphertext) < _HEADER_BYTES + ctx_len:
            raise CodecError("payload context is truncated")
        ctx = ciphertext[_HEADER_BYTES:_HEADER_BYTES + ctx_len]
        body = ciphertext[_HEADER_BYTES + ctx_len:]
        try:
            return _mask(body, ctx).decode("utf-8", _TEXT_ERRORS)
        except UnicodeDecodeError as e:
            raise CodecError(f"payload body is not valid UTF-8: {e}") from e

    def context_of(self, ciphertext: bytes) -> str:
        """Return the context tag embedded in *ciphertext*."""
        ciphertext = bytes(ciphertext)
        if len(ciphertext) < _HEADER_BYTES or ciphertext[0] != MAGIC:
            raise CodecError("not an encoded field payload")
        ctx_len = ciphertext[2]
        ctx = ciphertext[_HEADER_BYTES:_HEADER_BYTES + ctx_len]
        if len(ctx) != ctx_len:
            raise CodecError("payload context is truncated")
        try:
            return ctx.decode("utf-8", _TEXT_ERRORS)
        except UnicodeDecodeError as e:
            raise CodecError(f"payload context is not valid UTF-8: {e}") from e

    def submission_proof(self, field: EncryptedField, timestamp: int) -> bytes:
        """Proof that *field* was produced for a call made at *timestamp*."""
        return proof_digest(
            {
                "context": field.context.encode("utf-8", _TEXT_ERRORS).hex(),
                "field": field.ciphertext.hex(),
                "proof": field.proof.hex(),
                "timestamp": int(timestamp),
            }
        )
