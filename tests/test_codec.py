"""Tests for field encoding, proofs and canonical JSON."""

import pytest

from atlascipher.canonicaljson import canonicalize, proof_digest
from atlascipher.codec import ReversibleFieldCodec
from atlascipher.errors import CanonicalizationError, CodecError


@pytest.fixture
def codec():
    return ReversibleFieldCodec()


class TestRoundTrip:
    @pytest.mark.parametrize(
        "plaintext",
        ["1000", "1000.00", "0", "0.000001", "-3", "Payment reference #42", "ünïcødé ✓", "a" * 300],
    )
    def test_decode_recovers_plaintext(self, codec, plaintext):
        for context in ("amount", "fee", "settlement-proof"):
            assert codec.decode(codec.encode(plaintext, context).ciphertext) == plaintext

    def test_numbers_encode_through_str(self, codec):
        assert codec.decode(codec.encode(1000, "amount").ciphertext) == "1000"

    def test_context_is_recoverable(self, codec):
        field = codec.encode("5", "fee")
        assert codec.context_of(field.ciphertext) == "fee"

    def test_lone_surrogates_round_trip(self, codec):
        for plaintext in ("\ud800", "a\udfffb"):
            field = codec.encode(plaintext, "memo-\udc00")
            assert codec.decode(field.ciphertext) == plaintext
            assert codec.context_of(field.ciphertext) == "memo-\udc00"
            assert len(codec.submission_proof(field, 1)) == 32


class TestContextSeparation:
    @pytest.mark.parametrize("plaintext", ["", "0", "1000", "memo text"])
    def test_amount_and_fee_differ(self, codec, plaintext):
        assert codec.encode(plaintext, "amount") != codec.encode(plaintext, "fee")
        assert (
            codec.encode(plaintext, "amount").ciphertext
            != codec.encode(plaintext, "fee").ciphertext
        )

    def test_deterministic(self, codec):
        assert codec.encode("1000", "amount", 7) == codec.encode("1000", "amount", 7)


class TestEmptyPayload:
    def test_empty_string_encodes_to_sentinel(self, codec):
        field = codec.encode("", "amount")
        assert field.is_empty
        assert codec.decode(field.ciphertext) == ""

    def test_non_empty_is_not_sentinel(self, codec):
        assert not codec.encode("1", "amount").is_empty


class TestProof:
    def test_proof_depends_on_timestamp(self, codec):
        assert codec.encode("1000", "amount", 1).proof != codec.encode("1000", "amount", 2).proof

    def test_proof_depends_on_plaintext(self, codec):
        assert codec.encode("1000", "amount", 1).proof != codec.encode("1001", "amount", 1).proof

    def test_proof_is_32_bytes(self, codec):
        assert len(codec.encode("1000", "amount").proof) == 32

    def test_submission_proof_bound_to_field_and_time(self, codec):
        field = codec.encode("1000", "amount", 10)
        assert codec.submission_proof(field, 10) == codec.submission_proof(field, 10)
        assert codec.submission_proof(field, 10) != codec.submission_proof(field, 11)
        other = codec.encode("999", "amount", 10)
        assert codec.submission_proof(field, 10) != codec.submission_proof(other, 10)


class TestMalformed:
    def test_empty_context_rejected(self, codec):
        with pytest.raises(CodecError, match="context"):
            codec.encode("1", "")

    def test_oversized_context_rejected(self, codec):
        with pytest.raises(CodecError, match="at most 255"):
            codec.encode("1", "x" * 256)

    def test_decode_short_payload(self, codec):
        with pytest.raises(CodecError, match="shorter"):
            codec.decode(b"\xac")

    def test_decode_bad_magic(self, codec):
        payload = bytearray(codec.encode("1", "amount").ciphertext)
        payload[0] = 0x00
        with pytest.raises(CodecError, match="magic"):
            codec.decode(bytes(payload))

    def test_decode_truncated_context(self, codec):
        with pytest.raises(CodecError, match="truncated"):
            codec.decode(bytes((0xAC, 0x01, 10)) + b"abc")


class TestCanonicalization:
    def test_object_member_ordering(self):
        assert canonicalize({"b": 2, "a": 1}) == b'{"a":1,"b":2}'

    def test_non_dict_rejected(self):
        with pytest.raises(CanonicalizationError, match="JSON object"):
            canonicalize(["not", "a", "dict"])

    @pytest.mark.parametrize("value", [1.5, True, None, ["x"]])
    def test_only_strings_and_integers(self, value):
        with pytest.raises(CanonicalizationError, match="string or integer"):
            canonicalize({"field": value})

    def test_large_integers_are_exact(self):
        assert canonicalize({"timestamp": 2**64}) == b'{"timestamp":18446744073709551616}'

    def test_digest_ignores_key_order(self):
        assert proof_digest({"a": "1", "b": 2}) == proof_digest({"b": 2, "a": "1"})
        assert len(proof_digest({"a": "1"})) == 32
