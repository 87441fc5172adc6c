"""Unit tests for signature hashing utilities.

Tests payload hashing, the keyed verification hash and identifier minting.
"""

import re
from datetime import UTC, datetime, timedelta, timezone

import pytest

from stagebook.shared.crypto import (
    SignatureHasher,
    format_signed_at,
    generate_certificate_number,
    generate_contract_id,
    hash_signature_payload,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


class TestPayloadHash:
    """Test the plain SHA-256 payload hash."""

    def test_hash_is_hex_sha256(self):
        digest = hash_signature_payload("signature")

        assert len(digest) == 64
        assert re.fullmatch(r"[0-9a-f]{64}", digest)

    def test_hash_is_deterministic(self):
        assert hash_signature_payload("abc") == hash_signature_payload("abc")

    def test_one_character_changes_hash(self):
        assert hash_signature_payload("abc") != hash_signature_payload("abd")


class TestSignatureHasher:
    """Test the HMAC verification hash."""

    def _hash(self, hasher: SignatureHasher, **overrides) -> str:
        values = {
            "signature_hash": hash_signature_payload("payload"),
            "signed_at": NOW,
            "signer_email": "artist@example.com",
            "contract_id": "CONTRACT-1",
        }
        values.update(overrides)
        return hasher.verification_hash(**values)

    def test_same_inputs_same_hash(self):
        hasher = SignatureHasher("first-secret-key-for-tests")

        assert self._hash(hasher) == self._hash(hasher)

    def test_key_changes_hash(self):
        first = SignatureHasher("first-secret-key-for-tests")
        second = SignatureHasher("second-secret-key-for-tests")

        assert self._hash(first) != self._hash(second)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("signer_email", "someone@example.com"),
            ("contract_id", "CONTRACT-2"),
            ("signed_at", NOW + timedelta(milliseconds=1)),
        ],
    )
    def test_bound_fields_change_hash(self, field, value):
        hasher = SignatureHasher("first-secret-key-for-tests")

        assert self._hash(hasher) != self._hash(hasher, **{field: value})

    def test_equivalent_timestamps_hash_equal(self):
        """The same instant in another timezone produces the same hash."""
        hasher = SignatureHasher("first-secret-key-for-tests")
        vienna = NOW.astimezone(timezone(timedelta(hours=2)))

        assert self._hash(hasher) == self._hash(hasher, signed_at=vienna)

    def test_naive_timestamp_treated_as_utc(self):
        hasher = SignatureHasher("first-secret-key-for-tests")

        assert self._hash(hasher) == self._hash(hasher, signed_at=NOW.replace(tzinfo=None))

    @pytest.mark.parametrize("key", ["", "change-me", "change-this-to-a-random-secret-key"])
    def test_placeholder_keys_rejected(self, key):
        with pytest.raises(ValueError, match="SIGNATURE_SECRET_KEY"):
            SignatureHasher(key)

    def test_matches(self):
        hasher = SignatureHasher("first-secret-key-for-tests")

        assert hasher.matches("abc", "abc") is True
        assert hasher.matches("abc", "abd") is False


class TestIdentifiers:
    """Test certificate number and contract id formats."""

    def test_format_signed_at_uses_utc_milliseconds(self):
        assert format_signed_at(NOW) == "2025-06-01T12:00:00.000+00:00"

    def test_certificate_number_format(self):
        number = generate_certificate_number(NOW)

        assert re.fullmatch(r"SIG-[0-9A-Z]+-[0-9A-F]{8}", number)

    def test_certificate_numbers_differ_at_same_instant(self):
        numbers = {generate_certificate_number(NOW) for _ in range(50)}

        assert len(numbers) == 50

    def test_contract_id_format(self):
        contract_id = generate_contract_id(NOW)

        assert re.fullmatch(r"CONTRACT-[0-9A-Z]+-[0-9A-Z]{9}", contract_id)
