"""Hashing utilities for signature certificates.

The payload hash is a plain SHA-256 digest of the submitted signature
image. The verification hash is an HMAC-SHA256 over the payload hash and
the signer binding, keyed with SIGNATURE_SECRET_KEY, so a stored record
cannot be edited without the key.
"""

import hashlib
import hmac
import secrets
import string
from datetime import UTC, datetime

from stagebook.shared.clock import ensure_aware, epoch_millis, to_base36

# Known default/placeholder values that should never key production HMACs
_INSECURE_DEFAULT_KEYS = {
    "change-this-to-a-random-secret-key",
    "change-me",
    "",
}

_ALNUM_UPPER = string.ascii_uppercase + string.digits


def hash_signature_payload(signature_image: str) -> str:
    """Return the SHA-256 hex digest of a signature payload."""
    return hashlib.sha256(signature_image.encode("utf-8")).hexdigest()


def format_signed_at(value: datetime) -> str:
    """Canonical timestamp text used inside the verification hash."""
    return ensure_aware(value).astimezone(UTC).isoformat(timespec="milliseconds")


class SignatureHasher:
    """Computes and checks the keyed verification hash of a certificate."""

    def __init__(self, secret_key: str) -> None:
        if not secret_key or secret_key in _INSECURE_DEFAULT_KEYS:
            raise ValueError(
                "SIGNATURE_SECRET_KEY must be configured. "
                "Generate a key with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )
        self._key = secret_key.encode("utf-8")

    def verification_hash(
        self,
        *,
        signature_hash: str,
        signed_at: datetime,
        signer_email: str,
        contract_id: str,
    ) -> str:
        message = "|".join(
            [signature_hash, format_signed_at(signed_at), signer_email, contract_id]
        )
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def matches(self, expected: str, actual: str) -> bool:
        """Constant-time comparison of two hex digests."""
        return hmac.compare_digest(expected, actual)


def generate_certificate_number(now: datetime) -> str:
    """Mint a certificate number: ``SIG-<ms base36>-<8 hex>``."""
    return f"SIG-{to_base36(epoch_millis(now))}-{secrets.token_hex(4).upper()}"


def generate_contract_id(now: datetime) -> str:
    """Mint a contract id: ``CONTRACT-<ms base36>-<9 alnum>``."""
    suffix = "".join(secrets.choice(_ALNUM_UPPER) for _ in range(9))
    return f"CONTRACT-{to_base36(epoch_millis(now))}-{suffix}"
