"""HMAC-SHA256 webhook signature verification for Alloy deliveries.

Alloy signs the raw request body with the shared webhook secret. When the
``x-alloy-timestamp`` header is present the signed string is
``"{timestamp}.{body}"`` and the delivery must be no more than five minutes old.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-alloy-signature"
TIMESTAMP_HEADER = "x-alloy-timestamp"

# Maximum age (seconds) of a timestamped delivery
REPLAY_WINDOW_SECONDS = 300

MIN_SECRET_LENGTH = 32


@dataclass(frozen=True)
class SignatureHeaders:
    signature: str | None
    timestamp: str | None


@dataclass(frozen=True)
class SignatureContext:
    """Inputs of a single verification call. Never persisted."""

    raw_body: bytes
    signature_header: str | None
    secret: str
    timestamp_header: str | None = None

    def verify(self) -> bool:
        if not self.signature_header:
            return False
        return verify_signature(
            self.raw_body, self.signature_header, self.secret, self.timestamp_header
        )


def _to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def generate_signature(
    payload: bytes | str,
    secret: str,
    timestamp: str | None = None,
) -> str:
    """Compute the lowercase hex HMAC-SHA256 signature Alloy would send."""
    body = _to_bytes(payload)
    signing_string = f"{timestamp}.".encode("utf-8") + body if timestamp else body
    return hmac.new(secret.encode("utf-8"), signing_string, hashlib.sha256).hexdigest()


def _within_replay_window(timestamp: str, now: float | None = None) -> bool:
    try:
        sent_at = int(timestamp.strip())
    except (ValueError, AttributeError):
        return False
    current = int(now if now is not None else time.time())
    return abs(current - sent_at) <= REPLAY_WINDOW_SECONDS


def verify_signature(
    payload: bytes | str | None,
    candidate_signature: str | None,
    secret: str | None,
    timestamp: str | None = None,
) -> bool:
    """Return True only if *candidate_signature* is valid for *payload*.

    Fails closed on any empty input, on a stale or unparseable timestamp, and on
    any unexpected error. The digest comparison is constant time.
    """
    if not payload or not candidate_signature or not secret:
        return False

    if timestamp and not _within_replay_window(timestamp):
        logger.info("Rejected webhook signature outside replay window")
        return False

    try:
        expected = generate_signature(payload, secret, timestamp)
        return hmac.compare_digest(
            expected.encode("ascii"), candidate_signature.encode("utf-8")
        )
    except (TypeError, ValueError, UnicodeError):
        return False


def _header_value(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    return value or None


def extract_signature_and_timestamp(headers: Mapping[str, Any]) -> SignatureHeaders:
    """Pull the signature and timestamp headers, case-insensitively."""
    found: dict[str, Any] = {}
    for name, value in headers.items():
        key = name.decode("latin-1") if isinstance(name, bytes) else str(name)
        key = key.lower()
        if key in (SIGNATURE_HEADER, TIMESTAMP_HEADER) and key not in found:
            found[key] = value
    return SignatureHeaders(
        signature=_header_value(found.get(SIGNATURE_HEADER)),
        timestamp=_header_value(found.get(TIMESTAMP_HEADER)),
    )


def generate_secure_token(length: int = 32) -> str:
    """Return a hex-encoded token of *length* random bytes."""
    return secrets.token_hex(length)


def hash_for_logging(data: str) -> str:
    """Short SHA-256 prefix so tokens can be correlated in logs without leaking."""
    digest = hashlib.sha256(data.encode("utf-8")).hexdigest()
    return f"{digest[:8]}..."


def is_valid_webhook_secret(secret: str) -> bool:
    """Minimum strength check: 32+ chars with lower, upper and digit."""
    if len(secret) < MIN_SECRET_LENGTH:
        return False
    has_lower = any(c.islower() for c in secret)
    has_upper = any(c.isupper() for c in secret)
    has_digit = any(c.isdigit() for c in secret)
    return has_lower and has_upper and has_digit
