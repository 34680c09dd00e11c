"""Format checks for KYC/KYB input fields.

These only validate shape (digits, lengths, known codes). They say nothing
about whether an SSN or EIN was actually issued.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?\d{10,15}$")
_PHONE_FORMATTING_RE = re.compile(r"[\s\-().]")
_NINE_DIGITS_RE = re.compile(r"^\d{9}$")
_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
_COUNTRY_RE = re.compile(r"^[A-Z]{2}$")
_TOKEN_RE = re.compile(r"^[a-zA-Z0-9_-]{8,64}$")

US_STATE_CODES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "VI", "GU", "AS", "MP",
})

SUPPORTED_DOCUMENT_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "image/tiff",
})

MAX_DOCUMENT_MB = 10
MAX_PAGE_LIMIT = 100
DEFAULT_PAGE_LIMIT = 25


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    cleaned = _PHONE_FORMATTING_RE.sub("", phone)
    return bool(_PHONE_RE.match(cleaned))


def parse_date(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid_date(value: str) -> bool:
    return parse_date(value) is not None


def is_valid_date_of_birth(value: str) -> bool:
    """A parseable ISO date strictly in the past."""
    parsed = parse_date(value)
    return parsed is not None and parsed < datetime.now(timezone.utc)


def is_valid_ssn(ssn: str) -> bool:
    return bool(_NINE_DIGITS_RE.match(ssn.replace("-", "")))


def is_valid_ein(ein: str) -> bool:
    return bool(_NINE_DIGITS_RE.match(ein.replace("-", "")))


def is_valid_zip_code(zip_code: str) -> bool:
    return bool(_ZIP_RE.match(zip_code))


def is_valid_state_code(state: str) -> bool:
    return state.upper() in US_STATE_CODES


def is_valid_country_code(country_code: str) -> bool:
    """ISO 3166-1 alpha-2 shape check."""
    return bool(_COUNTRY_RE.match(country_code.upper()))


def is_valid_alloy_token(token: str) -> bool:
    return bool(_TOKEN_RE.match(token))


def validate_required_fields(
    obj: dict[str, Any],
    required_fields: list[str],
) -> tuple[bool, list[str]]:
    """Return ``(valid, missing_fields)``. None and empty strings count as missing."""
    missing = [f for f in required_fields if obj.get(f) in (None, "")]
    return (not missing, missing)


def format_date_for_api(value: date | datetime | str) -> str:
    """Render a date as the ISO-8601 UTC timestamp Alloy expects."""
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        value = parsed
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def sanitize_name(name: str) -> str:
    return " ".join(name.split())


def is_valid_document_type(mime_type: str) -> bool:
    return mime_type.lower() in SUPPORTED_DOCUMENT_MIME_TYPES


def is_valid_file_size(num_bytes: int, max_mb: int = MAX_DOCUMENT_MB) -> bool:
    return 0 < num_bytes <= max_mb * 1024 * 1024


def is_valid_risk_score(score: Any) -> bool:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return 0 <= score <= 100


def validate_pagination(page: int | None = None, limit: int | None = None) -> tuple[int, int]:
    """Clamp a page window to ``page >= 1`` and ``1 <= limit <= 100``."""
    valid_page = max(1, int(page or 1))
    valid_limit = min(MAX_PAGE_LIMIT, max(1, int(limit or DEFAULT_PAGE_LIMIT)))
    return valid_page, valid_limit
