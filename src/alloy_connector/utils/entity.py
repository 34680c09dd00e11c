"""Helpers for working with Alloy individual and business entity payloads."""

from __future__ import annotations

import hashlib
import json
from datetime import date
from typing import Any

from alloy_connector.models.enums import EntityType
from alloy_connector.utils.validation import parse_date

SENSITIVE_FIELDS = (
    "ssn",
    "document_ssn",
    "birth_date",
    "business_ein",
    "account_number",
    "routing_number",
)


def determine_entity_type(data: dict[str, Any]) -> EntityType:
    if data.get("business_name") or data.get("business_ein"):
        return EntityType.BUSINESS
    return EntityType.INDIVIDUAL


def format_full_name(data: dict[str, Any]) -> str:
    parts = [
        data.get(key)
        for key in ("name_first", "name_middle", "name_last", "name_suffix")
    ]
    return " ".join(p for p in parts if p).strip()


def format_address(data: dict[str, Any]) -> str:
    """Multi-line postal address: street lines, ``city, state, zip``, country."""
    lines = [data[k] for k in ("address_line_1", "address_line_2") if data.get(k)]
    city_state_zip = [
        data[k] for k in ("address_city", "address_state", "address_postal_code") if data.get(k)
    ]
    if city_state_zip:
        lines.append(", ".join(city_state_zip))
    if data.get("address_country_code"):
        lines.append(data["address_country_code"])
    return "\n".join(lines)


def mask_sensitive_data(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of *data* with identifiers reduced to their last four characters."""
    masked = dict(data)
    for field in SENSITIVE_FIELDS:
        if masked.get(field):
            value = str(masked[field])
            masked[field] = f"***{value[-4:]}" if len(value) > 4 else "****"
    return masked


def extract_kyc_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "name_first": data.get("name_first"),
        "name_last": data.get("name_last"),
        "birth_date": data.get("birth_date"),
        "ssn": data.get("ssn") or data.get("document_ssn"),
        "address_line_1": data.get("address_line_1"),
        "address_city": data.get("address_city"),
        "address_state": data.get("address_state"),
        "address_postal_code": data.get("address_postal_code"),
        "address_country_code": data.get("address_country_code") or "US",
    }


def extract_kyb_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "business_name": data.get("business_name"),
        "business_ein": data.get("business_ein"),
        "business_address_line_1": data.get("business_address_line_1"),
        "business_address_city": data.get("business_address_city"),
        "business_address_state": data.get("business_address_state"),
        "business_address_postal_code": data.get("business_address_postal_code"),
        "business_address_country_code": data.get("business_address_country_code") or "US",
        "formation_date": data.get("formation_date"),
        "formation_state": data.get("formation_state"),
    }


def validate_entity_data(
    data: dict[str, Any],
    entity_type: EntityType,
) -> tuple[bool, list[str]]:
    errors: list[str] = []
    if entity_type == EntityType.INDIVIDUAL:
        if not data.get("name_first"):
            errors.append("First name is required")
        if not data.get("name_last"):
            errors.append("Last name is required")
    elif entity_type == EntityType.BUSINESS:
        if not data.get("business_name"):
            errors.append("Business name is required")
    return (not errors, errors)


def merge_entity_data(existing: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Overlay *update* on *existing*, ignoring None and empty-string values."""
    merged = dict(existing)
    for key, value in update.items():
        if value is not None and value != "":
            merged[key] = value
    return merged


def calculate_age(birth_date: str, today: date | None = None) -> int | None:
    parsed = parse_date(birth_date)
    if parsed is None:
        return None
    born = parsed.date()
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def is_legal_age(birth_date: str, minimum_age: int = 18) -> bool:
    age = calculate_age(birth_date)
    return age is not None and age >= minimum_age


def generate_external_id(data: dict[str, Any], prefix: str = "EXT") -> str:
    """Deterministic external ID from the entity payload."""
    key = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    return f"{prefix}_{digest}"
