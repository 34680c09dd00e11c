"""Validation and interpretation of inbound Alloy webhook deliveries.

Nothing in this module raises on bad input: :func:`validate_webhook` reports
every rejection through :class:`WebhookValidationResult` so the caller can turn
it into a 400 response.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

import pydantic

from alloy_connector.models.enums import (
    BusinessEvent,
    DocumentEvent,
    EntityEvent,
    EvaluationEvent,
    IdentityEvent,
    ReviewEvent,
    RiskEvent,
    WatchlistEvent,
)
from alloy_connector.models.webhook import WebhookEnvelope, WebhookValidationResult
from alloy_connector.security.signature import (
    SIGNATURE_HEADER,
    SignatureContext,
    extract_signature_and_timestamp,
)

logger = logging.getLogger(__name__)

OUTCOME_EVENTS = frozenset({
    EvaluationEvent.APPROVED,
    EvaluationEvent.DENIED,
    EvaluationEvent.PENDING_REVIEW,
    EvaluationEvent.MANUAL_REVIEW_REQUIRED,
})

SUCCESS_EVENTS = frozenset({
    EvaluationEvent.APPROVED,
    IdentityEvent.VERIFIED,
    BusinessEvent.VERIFIED,
    DocumentEvent.VERIFIED,
})

FAILURE_EVENTS = frozenset({
    EvaluationEvent.DENIED,
    IdentityEvent.FAILED,
    BusinessEvent.FAILED,
    DocumentEvent.FAILED,
})

REVIEW_EVENTS = frozenset({
    EvaluationEvent.PENDING_REVIEW,
    EvaluationEvent.MANUAL_REVIEW_REQUIRED,
    ReviewEvent.ASSIGNED,
})

RISK_EVENTS = frozenset({
    RiskEvent.SCORE_CHANGED,
    RiskEvent.HIGH_DETECTED,
    RiskEvent.ALERT,
    RiskEvent.THRESHOLD_EXCEEDED,
    EntityEvent.RISK_CHANGED,
})

WATCHLIST_EVENTS = frozenset({
    WatchlistEvent.NEW_HIT,
    WatchlistEvent.HIT_CONFIRMED,
    WatchlistEvent.HIT_DISMISSED,
    WatchlistEvent.MONITORING_ALERT,
    IdentityEvent.WATCHLIST_HIT,
})


def _reject(error: str) -> WebhookValidationResult:
    return WebhookValidationResult(is_valid=False, error=error)


def validate_webhook(
    raw_body: bytes,
    headers: Mapping[str, Any],
    secret: str | None = None,
) -> WebhookValidationResult:
    """Verify and parse one delivery.

    The signature is checked against the exact bytes received, before any JSON
    parsing. Without a *secret* the signature check is skipped.
    """
    if secret:
        found = extract_signature_and_timestamp(headers)
        if not found.signature:
            return _reject(f"Missing webhook signature header: {SIGNATURE_HEADER}")
        context = SignatureContext(
            raw_body=raw_body,
            signature_header=found.signature,
            secret=secret,
            timestamp_header=found.timestamp,
        )
        if not context.verify():
            return _reject("Invalid webhook signature")

    try:
        raw = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _reject("Invalid JSON payload")
    if not isinstance(raw, dict):
        return _reject("Webhook payload must be a JSON object")

    if not raw.get("event_type"):
        return _reject("Missing event_type in webhook payload")

    try:
        data = raw.get("data")
        payload = WebhookEnvelope.model_validate({**raw, "data": {} if data is None else data})
    except pydantic.ValidationError as exc:
        logger.info("Rejected malformed webhook payload: %d field error(s)", exc.error_count())
        return _reject("Malformed webhook payload")

    return WebhookValidationResult(is_valid=True, payload=payload, raw=raw)


def filter_by_event_type(payload: WebhookEnvelope, allowed: Iterable[str]) -> bool:
    """An empty allowlist accepts every event."""
    allowed = list(allowed)
    return not allowed or payload.event_type in allowed


def to_execution_item(
    payload: WebhookEnvelope,
    include_raw: bool = False,
    raw: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Flatten a delivery into the item handed to the workflow sink."""
    item: dict[str, Any] = {
        "eventType": payload.event_type,
        "eventId": payload.event_id,
        "timestamp": payload.timestamp,
        "entityToken": payload.entity_token,
        "evaluationToken": payload.evaluation_token,
        "applicationToken": payload.application_token,
        "data": payload.data,
    }
    if include_raw:
        item["rawPayload"] = raw if raw is not None else payload.model_dump()
    return item


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def _fields(payload: WebhookEnvelope) -> dict[str, Any]:
    """``data`` when it is an object, else an empty mapping."""
    return payload.data if isinstance(payload.data, dict) else {}


def _nested(payload: WebhookEnvelope, key: str) -> dict[str, Any]:
    value = _fields(payload).get(key)
    return value if isinstance(value, dict) else {}


def extract_entity(payload: WebhookEnvelope) -> dict[str, Any] | None:
    if not payload.entity_token:
        return None
    return {"entityToken": payload.entity_token, **_nested(payload, "entity")}


def extract_evaluation(payload: WebhookEnvelope) -> dict[str, Any] | None:
    if not payload.evaluation_token:
        return None
    return {"evaluationToken": payload.evaluation_token, **_nested(payload, "evaluation")}


def extract_application(payload: WebhookEnvelope) -> dict[str, Any] | None:
    if not payload.application_token:
        return None
    return {"applicationToken": payload.application_token, **_nested(payload, "application")}


def get_outcome(payload: WebhookEnvelope) -> str | None:
    """Outcome implied by the event type, else ``data.outcome``."""
    if payload.event_type in OUTCOME_EVENTS:
        return payload.event_type.split(".", 1)[1]
    return _fields(payload).get("outcome") or None


def is_successful_verification(payload: WebhookEnvelope) -> bool:
    return payload.event_type in SUCCESS_EVENTS


def is_failed_verification(payload: WebhookEnvelope) -> bool:
    return payload.event_type in FAILURE_EVENTS


def requires_manual_review(payload: WebhookEnvelope) -> bool:
    return payload.event_type in REVIEW_EVENTS


def get_risk_info(payload: WebhookEnvelope) -> dict[str, Any] | None:
    if payload.event_type not in RISK_EVENTS:
        return None
    data = _fields(payload)
    return {
        "eventType": payload.event_type,
        "riskScore": data.get("risk_score"),
        "riskLevel": data.get("risk_level"),
        "previousScore": data.get("previous_score"),
        "riskFactors": data.get("risk_factors"),
    }


def get_watchlist_hit(payload: WebhookEnvelope) -> dict[str, Any] | None:
    if payload.event_type not in WATCHLIST_EVENTS:
        return None
    data = _fields(payload)
    return {
        "eventType": payload.event_type,
        "hitId": data.get("hit_id"),
        "source": data.get("source"),
        "matchType": data.get("match_type"),
        "matchScore": data.get("match_score"),
        "listName": data.get("list_name"),
        "details": data.get("hit_details"),
    }
