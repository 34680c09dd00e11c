"""Pydantic models for inbound Alloy webhook deliveries."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WebhookEnvelope(BaseModel):
    """A webhook delivery as sent by Alloy.

    Immutable once parsed. Fields Alloy adds beyond the documented set are kept
    so ``include_raw_payload`` can still surface them. Numeric ids and epoch
    timestamps are accepted as strings. ``data`` is passed through as sent and
    is usually, but not always, an object.
    """

    model_config = ConfigDict(extra="allow", frozen=True, coerce_numbers_to_str=True)

    event_type: str = ""
    event_id: str = ""
    timestamp: str = ""
    data: Any = Field(default_factory=dict)
    entity_token: str | None = None
    evaluation_token: str | None = None
    application_token: str | None = None


class WebhookValidationResult(BaseModel):
    """Outcome of validating one delivery. Never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error: str | None = None
    payload: WebhookEnvelope | None = None
    raw: dict[str, Any] | None = None


class TriggerResponse(BaseModel):
    """HTTP response the trigger returns to Alloy, plus the items handed off."""

    status_code: int = 200
    body: dict[str, Any]
    items: list[dict[str, Any]] | None = None
