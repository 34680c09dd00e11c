"""Webhook trigger: verify, filter and hand Alloy events to the host sink."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from alloy_connector.errors.exceptions import WebhookSecretUnavailableError
from alloy_connector.models.webhook import TriggerResponse
from alloy_connector.webhooks.handler import (
    filter_by_event_type,
    to_execution_item,
    validate_webhook,
)

if TYPE_CHECKING:
    from alloy_connector.config import Settings

logger = logging.getLogger(__name__)

Sink = Callable[[list[dict[str, Any]]], Awaitable[None]]
SecretProvider = Callable[[], Awaitable[str | None]]

NOT_IN_FILTER = "Event type not in filter"


class AlloyWebhookTrigger:
    """Turns one inbound HTTP delivery into a :class:`TriggerResponse`.

    *secret_provider* overrides the secret from settings, e.g. to fetch it from
    a vault. If it fails while verification is enabled the delivery is rejected.
    """

    def __init__(
        self,
        settings: Settings,
        sink: Sink,
        secret_provider: SecretProvider | None = None,
    ) -> None:
        self.settings = settings
        self.sink = sink
        self.secret_provider = secret_provider

    async def _resolve_secret(self) -> str | None:
        if not self.settings.verify_signature:
            return None
        if self.secret_provider is None:
            return self.settings.webhook_secret or None
        try:
            return await self.secret_provider() or None
        except Exception as exc:
            logger.error("Webhook secret lookup failed: %s", type(exc).__name__)
            raise WebhookSecretUnavailableError() from exc

    async def handle(self, raw_body: bytes, headers: Mapping[str, Any]) -> TriggerResponse:
        try:
            secret = await self._resolve_secret()
        except WebhookSecretUnavailableError as exc:
            return TriggerResponse(status_code=400, body={"error": exc.message})

        if secret is None and self.settings.verify_signature:
            logger.warning("Webhook secret not configured, skipping signature verification")

        result = validate_webhook(raw_body, headers, secret)
        if not result.is_valid:
            logger.info("Rejected Alloy webhook: %s", result.error)
            return TriggerResponse(status_code=400, body={"error": result.error})

        payload = result.payload
        structlog.contextvars.bind_contextvars(
            event_id=payload.event_id, event_type=payload.event_type
        )

        if not filter_by_event_type(payload, self.settings.webhook_events):
            logger.info("Ignoring Alloy webhook %s: not in event filter", payload.event_type)
            return TriggerResponse(
                body={"received": True, "processed": False, "reason": NOT_IN_FILTER}
            )

        items = [
            to_execution_item(payload, self.settings.include_raw_payload, result.raw)
        ]
        await self.sink(items)
        logger.info("Processed Alloy webhook %s", payload.event_type)
        return TriggerResponse(body={"received": True, "processed": True}, items=items)


async def logging_sink(items: list[dict[str, Any]]) -> None:
    """Default sink when no workflow engine is attached: record the hand-off."""
    for item in items:
        logger.info(
            "Alloy event %s (%s) ready for processing",
            item.get("eventId"), item.get("eventType"),
        )
