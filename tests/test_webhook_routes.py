"""Tests for the webhook trigger and its HTTP endpoint."""

import json

import pytest

from alloy_connector.security.signature import generate_signature
from alloy_connector.webhooks.trigger import AlloyWebhookTrigger

WEBHOOK_SECRET = "test-webhook-secret-12345678901234567890"

WEBHOOK_URL = "/api/v1/webhooks/alloy"


class _Sink:
    def __init__(self):
        self.batches: list[list[dict]] = []

    async def __call__(self, items):
        self.batches.append(items)


def _delivery(event_type: str = "evaluation.approved", **fields) -> bytes:
    return json.dumps({
        "event_type": event_type,
        "event_id": "evt_123",
        "timestamp": "2024-05-01T12:00:00Z",
        "entity_token": "ent_1",
        "data": {"outcome": "approved"},
        **fields,
    }).encode()


def _headers(body: bytes, secret: str = WEBHOOK_SECRET) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Alloy-Signature": generate_signature(body, secret),
    }


@pytest.fixture
def sink(app, test_settings):
    recorder = _Sink()
    app.state.webhook_trigger = AlloyWebhookTrigger(test_settings, recorder)
    return recorder


# ---------------------------------------------------------------------------
# HTTP endpoint
# ---------------------------------------------------------------------------


class TestWebhookEndpoint:
    @pytest.mark.asyncio
    async def test_signed_delivery_is_processed(self, client, sink):
        body = _delivery()
        response = await client.post(WEBHOOK_URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert response.json() == {"received": True, "processed": True}
        assert len(sink.batches) == 1
        item = sink.batches[0][0]
        assert item["eventType"] == "evaluation.approved"
        assert item["eventId"] == "evt_123"
        assert item["entityToken"] == "ent_1"
        assert "rawPayload" not in item

    @pytest.mark.asyncio
    async def test_epoch_timestamp_and_scalar_data_are_processed(self, client, sink):
        body = _delivery(event_id=987, timestamp=1700000000, data="see attachment")
        response = await client.post(WEBHOOK_URL, content=body, headers=_headers(body))

        assert response.status_code == 200
        assert response.json() == {"received": True, "processed": True}
        item = sink.batches[0][0]
        assert item["eventId"] == "987"
        assert item["timestamp"] == "1700000000"
        assert item["data"] == "see attachment"

    @pytest.mark.asyncio
    async def test_missing_signature_is_rejected(self, client, sink):
        response = await client.post(
            WEBHOOK_URL, content=_delivery(), headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert "x-alloy-signature" in response.json()["error"]
        assert sink.batches == []

    @pytest.mark.asyncio
    async def test_wrong_secret_is_rejected(self, client, sink):
        body = _delivery()
        response = await client.post(
            WEBHOOK_URL, content=body, headers=_headers(body, "another-secret")
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid webhook signature"}

    @pytest.mark.asyncio
    async def test_signed_invalid_json_is_rejected(self, client, sink):
        body = b"{oops"
        response = await client.post(WEBHOOK_URL, content=body, headers=_headers(body))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload"}


# ---------------------------------------------------------------------------
# Trigger behaviour
# ---------------------------------------------------------------------------


class TestWebhookTrigger:
    @pytest.mark.asyncio
    async def test_event_filter_miss(self, test_settings):
        sink = _Sink()
        settings = test_settings.model_copy(update={"webhook_events": ["entity.created"]})
        trigger = AlloyWebhookTrigger(settings, sink)
        body = _delivery()

        result = await trigger.handle(body, _headers(body))

        assert result.status_code == 200
        assert result.body == {
            "received": True,
            "processed": False,
            "reason": "Event type not in filter",
        }
        assert sink.batches == []

    @pytest.mark.asyncio
    async def test_include_raw_payload(self, test_settings):
        sink = _Sink()
        settings = test_settings.model_copy(update={"include_raw_payload": True})
        trigger = AlloyWebhookTrigger(settings, sink)
        body = _delivery(custom_field="kept")

        result = await trigger.handle(body, _headers(body))

        assert result.items[0]["rawPayload"]["custom_field"] == "kept"

    @pytest.mark.asyncio
    async def test_verification_disabled_accepts_unsigned(self, test_settings):
        sink = _Sink()
        settings = test_settings.model_copy(update={"verify_signature": False})
        trigger = AlloyWebhookTrigger(settings, sink)

        result = await trigger.handle(_delivery(), {})

        assert result.status_code == 200
        assert result.body["processed"] is True

    @pytest.mark.asyncio
    async def test_secret_provider_is_used(self, test_settings):
        sink = _Sink()

        async def provider():
            return "vault-secret-abcdefghijklmnopqrstuvwxyz"

        trigger = AlloyWebhookTrigger(test_settings, sink, secret_provider=provider)
        body = _delivery()

        rejected = await trigger.handle(body, _headers(body))
        accepted = await trigger.handle(
            body, _headers(body, "vault-secret-abcdefghijklmnopqrstuvwxyz")
        )

        assert rejected.status_code == 400
        assert accepted.status_code == 200

    @pytest.mark.asyncio
    async def test_secret_provider_failure_rejects(self, test_settings):
        sink = _Sink()

        async def provider():
            raise RuntimeError("vault down")

        trigger = AlloyWebhookTrigger(test_settings, sink, secret_provider=provider)
        body = _delivery()

        result = await trigger.handle(body, _headers(body))

        assert result.status_code == 400
        assert result.body == {"error": "Webhook secret unavailable"}
        assert sink.batches == []
