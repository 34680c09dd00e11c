"""Tests for the Alloy HTTP client (outbound calls mocked with respx)."""

import asyncio
import base64
import json

import httpx
import pytest
from httpx import Response

from alloy_connector.errors.exceptions import (
    ApiAuthenticationError,
    ApiError,
    OperationCancelledError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from alloy_connector.transport.client import AlloyClient, resolve_base_url


# ---------------------------------------------------------------------------
# Base URL resolution
# ---------------------------------------------------------------------------


class TestResolveBaseUrl:
    def test_named_environments(self):
        assert resolve_base_url("production") == "https://api.alloy.com"
        assert resolve_base_url("sandbox") == "https://sandbox.alloy.com"

    def test_custom_endpoint(self):
        assert resolve_base_url("custom", "https://alloy.internal/") == "https://alloy.internal"

    def test_custom_without_endpoint_raises(self):
        with pytest.raises(ValidationError):
            resolve_base_url("custom", "")

    def test_unknown_falls_back_to_sandbox(self):
        assert resolve_base_url("staging") == "https://sandbox.alloy.com"


# ---------------------------------------------------------------------------
# request()
# ---------------------------------------------------------------------------


class TestRequest:
    @pytest.mark.asyncio
    async def test_basic_auth_and_headers(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/entities/ent_1").mock(
            return_value=Response(200, json={"entity_token": "ent_1"})
        )
        result = await alloy_client.get("/v1/entities/ent_1")

        assert result == {"entity_token": "ent_1"}
        request = route.calls.last.request
        expected = base64.b64encode(b"test_api_key:test_api_secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.headers["Content-Type"] == "application/json"
        assert request.headers["Accept"] == "application/json"
        assert request.headers["User-Agent"].startswith("alloy-connector/")

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self, alloy_client, alloy_api):
        route = alloy_api.post("/v1/entities").mock(return_value=Response(201, json={"ok": True}))
        await alloy_client.post("/v1/entities", {"name_first": "Ada"})
        assert json.loads(route.calls.last.request.content) == {"name_first": "Ada"}

    @pytest.mark.asyncio
    async def test_none_query_params_dropped(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/entities").mock(return_value=Response(200, json={}))
        await alloy_client.get("/v1/entities", {"q": "ada", "fields": None})
        assert dict(route.calls.last.request.url.params) == {"q": "ada"}

    @pytest.mark.asyncio
    async def test_empty_body_returns_empty_dict(self, alloy_client, alloy_api):
        alloy_api.delete("/v1/entities/ent_1").mock(return_value=Response(204))
        assert await alloy_client.delete("/v1/entities/ent_1") == {}

    @pytest.mark.asyncio
    async def test_non_json_body_returns_text(self, alloy_client, alloy_api):
        alloy_api.get("/v1/reports/r1/download").mock(return_value=Response(200, text="a,b\n1,2"))
        assert await alloy_client.get("/v1/reports/r1/download") == "a,b\n1,2"


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_error_code_and_message_from_body(self, alloy_client, alloy_api):
        alloy_api.get("/v1/entities/bad").mock(
            return_value=Response(
                404, json={"error": {"code": "NOT_FOUND", "message": "Entity not found"}}
            )
        )
        with pytest.raises(ApiError) as exc_info:
            await alloy_client.get("/v1/entities/bad")
        err = exc_info.value
        assert err.code == "NOT_FOUND"
        assert err.message == "Entity not found"
        assert err.status_code == 404
        assert err.details["error"]["code"] == "NOT_FOUND"
        assert str(err) == "Alloy API Error [NOT_FOUND]: Entity not found"

    @pytest.mark.asyncio
    async def test_synthesized_code_and_top_level_message(self, alloy_client, alloy_api):
        alloy_api.get("/v1/status").mock(return_value=Response(500, json={"message": "down"}))
        with pytest.raises(ApiError) as exc_info:
            await alloy_client.get("/v1/status")
        assert exc_info.value.code == "HTTP_500"
        assert exc_info.value.message == "down"

    @pytest.mark.asyncio
    async def test_unknown_error_message(self, alloy_client, alloy_api):
        alloy_api.get("/v1/status").mock(return_value=Response(502, text=""))
        with pytest.raises(ApiError) as exc_info:
            await alloy_client.get("/v1/status")
        assert exc_info.value.message == "Unknown error"
        assert exc_info.value.details is None

    @pytest.mark.asyncio
    async def test_429_is_rate_limit_error(self, alloy_client, alloy_api):
        alloy_api.get("/v1/status").mock(return_value=Response(429, json={}))
        with pytest.raises(RateLimitError) as exc_info:
            await alloy_client.get("/v1/status")
        assert exc_info.value.is_rate_limited

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failures(self, alloy_client, alloy_api, status):
        alloy_api.get("/v1/status").mock(return_value=Response(status, json={}))
        with pytest.raises(ApiAuthenticationError):
            await alloy_client.get("/v1/status")

    @pytest.mark.asyncio
    async def test_timeout(self, alloy_client, alloy_api):
        alloy_api.get("/v1/status").mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(RequestTimeoutError) as exc_info:
            await alloy_client.get("/v1/status")
        assert exc_info.value.code == "TIMEOUT"
        assert "did not respond in time" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error_is_chained(self, alloy_client, alloy_api):
        alloy_api.get("/v1/status").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(TransportError) as exc_info:
            await alloy_client.get("/v1/status")
        assert exc_info.value.code == "CONNECTION_ERROR"
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


class TestPagination:
    @pytest.mark.asyncio
    async def test_get_paginated_defaults(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/entities").mock(
            return_value=Response(200, json={"data": [{"id": 1}], "total": 1})
        )
        result = await alloy_client.get_paginated("/v1/entities", filters={"status": "active"})

        params = dict(route.calls.last.request.url.params)
        assert params == {"page": "1", "limit": "25", "status": "active"}
        assert result.data == [{"id": 1}]
        assert result.pagination.page == 1
        assert result.pagination.limit == 25
        assert result.pagination.total == 1
        assert result.pagination.has_more is False

    @pytest.mark.asyncio
    async def test_fetch_all_pages_in_order(self, alloy_client, alloy_api):
        pages = {
            "1": {"data": [{"n": i} for i in range(0, 100)], "has_more": True},
            "2": {"data": [{"n": i} for i in range(100, 200)], "has_more": True},
            "3": {"data": [{"n": i} for i in range(200, 300)], "has_more": False},
        }

        def respond(request):
            return Response(200, json=pages[request.url.params["page"]])

        route = alloy_api.get("/v1/evaluations").mock(side_effect=respond)
        records = await alloy_client.fetch_all_pages("/v1/evaluations")

        assert len(records) == 300
        assert [r["n"] for r in records] == list(range(300))
        assert route.call_count == 3
        assert [c.request.url.params["page"] for c in route.calls] == ["1", "2", "3"]
        assert all(c.request.url.params["limit"] == "100" for c in route.calls)

    @pytest.mark.asyncio
    async def test_fetch_all_pages_retries_each_page(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/entities").mock(
            side_effect=[
                Response(429, json={}),
                Response(200, json={"data": [{"id": 1}], "has_more": True}),
                Response(429, json={}),
                Response(200, json={"data": [{"id": 2}], "has_more": False}),
            ]
        )
        records = await alloy_client.fetch_all_pages("/v1/entities")
        assert records == [{"id": 1}, {"id": 2}]
        assert [c.request.url.params["page"] for c in route.calls] == ["1", "1", "2", "2"]

    @pytest.mark.asyncio
    async def test_fetch_all_pages_gives_up_after_max_retries(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/entities").mock(return_value=Response(429, json={}))
        with pytest.raises(RateLimitError):
            await alloy_client.fetch_all_pages("/v1/entities")
        # max_retries=2 in the test settings
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_get_paginated_rejects_bad_window(self, alloy_client, alloy_api):
        with pytest.raises(ValidationError) as exc_info:
            await alloy_client.get_paginated("/v1/entities", {"page": 0, "limit": 10})
        assert exc_info.value.details == {"fields": ["page"]}

    @pytest.mark.asyncio
    async def test_fetch_all_pages_stops_at_cap(self, alloy_client, alloy_api):
        route = alloy_api.get("/v1/cases").mock(
            return_value=Response(200, json={"data": [{"id": "c"}], "has_more": True})
        )
        records = await alloy_client.fetch_all_pages("/v1/cases", max_pages=2)
        assert len(records) == 2
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_fetch_all_pages_cancellation(self, alloy_client, alloy_api):
        cancel = asyncio.Event()

        def respond(request):
            cancel.set()
            return Response(200, json={"data": [{"id": 1}], "has_more": True})

        route = alloy_api.get("/v1/entities").mock(side_effect=respond)
        with pytest.raises(OperationCancelledError):
            await alloy_client.fetch_all_pages("/v1/entities", cancel_event=cancel)
        assert route.call_count == 1


# ---------------------------------------------------------------------------
# Documents and connection test
# ---------------------------------------------------------------------------


class TestDocuments:
    @pytest.mark.asyncio
    async def test_upload_document_multipart(self, alloy_client, alloy_api):
        route = alloy_api.post("/v1/documents").mock(
            return_value=Response(201, json={"document_token": "doc_1"})
        )
        result = await alloy_client.upload_document(
            "ent_1", "passport", b"\x89PNG fake", filename="id.png", mime_type="image/png",
            side="front", metadata={"source": "test"},
        )

        assert result == {"document_token": "doc_1"}
        request = route.calls.last.request
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="entity_token"' in body
        assert b'name="document_type"' in body
        assert b'name="side"' in body
        assert b'filename="id.png"' in body
        assert b'{"source": "test"}' in body

    @pytest.mark.asyncio
    async def test_upload_rejects_bad_mime_type(self, alloy_client, alloy_api):
        with pytest.raises(ValidationError, match="Invalid document type"):
            await alloy_client.upload_document("ent_1", "passport", b"x", mime_type="text/plain")

    @pytest.mark.asyncio
    async def test_upload_rejects_oversized_file(self, alloy_client, alloy_api):
        content = b"x" * (10 * 1024 * 1024 + 1)
        with pytest.raises(ValidationError, match="exceeds maximum of 10MB"):
            await alloy_client.upload_document("ent_1", "passport", content, mime_type="image/png")

    @pytest.mark.asyncio
    async def test_download_document_image(self, alloy_client, alloy_api):
        alloy_api.get("/v1/documents/doc_1/image").mock(
            return_value=Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"})
        )
        image = await alloy_client.download_document_image("doc_1")
        assert image.mime_type == "image/jpeg"
        assert base64.b64decode(image.data_base64) == b"\xff\xd8jpeg"


class TestConnection:
    @pytest.mark.asyncio
    async def test_connection_ok(self, alloy_client, alloy_api):
        alloy_api.get("/v1/parameters").mock(return_value=Response(200, json={}))
        assert await alloy_client.test_connection() is True

    @pytest.mark.asyncio
    async def test_connection_rejected(self, alloy_client, alloy_api):
        alloy_api.get("/v1/parameters").mock(return_value=Response(401, json={}))
        assert await alloy_client.test_connection() is False

    @pytest.mark.asyncio
    async def test_async_context_manager_closes(self):
        async with AlloyClient("https://sandbox.alloy.com", "k", "s") as client:
            assert client.base_url == "https://sandbox.alloy.com"
        assert client._http.is_closed
