"""Async HTTP client for the Alloy REST API.

All outbound calls go through :meth:`AlloyClient.request`, which applies Basic
auth (API key / API secret), a fixed timeout and uniform error mapping. Paging
and rate-limit retry are layered on top and are opt-in per call.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import pydantic
from pydantic import BaseModel

from alloy_connector.errors.exceptions import (
    ApiAuthenticationError,
    ApiError,
    AlloyError,
    OperationCancelledError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from alloy_connector.models.enums import AlloyEnvironment
from alloy_connector.models.pagination import PaginatedResult, PaginationParams
from alloy_connector.security.signature import hash_for_logging
from alloy_connector.transport.pagination import (
    FETCH_ALL_LIMIT,
    build_query,
    page_items,
    pagination_state,
)
from alloy_connector.transport.retry import RetryPolicy, with_retry
from alloy_connector.utils.validation import (
    MAX_DOCUMENT_MB,
    is_valid_document_type,
    is_valid_file_size,
)

if TYPE_CHECKING:
    from alloy_connector.config import Settings

logger = logging.getLogger(__name__)

ENVIRONMENT_URLS: dict[str, str] = {
    AlloyEnvironment.PRODUCTION: "https://api.alloy.com",
    AlloyEnvironment.SANDBOX: "https://sandbox.alloy.com",
}

USER_AGENT = "alloy-connector/1.0.0"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_PAGES = 1000

DOCUMENTS_PATH = "/v1/documents"
CONNECTION_TEST_PATH = "/v1/parameters"


def resolve_base_url(environment: str, custom_endpoint: str | None = None) -> str:
    """Map an environment name to its API base URL.

    Unknown names fall back to the sandbox.
    """
    if environment == AlloyEnvironment.CUSTOM:
        if not custom_endpoint:
            raise ValidationError("A custom endpoint URL is required for the custom environment")
        return custom_endpoint.rstrip("/")
    return ENVIRONMENT_URLS.get(environment, ENVIRONMENT_URLS[AlloyEnvironment.SANDBOX])


class DocumentImage(BaseModel):
    mime_type: str
    data_base64: str


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def error_from_response(response: httpx.Response) -> ApiError:
    """Build the ApiError for a >= 400 response.

    ``code`` comes from ``error.code`` or is synthesized as ``HTTP_<status>``;
    ``message`` from ``error.message``, then top-level ``message``.
    """
    status = response.status_code
    payload = _parse_body(response)

    code: Any = None
    message: Any = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            code = err.get("code")
            message = err.get("message")
        elif isinstance(err, str):
            message = err
        message = message or payload.get("message")

    if status == 429:
        error_cls: type[ApiError] = RateLimitError
    elif status in (401, 403):
        error_cls = ApiAuthenticationError
    else:
        error_cls = ApiError

    return error_cls(
        code=str(code) if code else f"HTTP_{status}",
        message=str(message) if message else "Unknown error",
        status_code=status,
        details=payload or None,
    )


class AlloyClient:
    """Authenticated Alloy API client sharing one connection pool."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_policy: RetryPolicy | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_pages = max_pages
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(api_key, api_secret),
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AlloyClient:
        return cls(
            settings.base_url,
            settings.api_key,
            settings.api_secret,
            timeout=settings.request_timeout_seconds,
            retry_policy=settings.retry_policy,
            max_pages=settings.max_pages,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> AlloyClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method.upper(), endpoint, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Alloy request timed out: %s %s", method.upper(), endpoint)
            raise RequestTimeoutError() from exc
        except httpx.HTTPError as exc:
            logger.warning("Alloy transport failure on %s %s: %s", method.upper(), endpoint, exc)
            raise TransportError(f"Could not reach Alloy API: {exc}") from exc

        if response.status_code >= 400:
            error = error_from_response(response)
            logger.info(
                "Alloy API returned %s for %s %s (%s)",
                response.status_code, method.upper(), endpoint, error.code,
            )
            raise error
        return response

    async def request(
        self,
        method: str,
        endpoint: str,
        body: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
    ) -> Any:
        """Issue one JSON request and return the parsed response body."""
        kwargs: dict[str, Any] = {"headers": {"Content-Type": "application/json"}}
        if body is not None:
            kwargs["json"] = body
        if query_params:
            kwargs["params"] = {k: v for k, v in query_params.items() if v is not None}
        response = await self._send(method, endpoint, **kwargs)
        return _parse_body(response)

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("get", endpoint, query_params=params)

    async def post(self, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        return await self.request("post", endpoint, body=body)

    async def put(self, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        return await self.request("put", endpoint, body=body)

    async def patch(self, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        return await self.request("patch", endpoint, body=body)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("delete", endpoint)

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    async def get_paginated(
        self,
        endpoint: str,
        pagination: PaginationParams | dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
    ) -> PaginatedResult:
        """Fetch a single page and derive its cursor."""
        if not isinstance(pagination, PaginationParams):
            try:
                pagination = PaginationParams(**(pagination or {}))
            except pydantic.ValidationError as exc:
                raise ValidationError(
                    "Invalid pagination parameters: page and limit must be positive integers",
                    details={
                        "fields": [str(err["loc"][0]) for err in exc.errors() if err["loc"]]
                    },
                ) from exc
        params = build_query(pagination, filters)
        body = await self.request("get", endpoint, query_params=params)
        return PaginatedResult(data=page_items(body), pagination=pagination_state(body, params))

    async def fetch_all_pages(
        self,
        endpoint: str,
        filters: dict[str, Any] | None = None,
        *,
        max_pages: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> list[Any]:
        """Walk pages 1, 2, 3, ... in order until ``has_more`` is false.

        Stops after *max_pages* pages even if the server keeps reporting more.
        Setting *cancel_event* aborts before the next page is requested. Each
        page fetch is retried on 429 under the client's retry policy.
        """
        cap = max_pages if max_pages is not None else self.max_pages
        results: list[Any] = []
        page = 1
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(f"Pagination of {endpoint} cancelled at page {page}")
            window = PaginationParams(page=page, limit=FETCH_ALL_LIMIT)
            result = await with_retry(
                lambda: self.get_paginated(endpoint, window, filters),
                self.retry_policy,
            )
            results.extend(result.data)
            if not result.pagination.has_more:
                break
            if page >= cap:
                logger.warning(
                    "Stopped paging %s after %d pages; server still reports has_more",
                    endpoint, page,
                )
                break
            page += 1
        return results

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    async def request_with_retry(
        self,
        method: str,
        endpoint: str,
        body: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
    ) -> Any:
        return await with_retry(
            lambda: self.request(method, endpoint, body, query_params),
            self.retry_policy,
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def upload_document(
        self,
        entity_token: str,
        document_type: str,
        content: bytes,
        *,
        filename: str = "document",
        mime_type: str,
        side: str | None = None,
        evaluation_token: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Any:
        """Upload a KYC document as multipart form data."""
        if not is_valid_document_type(mime_type):
            raise ValidationError(
                f"Invalid document type: {mime_type}. "
                "Supported types: jpeg, png, gif, webp, pdf, tiff"
            )
        if not is_valid_file_size(len(content)):
            size_mb = len(content) / 1024 / 1024
            raise ValidationError(
                f"File size {size_mb:.2f}MB exceeds maximum of {MAX_DOCUMENT_MB}MB"
            )

        form: dict[str, str] = {"entity_token": entity_token, "document_type": document_type}
        if side:
            form["side"] = side
        if evaluation_token:
            form["evaluation_token"] = evaluation_token
        if metadata:
            form["metadata"] = json.dumps(metadata)

        logger.info(
            "Uploading %s document (%d bytes) for entity %s",
            document_type, len(content), hash_for_logging(entity_token),
        )
        response = await self._send(
            "post",
            DOCUMENTS_PATH,
            data=form,
            files={"file": (filename, content, mime_type)},
        )
        return _parse_body(response)

    async def download_document_image(self, document_token: str) -> DocumentImage:
        response = await self._send(
            "get",
            f"{DOCUMENTS_PATH}/{quote(document_token, safe='')}/image",
            headers={"Accept": "*/*"},
        )
        return DocumentImage(
            mime_type=response.headers.get("content-type", "application/octet-stream"),
            data_base64=base64.b64encode(response.content).decode("ascii"),
        )

    async def test_connection(self) -> bool:
        """Verify credentials against the parameters endpoint."""
        try:
            await self.request("get", CONNECTION_TEST_PATH)
        except AlloyError as exc:
            logger.warning("Alloy connection test failed: %s", exc)
            return False
        logger.info("Alloy connection test succeeded for %s", self.base_url)
        return True
