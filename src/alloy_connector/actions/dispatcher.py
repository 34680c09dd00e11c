"""Execute registered operations against the Alloy API."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any

from alloy_connector.actions.registry import OperationSpec, get_operation
from alloy_connector.errors.exceptions import ValidationError
from alloy_connector.models.enums import ResultShape
from alloy_connector.transport.client import AlloyClient
from alloy_connector.transport.pagination import (
    DEFAULT_LIMIT,
    collection_keys_for,
    unwrap_collection,
)
from alloy_connector.transport.retry import with_retry
from alloy_connector.utils.validation import validate_required_fields

logger = logging.getLogger(__name__)


def as_item(value: Any) -> dict[str, Any]:
    """Wrap non-object results so every output item is a JSON object."""
    return value if isinstance(value, dict) else {"data": value}


class ActionDispatcher:
    """Resolve ``(resource, operation)`` and run it through the shared client."""

    def __init__(
        self,
        client: AlloyClient,
        *,
        default_workflow_token: str | None = None,
        retry_mutations: bool = False,
    ) -> None:
        self.client = client
        self.default_workflow_token = default_workflow_token
        self.retry_mutations = retry_mutations

    async def execute(
        self,
        resource: str,
        operation: str,
        params: dict[str, Any] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        """Run one operation and return its output items."""
        spec = get_operation(resource, operation)
        params = dict(params or {})

        if spec.uses_default_workflow and not params.get("workflow_token"):
            if self.default_workflow_token:
                params["workflow_token"] = self.default_workflow_token

        valid, missing = validate_required_fields(params, list(spec.required_params))
        if not valid:
            raise ValidationError(
                f"Missing required parameter(s) for {resource}.{operation}: {', '.join(missing)}",
                details={"missing": missing},
            )

        logger.info("Dispatching %s.%s (%s %s)", resource, operation, spec.method.upper(), spec.path)

        if spec.handler is not None:
            return await getattr(self, f"_{spec.handler}")(spec, params)

        if spec.shape == ResultShape.PAGINATED:
            return await self._list(spec, params, cancel_event)

        result = await self._call(spec, spec.render_path(params), params)
        return self._shape(spec, result, params, resource)

    async def _call(self, spec: OperationSpec, path: str, params: dict[str, Any]) -> Any:
        body = spec.build_body(params)
        query = spec.build_query(params)

        def attempt():
            return self.client.request(spec.method, path, body, query)

        if spec.idempotent or self.retry_mutations:
            return await with_retry(attempt, self.client.retry_policy)
        return await attempt()

    async def _list(
        self,
        spec: OperationSpec,
        params: dict[str, Any],
        cancel_event: asyncio.Event | None,
    ) -> list[dict[str, Any]]:
        path = spec.render_path(params)
        filters = params.get("filters") or None
        if filters is not None and not isinstance(filters, dict):
            raise ValidationError(
                "filters must be a JSON object of field/value pairs",
                details={"filters": type(filters).__name__},
            )
        if params.get("return_all"):
            records = await self.client.fetch_all_pages(path, filters, cancel_event=cancel_event)
        else:
            limit = params.get("limit") or DEFAULT_LIMIT
            page = await with_retry(
                lambda: self.client.get_paginated(path, {"limit": limit}, filters),
                self.client.retry_policy,
            )
            records = page.data
        return [as_item(record) for record in records]

    @staticmethod
    def _shape(
        spec: OperationSpec,
        result: Any,
        params: dict[str, Any],
        resource: str,
    ) -> list[dict[str, Any]]:
        if spec.shape == ResultShape.ACK:
            return [{"success": True, spec.ack_param: params[spec.ack_param]}]
        if spec.shape == ResultShape.COLLECTION:
            records = unwrap_collection(result, collection_keys_for(spec.collection or resource))
            if records is not None:
                return [as_item(record) for record in records]
        if spec.merge and isinstance(result, dict):
            return [{**spec.merge, **result}]
        return [as_item(result)]

    # ------------------------------------------------------------------
    # Operations backed by dedicated client methods
    # ------------------------------------------------------------------

    async def _upload(self, spec: OperationSpec, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            content = base64.b64decode(params["content_base64"], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("content_base64 is not valid base64") from exc
        result = await self.client.upload_document(
            params["entity_token"],
            params["document_type"],
            content,
            filename=params.get("filename") or "document",
            mime_type=params["mime_type"],
            side=params.get("side"),
            evaluation_token=params.get("evaluation_token"),
            metadata=params.get("metadata"),
        )
        return [as_item(result)]

    async def _download_image(
        self, spec: OperationSpec, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        image = await with_retry(
            lambda: self.client.download_document_image(params["document_token"]),
            self.client.retry_policy,
        )
        return [{"document_token": params["document_token"], **image.model_dump()}]
