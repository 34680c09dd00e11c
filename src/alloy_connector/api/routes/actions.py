"""Action invocation endpoints backed by the operation registry."""

from typing import Any

from fastapi import APIRouter, Body

from alloy_connector.actions.registry import describe_operations
from alloy_connector.dependencies import Dispatcher, TraceId
from alloy_connector.logging_config import bind_request_context
from alloy_connector.models.common import ActionResult

router = APIRouter(tags=["Actions"])


@router.get("/actions")
async def list_actions() -> dict:
    """List every registered ``(resource, operation)`` pair."""
    operations = describe_operations()
    return {"count": len(operations), "operations": operations}


@router.post("/actions/{resource}/{operation}", response_model=ActionResult)
async def invoke_action(
    resource: str,
    operation: str,
    dispatcher: Dispatcher,
    trace_id: TraceId,
    params: dict[str, Any] | None = Body(default=None),
) -> ActionResult:
    """Run one Alloy operation; the JSON body carries its parameters."""
    bind_request_context(trace_id, resource=resource, operation=operation)
    items = await dispatcher.execute(resource, operation, params)
    return ActionResult(resource=resource, operation=operation, items=items)
