"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from alloy_connector.actions.dispatcher import ActionDispatcher
from alloy_connector.webhooks.trigger import AlloyWebhookTrigger


def get_dispatcher(request: Request) -> ActionDispatcher:
    """Return the action dispatcher built by the app lifespan."""
    return request.app.state.dispatcher


def get_webhook_trigger(request: Request) -> AlloyWebhookTrigger:
    return request.app.state.webhook_trigger


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


# Type aliases for dependency injection
Dispatcher = Annotated[ActionDispatcher, Depends(get_dispatcher)]
WebhookTrigger = Annotated[AlloyWebhookTrigger, Depends(get_webhook_trigger)]
TraceId = Annotated[str, Depends(get_trace_id)]
