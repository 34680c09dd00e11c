"""FastAPI application factory and lifespan management."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from alloy_connector.config import Settings, settings
from alloy_connector.logging_config import configure_logging

# Configure logging at import time
_json_logs = os.environ.get("ALLOY_LOCAL", "0") != "1"
configure_logging(log_level=settings.log_level, json_output=_json_logs)

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, client) -> None:
    """Attach the dispatcher and webhook trigger built around *client*."""
    from alloy_connector.actions.dispatcher import ActionDispatcher
    from alloy_connector.webhooks.trigger import AlloyWebhookTrigger, logging_sink

    app_settings: Settings = app.state.settings
    app.state.alloy_client = client
    app.state.dispatcher = ActionDispatcher(
        client,
        default_workflow_token=app_settings.workflow_token,
        retry_mutations=app_settings.retry_mutations,
    )
    app.state.webhook_trigger = AlloyWebhookTrigger(app_settings, logging_sink)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    from alloy_connector.transport.client import AlloyClient

    app_settings: Settings = app.state.settings
    client = AlloyClient.from_settings(app_settings)
    init_state(app, client)

    if not app_settings.has_credentials:
        logger.warning("Alloy API credentials are not configured; actions will fail")
    logger.info(
        "Alloy connector started (environment=%s, base_url=%s)",
        app_settings.environment.value, client.base_url,
    )
    yield

    # Shutdown
    await client.aclose()
    logger.info("Alloy connector shutdown complete")


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Alloy Connector API",
        version="1.0.0",
        description="Alloy KYC/KYB actions and signed webhook trigger.",
        lifespan=lifespan,
    )
    app.state.settings = app_settings or settings

    # Add middleware (order matters: last added = first executed)
    from alloy_connector.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from alloy_connector.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Import and mount routers
    from alloy_connector.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
