"""FastAPI exception handlers producing a uniform ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from alloy_connector.errors.exceptions import AlloyError, RequestTimeoutError
from alloy_connector.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def response_status(exc: AlloyError) -> int:
    """HTTP status for *exc* on this service's API.

    Upstream failures (no status, or a 5xx from Alloy) surface as gateway
    errors rather than as this service's own 500.
    """
    if isinstance(exc, RequestTimeoutError):
        return 504
    if exc.status_code is None or exc.status_code >= 500:
        return 502
    return exc.status_code


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(AlloyError)
    async def alloy_error_handler(request: Request, exc: AlloyError):
        trace_id = getattr(request.state, "trace_id", "unknown")
        status_code = response_status(exc)
        if status_code >= 500:
            logger.warning(
                "Upstream Alloy failure on %s %s: %s",
                request.method, request.url.path, exc.code,
            )
        error_response = ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message=exc.message,
                details=exc.details,
                trace_id=trace_id,
                timestamp=datetime.now(timezone.utc),
            ),
        )
        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(mode="json", exclude_none=True),
        )
