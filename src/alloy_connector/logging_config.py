"""structlog setup for the Alloy connector.

Standard-library loggers (``logging.getLogger(__name__)``) and structlog loggers
share one pipeline, rendered as JSON lines in deployments and as a colored
console in local dev (``ALLOY_LOCAL=1``).
"""

import logging
import sys

import structlog
from structlog.types import EventDict, WrappedLogger

from alloy_connector.utils.entity import mask_sensitive_data

# Never rendered, whatever the log level.
SECRET_KEYS = frozenset({
    "api_key",
    "api_secret",
    "webhook_secret",
    "authorization",
    "signature",
})

# Loggers that echo request lines (including query strings) at INFO.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def redact_sensitive(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drop credentials and mask KYC identifiers bound into the event."""
    for key in SECRET_KEYS & event_dict.keys():
        event_dict[key] = "[redacted]"
    return mask_sensitive_data(event_dict)


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route all logging through structlog.

    Args:
        log_level: Logging level name (debug/info/warning/error).
        json_output: JSON lines when True, console output when False.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(
    trace_id: str,
    resource: str | None = None,
    operation: str | None = None,
) -> None:
    """Bind the trace id (and the action being run, if any) to this request."""
    ctx = {"trace_id": trace_id}
    if resource:
        ctx["resource"] = resource
    if operation:
        ctx["operation"] = operation
    structlog.contextvars.bind_contextvars(**ctx)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
