"""Custom exception classes for the Alloy connector."""


class AlloyError(Exception):
    """Base exception for the Alloy connector."""

    def __init__(self, code: str, message: str, details=None, status_code: int | None = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AlloyError):
    """Malformed webhook body or invalid request parameters."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class UnknownOperationError(AlloyError):
    """No registered handler for the requested resource/operation pair."""

    def __init__(self, resource: str, operation: str | None = None):
        if operation is None:
            message = f"Unknown resource: {resource}"
        else:
            message = f"Unknown {resource} operation: {operation}"
        super().__init__("UNKNOWN_OPERATION", message, status_code=404)


class WebhookSecretUnavailableError(AlloyError):
    """The webhook secret could not be loaded while verification is enabled."""

    def __init__(self, message: str = "Webhook secret unavailable"):
        super().__init__("WEBHOOK_SECRET_UNAVAILABLE", message, status_code=400)


# ---------------------------------------------------------------------------
# Outbound call failures
# ---------------------------------------------------------------------------


class ApiError(AlloyError):
    """Non-2xx response from the Alloy API."""

    def __init__(self, code: str, message: str, status_code: int, details=None):
        super().__init__(code, message, details, status_code=status_code)

    def __str__(self) -> str:
        return f"Alloy API Error [{self.code}]: {self.message}"

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class RateLimitError(ApiError):
    """HTTP 429: the only retryable error class."""


class ApiAuthenticationError(ApiError):
    """The Alloy API rejected the configured credentials (401/403)."""


class RequestTimeoutError(AlloyError):
    """The request deadline was exceeded before Alloy responded."""

    def __init__(self, message: str = "Request timeout - Alloy API did not respond in time"):
        super().__init__("TIMEOUT", message, status_code=None)


class TransportError(AlloyError):
    """Connection-level failure talking to the Alloy API."""

    def __init__(self, message: str):
        super().__init__("CONNECTION_ERROR", message, status_code=None)


class OperationCancelledError(AlloyError):
    """A long-running call was cancelled through its cancellation token."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__("CANCELLED", message, status_code=None)
