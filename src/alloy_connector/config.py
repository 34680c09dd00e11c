"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings

from alloy_connector.models.enums import AlloyEnvironment
from alloy_connector.transport.client import resolve_base_url
from alloy_connector.transport.retry import RetryPolicy


class Settings(BaseSettings):
    # Alloy credentials
    environment: AlloyEnvironment = AlloyEnvironment.SANDBOX
    custom_endpoint: str = ""
    api_key: str = ""
    api_secret: str = ""
    workflow_token: str | None = None

    # Webhook trigger
    webhook_secret: str = ""
    verify_signature: bool = True
    webhook_events: list[str] = []
    include_raw_payload: bool = False

    # Outbound HTTP
    request_timeout_seconds: float = 30.0
    max_retries: int = 3
    retry_initial_delay_ms: int = 1000
    retry_backoff_multiplier: float = 2.0
    retry_mutations: bool = False
    max_pages: int = 1000

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ALLOY_",
    }

    @property
    def base_url(self) -> str:
        """Resolve the API base URL for the selected environment."""
        return resolve_base_url(self.environment, self.custom_endpoint)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay_ms=self.retry_initial_delay_ms,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


settings = Settings()
