"""Shared test fixtures."""

import pytest
import respx
from httpx import ASGITransport, AsyncClient

from alloy_connector.config import Settings
from alloy_connector.transport.client import AlloyClient

SANDBOX_URL = "https://sandbox.alloy.com"
WEBHOOK_SECRET = "test-webhook-secret-12345678901234567890"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with credentials, a webhook secret and instant retries."""
    return Settings(
        _env_file=None,
        environment="sandbox",
        api_key="test_api_key",
        api_secret="test_api_secret",
        webhook_secret=WEBHOOK_SECRET,
        workflow_token="wf_default_token",
        max_retries=2,
        retry_initial_delay_ms=0,
    )


@pytest.fixture
async def alloy_client(test_settings):
    """AlloyClient pointed at the sandbox URL (mock it with ``alloy_api``)."""
    client = AlloyClient.from_settings(test_settings)
    yield client
    await client.aclose()


@pytest.fixture
def alloy_api():
    """respx router intercepting every outbound call to the sandbox."""
    with respx.mock(base_url=SANDBOX_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def app(test_settings, alloy_client):
    """Create a test application instance wired to the test client."""
    from alloy_connector.main import create_app, init_state

    _app = create_app(test_settings)
    # ASGITransport does not run the lifespan, so build state directly
    init_state(_app, alloy_client)
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
