"""
Test configuration and fixtures.
Settings are injected through FastAPI dependency overrides. Klaviyo is mocked.
"""
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from src.config import Settings, get_settings
from src.main import app
from src.signature import compute_signature

TEST_SECRET = "whsec_test_secret"
WEBHOOK_PATH = "/api/talkback-complete"


def make_settings(**overrides) -> Settings:
    """Build Settings without reading the environment's .env file."""
    values = {
        "klaviyo_api_key": "pk_test_123",
        "elevenlabs_secret": "",
        "suppress_upstream_retries": True,
        "log_level": "INFO",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_event(**overrides) -> dict:
    """A completed-conversation payload as ElevenLabs sends it."""
    event = {
        "type": "conversation_completed",
        "conversation_id": "conv_abc123",
        "agent_id": "agent_xyz",
        "metadata": {"customer_id": "01HXPROFILE"},
        "transcript": [
            {"role": "agent", "content": "Hi"},
            {"role": "user", "content": "Hello"},
        ],
        "duration_seconds": 142,
    }
    event.update(overrides)
    return event


def signed_headers(raw: bytes, secret: str = TEST_SECRET) -> dict:
    return {
        "Content-Type": "application/json",
        "x-elevenlabs-signature": compute_signature(raw, secret),
    }


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client(settings):
    """TestClient with the settings fixture injected."""
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_klaviyo():
    """Mock for async update_profile - prevents real Klaviyo calls in tests."""
    with patch("src.main.update_profile", new_callable=AsyncMock) as mock:
        mock.return_value = None
        yield mock


@pytest.fixture
def post_event(client):
    """POST a payload as raw JSON bytes, returning the response."""

    def _post(payload, headers=None):
        raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        return client.post(
            WEBHOOK_PATH,
            content=raw,
            headers=headers or {"Content-Type": "application/json"},
        )

    return _post
