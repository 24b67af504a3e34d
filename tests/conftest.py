"""Shared test fixtures and configuration."""
import os
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACtest")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15550000000")
os.environ.setdefault("PUBLIC_URL", "https://relay.example.com")

from app.main import app
from app.core.config import Settings
from app.services.call_session.manager import CallSessionManager
from app.services.call_session.store import SessionStore
from app.services.realtime.dispatcher import MessageDispatcher
from app.services.realtime.notifier import Notifier
from app.services.realtime.registry import ConnectionRegistry
from app.services.text_generation.relay import TextGenerationRelay

from tests.helpers import FakeConnection, make_stream


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(
        openai_api_key="test-key",
        openai_model="gpt-test",
        twilio_account_sid="ACtest",
        twilio_auth_token="test-token",
        twilio_phone_number="+15550000000",
        public_url="https://relay.example.com/",
        default_script="Hello from the test campaign.",
        affirmative_keyword="more",
        negative_keyword="contact",
        _env_file=None,
    )


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def notifier(registry):
    return Notifier(registry)


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def mock_provider():
    """Mock Twilio provider that accepts every call."""
    provider = Mock()
    provider.place_call = AsyncMock(return_value="CA123")
    provider.complete_call = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def mock_openai():
    """Mock OpenAI client streaming two fragments."""
    client = Mock()
    client.chat.completions.create = AsyncMock(
        side_effect=lambda **kwargs: make_stream("Hi", " there")
    )
    return client


@pytest.fixture
def call_manager(session_store, notifier, mock_provider, test_settings):
    return CallSessionManager(session_store, notifier, mock_provider, test_settings)


@pytest.fixture
def text_relay(notifier, test_settings, mock_openai):
    return TextGenerationRelay(notifier, test_settings, client=mock_openai)


@pytest.fixture
def dispatcher(registry, notifier, call_manager, text_relay):
    return MessageDispatcher(registry, notifier, call_manager, text_relay)


@pytest.fixture
def observers(registry):
    """Two open connections registered before anything happens."""
    first = FakeConnection("observer-1")
    second = FakeConnection("observer-2")
    registry.add(first)
    registry.add(second)
    return first, second


@pytest.fixture
def test_client(mock_provider, mock_openai):
    """Create FastAPI test client with mocked Twilio and OpenAI clients."""
    with TestClient(app) as client:
        app.state.call_manager.provider = mock_provider
        app.state.text_relay.client = mock_openai
        yield client
