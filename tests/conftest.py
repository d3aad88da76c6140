import os

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
# Force dev mode for default test app; production validation tests build their own Settings
os.environ["APP_ENV"] = "dev"
os.environ.setdefault("WHATSAPP_VERIFY_TOKEN", "test_token")
os.environ.setdefault("WHATSAPP_ACCESS_TOKEN", "test_token")
os.environ.setdefault("WHATSAPP_PHONE_NUMBER_ID", "test_id")
# Note: WHATSAPP_APP_SECRET not set by default - allows tests without signature verification
os.environ.setdefault("WHATSAPP_DRY_RUN", "true")
os.environ.setdefault("DEMO_MODE", "false")  # Ensure demo mode is off in tests
os.environ.setdefault("FEATURE_SHEETS_ENABLED", "true")

from app.core.config import Settings, settings  # noqa: E402
from app.main import app  # noqa: E402
from app.services.conversation import ConversationDeps  # noqa: E402
from app.services.messaging.message_composer import MessageComposer  # noqa: E402
from app.services.state_store import ConversationStateStore  # noqa: E402
from tests.helpers.fakes import RecordingExporter, RecordingMessenger  # noqa: E402

APP_STATE_FIELDS = ("settings", "store", "whatsapp_client", "lead_exporter", "composer")


@pytest.fixture
def test_settings() -> Settings:
    """A private copy of the settings so tests can change fields freely."""
    return settings.model_copy()


@pytest.fixture
def store() -> ConversationStateStore:
    """Create a fresh conversation store for each test."""
    return ConversationStateStore()


@pytest.fixture
def messenger() -> RecordingMessenger:
    return RecordingMessenger()


@pytest.fixture
def exporter() -> RecordingExporter:
    return RecordingExporter()


@pytest.fixture
def composer() -> MessageComposer:
    return MessageComposer()


@pytest.fixture
def deps(store, messenger, exporter, composer, test_settings) -> ConversationDeps:
    return ConversationDeps(
        store=store,
        messenger=messenger,
        exporter=exporter,
        composer=composer,
        settings=test_settings,
    )


@pytest.fixture
def client(store, messenger, exporter, composer, test_settings):
    """Create a test client whose app.state holds a fresh store and recording fakes."""
    previous = {name: getattr(app.state, name) for name in APP_STATE_FIELDS}
    app.state.settings = test_settings
    app.state.store = store
    app.state.whatsapp_client = messenger
    app.state.lead_exporter = exporter
    app.state.composer = composer
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        for name, value in previous.items():
            setattr(app.state, name, value)
        app.dependency_overrides.clear()
