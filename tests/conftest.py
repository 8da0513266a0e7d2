"""Pytest configuration and fixtures for call router tests."""

from __future__ import annotations

import os
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio

from call_router.routing.models import WEEKDAYS

# Set test environment
os.environ["CR_ENV"] = "test"
os.environ["CR_DEBUG"] = "true"
os.environ["CR_DATABASE__URL"] = "sqlite+aiosqlite:///:memory:"

TENANT_ID = "tenant-1"
AGENT_ID = "agent-1"
PRACTICE_NUMBER = "+15555550000"
FALLBACK_NUMBER = "+15555550111"
EMERGENCY_NUMBER = "+15555550100"


def build_weekday_hours(
    enabled_days: tuple[str, ...] = WEEKDAYS[:5],
    lunch: bool = True,
    holidays: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Working hours JSON: 08:00-17:00 on ``enabled_days``, lunch 12:00-13:00."""
    day = {"open": "08:00", "close": "17:00"}
    if lunch:
        day.update({"lunchStart": "12:00", "lunchEnd": "13:00"})
    return {
        "enabled": True,
        "timezone": "America/New_York",
        "schedule": {name: {"enabled": name in enabled_days, **day} for name in WEEKDAYS},
        "holidays": holidays or [],
    }


@pytest.fixture
def weekday_hours():
    """Builder for working hours JSON."""
    return build_weekday_hours


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def twilio_settings():
    """Twilio settings with a public backend URL and test credentials."""
    from call_router.config import TwilioSettings

    return TwilioSettings(
        account_sid="AC00000000000000000000000000000000",
        auth_token="test-auth-token",
        phone_number=PRACTICE_NUMBER,
        backend_url="https://api.example.com",
    )


@pytest.fixture
def routing_settings():
    from call_router.config import RoutingSettings

    return RoutingSettings()


@pytest.fixture
def settings(twilio_settings, routing_settings):
    """Application settings for tests (signature checks off)."""
    from call_router.config import (
        DatabaseSettings,
        Settings,
        TelephonySettings,
        WebhookSettings,
    )

    return Settings(
        environment="test",
        debug=True,
        database=DatabaseSettings(url="sqlite+aiosqlite:///:memory:"),
        telephony=TelephonySettings(
            twilio=twilio_settings,
            webhooks=WebhookSettings(validate_signatures=False),
        ),
        routing=routing_settings,
    )


@pytest.fixture
def mock_settings(monkeypatch, settings):
    """Patch get_settings so code falling back to it sees test settings."""
    from call_router import config

    monkeypatch.setattr(config, "get_settings", lambda: settings)
    return settings


@pytest.fixture
def generator(twilio_settings, routing_settings):
    from call_router.telephony.twiml import TwiMLGenerator

    return TwiMLGenerator(twilio_settings, routing_settings)


# ============================================================================
# Routing Fixtures
# ============================================================================


class RecordingConfigStore:
    """ConfigStore double holding configs and recording increments."""

    def __init__(self, *configs):
        self.configs = {c.id: c for c in configs}
        self.increments: list[tuple[str, Any]] = []

    async def get_agent_routing_config(self, agent_id):
        return self.configs.get(agent_id)

    async def update_routing_config(self, agent_id, tenant_id, patch):
        raise NotImplementedError

    async def increment_stat(self, agent_id, field):
        self.increments.append((agent_id, field))


@pytest.fixture
def make_config():
    """Factory for AgentRoutingConfig with sensible defaults."""
    from call_router.routing.models import AgentRoutingConfig

    def _make(**overrides) -> Any:
        values: dict[str, Any] = {"id": AGENT_ID, "tenant_id": TENANT_ID}
        values.update(overrides)
        return AgentRoutingConfig(**values)

    return _make


@pytest.fixture
def config_store_factory():
    """Build a RecordingConfigStore holding the given configs."""
    return RecordingConfigStore


@pytest.fixture
def config_store(config_store_factory):
    return config_store_factory()


@pytest.fixture
def engine(config_store, routing_settings):
    from call_router.routing.engine import RoutingEngine

    return RoutingEngine(config_store, routing_settings)


# ============================================================================
# Async Database Fixtures
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with in-memory SQLite.

    Creates a fresh database for each test function.
    """
    from call_router.db.session import create_test_engine

    engine = await create_test_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from call_router.db.session import get_test_session_factory

    return get_test_session_factory(db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator:
    """Create test database session.

    Provides a session that rolls back after each test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sql_config_store(db_session):
    from call_router.db.stores import SqlConfigStore

    return SqlConfigStore(db_session)


@pytest.fixture
def sql_call_store(db_session):
    from call_router.db.stores import SqlCallRecordStore

    return SqlCallRecordStore(db_session)


@pytest.fixture
def agent_row_factory(session_factory):
    """Insert (and commit) an agent_configs row."""
    from call_router.db.models import AgentConfigModel

    async def _create(**overrides) -> AgentConfigModel:
        values: dict[str, Any] = {
            "id": AGENT_ID,
            "tenant_id": TENANT_ID,
            "name": "Front Desk",
            "fallback_number": FALLBACK_NUMBER,
            "emergency_number": EMERGENCY_NUMBER,
            "transfer_numbers": [
                {"name": "Dr. Smith", "number": "+15555550201", "role": "dentist", "priority": 5},
                {"name": "Front Office", "number": "+15555550202", "role": "reception", "priority": 1},
            ],
        }
        values.update(overrides)
        model = AgentConfigModel(**values)
        async with session_factory() as session:
            session.add(model)
            await session.commit()
        return model

    return _create


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def app(settings, session_factory):
    """FastAPI app wired to the test database and settings."""
    from call_router import dependencies
    from call_router.db.session import session_scope
    from call_router.main import create_app

    application = create_app()

    async def override_get_db():
        async with session_scope(session_factory) as session:
            yield session

    application.dependency_overrides[dependencies.get_app_settings] = lambda: settings
    application.dependency_overrides[dependencies.get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()
    dependencies.reset_dependencies()


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client talking to the app in-process."""
    import httpx

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
