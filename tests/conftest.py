"""Shared test fixtures for the client test suite."""

from datetime import datetime, timedelta, timezone

import pytest
import responses

from auth.config import ServiceConfig
from auth.service import AuthService
from auth.session_store import SessionStore
from auth.storage import MemoryStorage
from auth.types import Session
from clients.service_client import ServiceClient
from core.event_bus import EventBus
from core.services.record_service import RecordService


# =============================================================================
# TEST CONSTANTS
# =============================================================================

BASE_URL = "https://service.test"
TENANT_ID = 42
PUBLIC_KEY = "pub-test-key"
MANAGE_KEY = "manage-test-key"
SESSION_TOKEN = "session-token-abc"
OWNER_EMAIL = "a@b.com"

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

RECORDS_URL = f"{BASE_URL}/app/collections/todos/records"


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_record(record_id: str, title: str = "Task", completed: bool = False, **extra) -> dict:
    """Record JSON as the service returns it."""
    return {
        "id": record_id,
        "data": {"title": title, "notes": "", "completed": completed, **extra},
        "created_at": "2026-01-15T11:00:00Z",
        "updated_at": "2026-01-15T11:00:00Z",
        "app_user_id": "user-1",
    }


# =============================================================================
# CONFIG AND CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def config() -> ServiceConfig:
    """Complete configuration pointing at the mocked service."""
    return ServiceConfig(
        base_url=BASE_URL,
        tenant_id=TENANT_ID,
        public_key=PUBLIC_KEY,
        manage_key=MANAGE_KEY,
        collection_name="todos",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def mocked():
    """Activate HTTP mocking; unexpected requests raise ConnectionError."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client(config, event_bus) -> ServiceClient:
    return ServiceClient(config, event_bus=event_bus)


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def auth(config, client, store, event_bus, clock) -> AuthService:
    return AuthService(config, client, store, event_bus=event_bus, clock=clock)


@pytest.fixture
def session(clock) -> Session:
    """Session expiring one hour after the fake clock's now."""
    return Session(
        token=SESSION_TOKEN,
        expires_at=(clock() + timedelta(hours=1)).isoformat(),
        tenant_id=TENANT_ID,
        owner_email=OWNER_EMAIL,
    )


@pytest.fixture
def signed_in(auth, store, config, session) -> AuthService:
    """AuthService holding a persisted, unexpired session."""
    store.save(session, config)
    assert auth.restore() == session
    return auth


@pytest.fixture
def records(client, signed_in) -> RecordService:
    return RecordService(client, signed_in)
