"""Tests for SessionStore - persistence and staleness detection."""

import json

import pytest

from auth.session_store import SESSION_STORAGE_KEY, SessionStore
from auth.storage import MemoryStorage, UnavailableStorage
from auth.types import Session


class TestSaveAndLoad:
    """Round trip under unchanged configuration."""

    def test_round_trip(self, store, config, session):
        store.save(session, config)
        assert store.load(config) == session

    def test_load_empty_returns_none(self, store, config):
        assert store.load(config) is None

    def test_saved_value_is_wrapped_with_config(self, store, storage, config, session):
        store.save(session, config)

        stored = json.loads(storage.get_item(SESSION_STORAGE_KEY))

        assert stored["baseUrl"] == config.base_url
        assert stored["projectId"] == config.tenant_id
        assert stored["session"]["token"] == session.token
        assert stored["session"]["expiresAt"] == session.expires_at


class TestStaleness:
    """A session saved under other configuration is purged on load."""

    def test_different_base_url_purges(self, store, storage, config, session):
        store.save(session, config)
        moved = config.model_copy(update={"base_url": "https://other.test"})

        assert store.load(moved) is None
        assert storage.get_item(SESSION_STORAGE_KEY) is None

    def test_trailing_slash_is_not_a_different_base_url(self, store, config, session):
        store.save(session, config)
        slashed = config.model_copy(update={"base_url": config.base_url + "/"})

        assert store.load(slashed) == session

    def test_different_tenant_purges(self, store, storage, config, session):
        store.save(session, config)
        other = config.model_copy(update={"tenant_id": 7})

        assert store.load(other) is None
        assert storage.get_item(SESSION_STORAGE_KEY) is None

    def test_unknown_tenant_on_one_side_still_matches(self, store, config, session):
        store.save(session, config.model_copy(update={"tenant_id": None}))
        assert store.load(config) == session

    def test_corrupt_value_purges(self, store, storage, config):
        storage.set_item(SESSION_STORAGE_KEY, "{not json")

        assert store.load(config) is None
        assert storage.get_item(SESSION_STORAGE_KEY) is None

    def test_wrapped_value_without_token_purges(self, store, storage, config):
        storage.set_item(
            SESSION_STORAGE_KEY,
            json.dumps({"session": {"expiresAt": "x"}, "baseUrl": config.base_url}),
        )

        assert store.load(config) is None
        assert storage.get_item(SESSION_STORAGE_KEY) is None


class TestLegacyShape:
    """Bare session blobs from before the wrapped format."""

    LEGACY = {
        "token": "legacy-token",
        "expiresAt": "2030-01-01T00:00:00Z",
        "projectId": 42,
        "email": "old@b.com",
    }

    def test_accepted_by_default(self, storage, config):
        storage.set_item(SESSION_STORAGE_KEY, json.dumps(self.LEGACY))

        loaded = SessionStore(storage).load(config)

        assert loaded == Session(
            token="legacy-token",
            expires_at="2030-01-01T00:00:00Z",
            tenant_id=42,
            owner_email="old@b.com",
        )

    def test_rejected_when_disabled(self, storage, config):
        storage.set_item(SESSION_STORAGE_KEY, json.dumps(self.LEGACY))

        assert SessionStore(storage, accept_legacy_shape=False).load(config) is None
        assert storage.get_item(SESSION_STORAGE_KEY) is None


class TestClear:

    def test_clear_removes(self, store, config, session):
        store.save(session, config)
        store.clear()
        assert store.load(config) is None

    def test_clear_twice_is_same_as_once(self, store, storage, config, session):
        store.save(session, config)
        store.clear()
        store.clear()

        assert storage.get_item(SESSION_STORAGE_KEY) is None
        assert store.load(config) is None


class TestHolds:

    def test_holds_saved_session(self, store, config, session):
        store.save(session, config)
        assert store.holds(session, config)

    def test_does_not_hold_after_out_of_band_removal(self, store, storage, config, session):
        store.save(session, config)
        storage.remove_item(SESSION_STORAGE_KEY)

        assert not store.holds(session, config)

    def test_does_not_hold_other_token(self, store, config, session):
        store.save(session, config)
        other = session.model_copy(update={"token": "different"})

        assert not store.holds(other, config)


class TestUnavailableStorage:
    """Missing medium degrades to memory; never raises."""

    @pytest.fixture
    def degraded(self):
        return SessionStore(UnavailableStorage())

    def test_round_trip_in_memory(self, degraded, config, session):
        degraded.save(session, config)
        assert degraded.load(config) == session

    def test_clear_in_memory(self, degraded, config, session):
        degraded.save(session, config)
        degraded.clear()
        assert degraded.load(config) is None

    def test_default_storage_is_memory(self, config, session):
        store = SessionStore()
        store.save(session, config)
        assert store.load(config) == session

    def test_separate_memory_stores_do_not_share(self, config, session):
        SessionStore(MemoryStorage()).save(session, config)
        assert SessionStore(MemoryStorage()).load(config) is None
