"""Persist the signed-in session across restarts.

The session is always stored wrapped with the base URL and tenant id it
was issued under, so a later load under different configuration is
detected as stale and purged instead of being sent to the wrong service.
"""

import json
import logging
from typing import Any

from auth.config import ServiceConfig, normalize_base_url
from auth.storage import KeyValueStorage, MemoryStorage, StorageUnavailableError
from auth.types import Session

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "reqres-todo-session-v1"


def _session_to_dict(session: Session) -> dict[str, Any]:
    return {
        "token": session.token,
        "expiresAt": session.expires_at,
        "projectId": session.tenant_id,
        "email": session.owner_email,
    }


def _session_from_dict(data: Any) -> Session | None:
    if not isinstance(data, dict):
        return None
    token = data.get("token")
    if not isinstance(token, str) or not token:
        return None
    tenant_id = data.get("projectId")
    return Session(
        token=token,
        expires_at=str(data.get("expiresAt") or ""),
        tenant_id=tenant_id if isinstance(tenant_id, int) else None,
        owner_email=str(data.get("email") or ""),
    )


class SessionStore:
    """Serialize, load and clear the one persisted session.

    Storage is best-effort: when the medium is unavailable the store keeps
    an in-memory copy for this process and never raises.
    """

    def __init__(
        self,
        storage: KeyValueStorage | None = None,
        storage_key: str = SESSION_STORAGE_KEY,
        accept_legacy_shape: bool = True,
    ):
        self._storage = storage if storage is not None else MemoryStorage()
        self._key = storage_key
        self._accept_legacy = accept_legacy_shape
        self._fallback: str | None = None
        self._degraded = False

    def _unavailable(self, action: str, error: StorageUnavailableError) -> None:
        if not self._degraded:
            logger.warning(f"Session storage unavailable on {action}, keeping session in memory: {error}")
        self._degraded = True

    def _read(self) -> str | None:
        try:
            value = self._storage.get_item(self._key)
        except StorageUnavailableError as e:
            self._unavailable("read", e)
            return self._fallback
        self._degraded = False
        return value

    def _write(self, value: str) -> None:
        self._fallback = value
        try:
            self._storage.set_item(self._key, value)
        except StorageUnavailableError as e:
            self._unavailable("write", e)

    def _remove(self) -> None:
        self._fallback = None
        try:
            self._storage.remove_item(self._key)
        except StorageUnavailableError as e:
            self._unavailable("remove", e)

    def save(self, session: Session, config: ServiceConfig) -> None:
        """Persist session together with the configuration it belongs to."""
        payload = {
            "session": _session_to_dict(session),
            "baseUrl": normalize_base_url(config.base_url),
            "projectId": config.tenant_id,
        }
        self._write(json.dumps(payload))

    def load(self, config: ServiceConfig) -> Session | None:
        """
        Load the persisted session for this configuration.

        Returns None when nothing is stored. Stale (different base URL or
        tenant) or unreadable values are purged and reported as None.
        """
        raw = self._read()
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable persisted session")
            self.clear()
            return None

        if isinstance(data, dict) and "session" in data:
            stored_base = normalize_base_url(data.get("baseUrl") or "")
            stored_tenant = data.get("projectId")
            if stored_base != normalize_base_url(config.base_url):
                logger.warning("Discarding session persisted for a different base URL")
                self.clear()
                return None
            if (
                stored_tenant is not None
                and config.tenant_id is not None
                and stored_tenant != config.tenant_id
            ):
                logger.warning("Discarding session persisted for a different tenant")
                self.clear()
                return None
            session = _session_from_dict(data.get("session"))
        elif self._accept_legacy:
            # Bare session written before the wrapped shape existed
            session = _session_from_dict(data)
        else:
            session = None

        if session is None:
            logger.warning("Discarding persisted session with unexpected shape")
            self.clear()
        return session

    def holds(self, session: Session, config: ServiceConfig) -> bool:
        """True if the persisted copy for this configuration is this session."""
        stored = self.load(config)
        return stored is not None and stored.token == session.token

    def clear(self) -> None:
        """Remove the persisted session. Safe to call when nothing is stored."""
        self._remove()
