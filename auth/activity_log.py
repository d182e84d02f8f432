"""Request and session activity log.

Optional observer on the EventBus. Keeps a bounded, newest-first trail
of what the client did and mirrors each entry to the logging module.
Core components never depend on whether it is attached.
"""

import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any

from core.event_bus import EventBus
from core.events import (
    ClientEvent,
    RecordCreated,
    RecordDeleted,
    RecordUpdated,
    RequestErrored,
    RequestStarted,
    RequestSucceeded,
    SessionCreated,
    SignedOut,
)

logger = logging.getLogger(__name__)


class ActivityKind(Enum):
    """Activity entry types."""

    REQUEST_STARTED = "request_started"
    REQUEST_SUCCEEDED = "request_succeeded"
    REQUEST_FAILED = "request_failed"
    SESSION_CREATED = "session_created"
    SIGNED_OUT = "signed_out"
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"


_KINDS = {
    RequestStarted: ActivityKind.REQUEST_STARTED,
    RequestSucceeded: ActivityKind.REQUEST_SUCCEEDED,
    RequestErrored: ActivityKind.REQUEST_FAILED,
    SessionCreated: ActivityKind.SESSION_CREATED,
    SignedOut: ActivityKind.SIGNED_OUT,
    RecordCreated: ActivityKind.RECORD_CREATED,
    RecordUpdated: ActivityKind.RECORD_UPDATED,
    RecordDeleted: ActivityKind.RECORD_DELETED,
}


class ActivityLog:
    """Bounded in-memory activity trail fed by the event bus."""

    def __init__(self, event_bus: EventBus, max_entries: int = 50):
        self._entries: deque[dict[str, Any]] = deque(maxlen=max_entries)
        self._event_bus = event_bus
        event_bus.subscribe(EventBus.WILDCARD, self.record)

    def record(self, event: ClientEvent) -> None:
        """Append an entry for a known event type; other events are ignored."""
        kind = _KINDS.get(type(event))
        if kind is None:
            return

        entry: dict[str, Any] = {
            "kind": kind,
            "occurred_at": event.occurred_at,
            "details": self._details(event),
        }
        self._entries.appendleft(entry)

        level = logging.WARNING if kind is ActivityKind.REQUEST_FAILED else logging.DEBUG
        logger.log(level, f"{kind.value} {entry['details']}")

    @staticmethod
    def _details(event: ClientEvent) -> dict[str, Any]:
        if isinstance(event, RequestStarted):
            return {"method": event.method, "path": event.path, "credential": event.credential}
        if isinstance(event, RequestSucceeded):
            return {"method": event.method, "path": event.path, "status": event.status}
        if isinstance(event, RequestErrored):
            return {
                "method": event.method,
                "path": event.path,
                "status": event.status,
                "message": event.message,
            }
        if isinstance(event, SessionCreated):
            return {"email": event.owner_email, "tenant_id": event.tenant_id}
        if isinstance(event, SignedOut):
            return {"reason": event.reason}
        if isinstance(event, RecordDeleted):
            return {"record_id": event.record_id}
        if isinstance(event, (RecordCreated, RecordUpdated)):
            return {"record_id": getattr(event.record, "id", None)}
        return {}

    def get_recent_entries(
        self,
        kind: ActivityKind | None = None,
        since: datetime | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Newest-first entries with optional filters."""
        matches = [
            entry
            for entry in self._entries
            if (kind is None or entry["kind"] is kind)
            and (since is None or entry["occurred_at"] >= since)
        ]
        return matches[:limit]

    def detach(self) -> None:
        """Stop receiving events."""
        self._event_bus.unsubscribe(EventBus.WILDCARD, self.record)

    def clear(self) -> None:
        self._entries.clear()
