"""
Client events for the hosted-collection client.

Immutable event objects describing what the client just did: outbound
requests to the service, session transitions, and record mutations.
Observers (activity log, presentation layer) subscribe to these on the
EventBus; the publishing component never depends on who is listening.

Event Categories:
- RequestEvent: Transport lifecycle (started, succeeded, errored)
- SessionEvent: Auth lifecycle (session created, signed out)
- RecordEvent: Record mutations (created, updated, deleted)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class ClientEvent:
    """Base class for all client events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# REQUEST EVENTS
# =============================================================================


@dataclass(frozen=True)
class RequestEvent(ClientEvent):
    """Events related to a single outbound request."""
    method: str = ""
    path: str = ""


@dataclass(frozen=True)
class RequestStarted(RequestEvent):
    """A request is about to be sent."""
    credential: str = "none"


@dataclass(frozen=True)
class RequestSucceeded(RequestEvent):
    """The service answered with a success status."""
    status: int = 200


@dataclass(frozen=True)
class RequestErrored(RequestEvent):
    """The request failed, either at the transport or with a non-2xx status."""
    status: int | None = None
    message: str = ""


# =============================================================================
# SESSION EVENTS
# =============================================================================


@dataclass(frozen=True)
class SessionEvent(ClientEvent):
    """Events related to the signed-in session."""
    pass


@dataclass(frozen=True)
class SessionCreated(SessionEvent):
    """A one-time code was verified into a session."""
    owner_email: str = ""
    tenant_id: int | None = None


@dataclass(frozen=True)
class SignedOut(SessionEvent):
    """Local session state was cleared."""
    reason: str = "user"


# =============================================================================
# RECORD EVENTS
# =============================================================================


@dataclass(frozen=True)
class RecordEvent(ClientEvent):
    """Events related to records in the collection."""
    pass


@dataclass(frozen=True)
class RecordCreated(RecordEvent):
    """A record was created on the service."""
    record: Any = None  # Record, Any avoids importing core.models here

    @classmethod
    def create(cls, record: Any) -> "RecordCreated":
        return cls(record=record)


@dataclass(frozen=True)
class RecordUpdated(RecordEvent):
    """A record's fields were replaced on the service."""
    record: Any = None

    @classmethod
    def create(cls, record: Any) -> "RecordUpdated":
        return cls(record=record)


@dataclass(frozen=True)
class RecordDeleted(RecordEvent):
    """A record was soft-deleted on the service."""
    record_id: str = ""
