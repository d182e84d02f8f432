"""
Record service for the user-scoped collection.

Lists, creates, updates and deletes records through the service client and
keeps the loaded page and its pagination metadata consistent with what the
server reports. Every operation checks the session first; nothing is sent
without one.
"""

import logging
import math
from typing import Any, List

from pydantic import ValidationError
from urllib.parse import quote

from auth.exceptions import (
    MissingConfigurationError,
    SessionExpiredError,
    ValidationFailedError,
)
from auth.service import EXPIRED_MESSAGE, AuthService
from auth.types import Session
from clients.service_client import CredentialClass, RequestFailedError, ServiceClient
from core.events import RecordCreated, RecordDeleted, RecordUpdated, SignedOut
from core.models import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
    FilterMode,
    PageState,
    Record,
    RecordFields,
    RecordPage,
    SortOrder,
)

logger = logging.getLogger(__name__)

UNEXPECTED_RESPONSE = "Unexpected response from the service"

# Statuses that mean the service no longer accepts the session
REVOKED_STATUSES = (401, 403)


def clamp_page(page: Any) -> int:
    """Pages start at 1; anything unusable becomes 1."""
    try:
        value = int(page)
    except (TypeError, ValueError):
        return 1
    return max(1, value)


def clamp_page_size(page_size: Any) -> int:
    """Page size within [1, 100]; anything unusable becomes the default."""
    try:
        value = int(page_size)
    except (TypeError, ValueError):
        return DEFAULT_PAGE_SIZE
    return min(max(value, MIN_PAGE_SIZE), MAX_PAGE_SIZE)


def reconcile_page_state(meta: Any, page: int, limit: int, returned: int) -> PageState:
    """
    Merge server pagination metadata with a local estimate.

    The estimate (total = records on this page) is only right for a single
    page; each usable server-reported field replaces it. Server values are
    clamped to the same bounds as local ones.
    """
    fallback = PageState(
        page=page,
        limit=limit,
        total=returned,
        pages=max(1, math.ceil((returned or 1) / limit)),
    )
    if not isinstance(meta, dict):
        return fallback

    def _pick(name: str, default: int) -> int:
        value = meta.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        if not math.isfinite(value):
            return default
        return int(value)

    return PageState(
        page=clamp_page(_pick("page", fallback.page)),
        limit=clamp_page_size(_pick("limit", fallback.limit)),
        total=max(0, _pick("total", fallback.total)),
        pages=max(1, _pick("pages", fallback.pages)),
    )


class RecordService:
    """Service for record operations on one collection."""

    def __init__(self, client: ServiceClient, auth: AuthService):
        self.client = client
        self.auth = auth
        self.records: list[Record] = []
        self.page_state: PageState | None = None
        self.page = 1
        self.page_size = DEFAULT_PAGE_SIZE
        self.order = SortOrder.DESC
        auth.event_bus.subscribe(SignedOut.__name__, lambda event: self.reset())

    def _collection_path(self, record_id: str | None = None) -> str:
        slug = self.auth.config.collection_name
        if not slug:
            raise MissingConfigurationError("Task register is not configured.")
        path = f"/app/collections/{quote(slug, safe='')}/records"
        if record_id is not None:
            path += f"/{quote(str(record_id), safe='')}"
        return path

    def _send(self, session: Session, path: str, method: str, body: Any = None) -> Any:
        """Authenticated request; a rejected session signs the user out."""
        try:
            return self.client.request(
                path,
                method=method,
                body=body,
                credential=CredentialClass.SESSION,
                token=session.token,
            )
        except RequestFailedError as e:
            if e.status in REVOKED_STATUSES:
                logger.warning(f"Service rejected session ({e.status}), signing out")
                self.auth.sign_out(reason="revoked")
                raise SessionExpiredError(EXPIRED_MESSAGE) from e
            raise

    def _validated_fields(self, fields: RecordFields | dict[str, Any]) -> RecordFields:
        if not isinstance(fields, RecordFields):
            fields = RecordFields.from_data(fields)
        fields = fields.trimmed()
        if not fields.title:
            raise ValidationFailedError("Add a title before saving")
        return fields

    @staticmethod
    def _parse_record(body: Any) -> Record:
        """Record from a create/update response; malformed bodies are request failures."""
        item = body.get("data") if isinstance(body, dict) else body
        try:
            return Record.model_validate(item)
        except ValidationError as e:
            logger.error(f"Malformed record in response: {e}")
            raise RequestFailedError(UNEXPECTED_RESPONSE, raw_body=body) from e

    @staticmethod
    def _parse_records(items: Any, body: Any) -> List[Record]:
        if items is None:
            return []
        if not isinstance(items, (list, tuple)):
            logger.error(f"Expected a list of records, got {type(items).__name__}")
            raise RequestFailedError(UNEXPECTED_RESPONSE, raw_body=body)
        try:
            return [Record.model_validate(item) for item in items]
        except ValidationError as e:
            logger.error(f"Malformed record in response: {e}")
            raise RequestFailedError(UNEXPECTED_RESPONSE, raw_body=body) from e

    def _refresh(self, page: int) -> None:
        """
        Reload after a write the server already accepted.

        A failed reload is logged and leaves the previous page loaded; the
        write itself still succeeded. Session expiry still propagates.
        """
        try:
            self.list(page=page)
        except RequestFailedError as e:
            logger.warning(f"Reload after write failed: {e.message}")

    def reset(self) -> None:
        """Drop loaded records and pagination (sign-out)."""
        self.records = []
        self.page_state = None
        self.page = 1
        self.page_size = DEFAULT_PAGE_SIZE

    def list(
        self,
        page: int | None = None,
        page_size: int | None = None,
        order: SortOrder | str | None = None,
    ) -> RecordPage:
        """
        Load one page of records, replacing the current page.

        Args:
            page: Requested page (clamped to >= 1; defaults to current page)
            page_size: Requested size (clamped to [1, 100]; defaults to current size)
            order: 'asc' or 'desc' over creation time (default desc)

        Returns:
            RecordPage with server-authoritative page state
        """
        session = self.auth.require_session()
        page = clamp_page(self.page if page is None else page)
        limit = clamp_page_size(self.page_size if page_size is None else page_size)
        order = SortOrder.parse(order if order is not None else self.order)

        body = self._send(
            session,
            f"{self._collection_path()}?order={order.value}&limit={limit}&page={page}",
            "GET",
        )

        items = body.get("data") if isinstance(body, dict) else None
        records = self._parse_records(items, body)
        page_state = reconcile_page_state(
            body.get("meta") if isinstance(body, dict) else None,
            page,
            limit,
            len(records),
        )

        self.records = records
        self.page_state = page_state
        self.page = page_state.page
        self.page_size = page_state.limit
        self.order = order

        return RecordPage(records=records, page_state=page_state)

    def create(self, fields: RecordFields | dict[str, Any]) -> Record:
        """
        Create a record, then reload page 1.

        Raises:
            ValidationFailedError: If title is empty after trimming
        """
        session = self.auth.require_session()
        fields = self._validated_fields(fields)

        body = self._send(
            session, self._collection_path(), "POST", body={"data": fields.to_payload()}
        )
        record = self._parse_record(body)
        logger.info(f"Record {record.id} created")
        self.auth.event_bus.publish(RecordCreated.create(record))

        self._refresh(page=1)
        return record

    def update(self, record_id: str, fields: RecordFields | dict[str, Any]) -> Record:
        """
        Replace all fields of a record.

        The loaded copy is swapped in place by id; no reload.

        Raises:
            ValidationFailedError: If title is empty after trimming
        """
        session = self.auth.require_session()
        return self._replace(session, record_id, self._validated_fields(fields))

    def toggle_completed(self, record: Record) -> Record:
        """Flip the completion flag, keeping every other field."""
        session = self.auth.require_session()
        current = record.fields
        flipped = current.model_copy(update={"completed": not current.completed})
        return self._replace(session, record.id, flipped)

    def _replace(self, session: Session, record_id: str, fields: RecordFields) -> Record:
        body = self._send(
            session, self._collection_path(record_id), "PUT", body={"data": fields.to_payload()}
        )
        updated = self._parse_record(body)

        self.records = [updated if item.id == record_id else item for item in self.records]
        logger.info(f"Record {record_id} updated")
        self.auth.event_bus.publish(RecordUpdated.create(updated))
        return updated

    def delete(self, record_id: str) -> None:
        """
        Soft delete a record, then reload.

        Steps back one page when the deleted record was the last one on a
        page beyond the first. A failed delete leaves state untouched.
        """
        session = self.auth.require_session()
        self._send(session, self._collection_path(record_id), "DELETE")
        logger.info(f"Record {record_id} deleted")
        self.auth.event_bus.publish(RecordDeleted(record_id=str(record_id)))

        current = self.page_state.page if self.page_state else 1
        if self.page_state is not None and len(self.records) <= 1 and current > 1:
            next_page = current - 1
        else:
            next_page = current
        self.records = [item for item in self.records if item.id != str(record_id)]
        self._refresh(page=next_page)

    def change_page(self, direction: str) -> RecordPage:
        """Move to the previous or next page, staying within [1, pages]."""
        current = self.page_state.page if self.page_state else self.page
        total_pages = self.page_state.pages if self.page_state else 1
        if direction == "prev":
            target = max(1, current - 1)
        elif direction == "next":
            target = min(total_pages, current + 1)
        else:
            raise ValueError(f"direction must be 'prev' or 'next', got '{direction}'")
        return self.list(page=target)

    def change_page_size(self, page_size: int) -> RecordPage:
        """Apply a new page size and go back to page 1."""
        return self.list(page=1, page_size=clamp_page_size(page_size))

    def filtered(self, mode: FilterMode | str = FilterMode.ALL) -> List[Record]:
        """Local completion filter over the loaded page only. No request."""
        mode = FilterMode(mode)
        if mode is FilterMode.ALL:
            return list(self.records)
        wanted = mode is FilterMode.COMPLETED
        return [record for record in self.records if record.completed == wanted]

    @property
    def completed_count(self) -> int:
        return sum(1 for record in self.records if record.completed)

    @property
    def remaining_count(self) -> int:
        return len(self.records) - self.completed_count
