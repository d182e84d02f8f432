"""
Workspace: the non-visual half of the todo screen.

Runs each user action to completion, tracks which actions are in flight,
and turns every outcome into exactly one notice. Presentation code reads
state from here and calls the action methods; it never talks to the
services directly.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from auth.exceptions import SessionExpiredError
from auth.service import EXPIRED_MESSAGE, AuthService
from clients.service_client import RequestFailedError, ServiceError
from core.events import SignedOut
from core.models import FilterMode, Record, RecordFields
from core.services.record_service import RecordService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

NOTICE_TTL_SECONDS = 4


class ActionBusyError(ServiceError):
    """The same action is already running."""


class NoticeKind(Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """Terminal outcome of one action."""

    kind: NoticeKind
    message: str
    created_at: datetime = field(default_factory=now_utc)

    def expired(self, now: datetime) -> bool:
        return now >= self.created_at + timedelta(seconds=NOTICE_TTL_SECONDS)


class Workspace:
    """
    Action runner over AuthService and RecordService.

    Usage:
        workspace = Workspace(auth, records)
        workspace.send_code("a@b.com")
        workspace.verify()
        workspace.draft = RecordFields(title="Buy milk")
        workspace.add_record()
    """

    def __init__(
        self,
        auth: AuthService,
        records: RecordService,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.auth = auth
        self.records = records
        self._clock = clock

        self.notice: Notice | None = None
        self.busy: set[str] = set()
        self.filter = FilterMode.ALL
        self.code_input = ""
        self.draft = RecordFields()
        self.edit_drafts: dict[str, RecordFields] = {}
        self.active_edit_id: str | None = None

        auth.event_bus.subscribe(SignedOut.__name__, self._on_signed_out)

    # -------------------------------------------------------------------------
    # Action runner
    # -------------------------------------------------------------------------

    def is_busy(self, key: str) -> bool:
        return key in self.busy

    def run(
        self,
        key: str,
        action: Callable[[], Any],
        success: str | Callable[[Any], str],
        fallback: str,
    ) -> Any:
        """
        Run one action and record its single terminal notice.

        Args:
            key: Busy flag for this action (e.g. "list", "record:<id>")
            action: Zero-argument callable doing the work
            success: Success message, or a function of the action's result
            fallback: Message used when the failure carries no useful text

        Returns:
            The action's result, or None if it failed.

        Raises:
            ActionBusyError: If the same key is already running
        """
        if key in self.busy:
            raise ActionBusyError(f"'{key}' is already in progress")

        self.busy.add(key)
        self.notice = None
        try:
            result = action()
        except SessionExpiredError as e:
            if self.auth.session is not None:
                self.auth.sign_out(reason="expired")
            self._set_notice(NoticeKind.ERROR, str(e) or EXPIRED_MESSAGE)
            return None
        except RequestFailedError as e:
            message = e.message if e.status is not None and e.message else fallback
            self._set_notice(NoticeKind.ERROR, message)
            return None
        except ServiceError as e:
            self._set_notice(NoticeKind.ERROR, str(e) or fallback)
            return None
        finally:
            self.busy.discard(key)

        self._set_notice(NoticeKind.SUCCESS, success(result) if callable(success) else success)
        return result

    def _set_notice(self, kind: NoticeKind, message: str) -> None:
        self.notice = Notice(kind=kind, message=message, created_at=self._clock())
        if kind is NoticeKind.ERROR:
            logger.info(f"Action failed: {message}")

    def current_notice(self) -> Notice | None:
        """The active notice, dropping it once its display interval has passed."""
        if self.notice is not None and self.notice.expired(self._clock()):
            self.notice = None
        return self.notice

    def _on_signed_out(self, event: SignedOut) -> None:
        self.draft = RecordFields()
        self.edit_drafts = {}
        self.active_edit_id = None
        self.code_input = ""

    # -------------------------------------------------------------------------
    # Sign-in
    # -------------------------------------------------------------------------

    def send_code(self, email: str):
        def _action():
            result = self.auth.request_code(email)
            if result.code:
                self.code_input = result.code
            return result

        return self.run(
            "request_code",
            _action,
            lambda r: "Sign-in code issued" if r.issued else "Sign-in code created",
            "Failed to request a sign-in code.",
        )

    def verify(self, code: str | None = None):
        """Verify the code, then load the profile and the first page."""

        def _action():
            session = self.auth.verify_code(self.code_input if code is None else code)
            self.code_input = ""
            self.auth.fetch_profile(session)
            self.records.list(page=1)
            return session

        return self.run("verify", _action, "Session created", "Could not verify code.")

    def restore(self):
        """Resume a persisted session, if any, and load the first page."""
        if self.auth.restore() is None:
            return None

        def _action():
            self.auth.fetch_profile()
            return self.records.list(page=1)

        return self.run("list", _action, "Session restored", "Could not load records.")

    def sign_out(self) -> None:
        self.auth.sign_out()
        self._set_notice(NoticeKind.SUCCESS, "Session cleared")

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    @property
    def visible_records(self) -> list[Record]:
        return self.records.filtered(self.filter)

    def refresh(self):
        return self.run("list", self.records.list, "Records refreshed", "Could not load records.")

    def change_page(self, direction: str):
        return self.run(
            "list",
            lambda: self.records.change_page(direction),
            lambda page: f"Page {page.page_state.page} of {page.page_state.pages}",
            "Could not load records.",
        )

    def change_page_size(self, page_size: int):
        return self.run(
            "list",
            lambda: self.records.change_page_size(page_size),
            "Page size updated",
            "Could not load records.",
        )

    def add_record(self):
        def _action():
            record = self.records.create(self.draft)
            self.draft = RecordFields()
            return record

        return self.run("create", _action, "Record added", "Could not create record.")

    def begin_edit(self, record: Record) -> RecordFields:
        draft = record.fields
        self.active_edit_id = record.id
        self.edit_drafts[record.id] = draft
        self.notice = None
        return draft

    def cancel_edit(self) -> None:
        self.active_edit_id = None

    def save_edit(self, record_id: str):
        def _action():
            draft = self.edit_drafts.get(record_id) or RecordFields()
            updated = self.records.update(record_id, draft)
            self.active_edit_id = None
            return updated

        return self.run(f"record:{record_id}", _action, "Record updated", "Could not update record.")

    def toggle(self, record: Record):
        return self.run(
            f"record:{record.id}",
            lambda: self.records.toggle_completed(record),
            lambda updated: "Record completed" if updated.completed else "Record reopened",
            "Could not update record.",
        )

    def remove(self, record_id: str):
        def _action():
            self.records.delete(record_id)
            if self.active_edit_id == record_id:
                self.active_edit_id = None
            self.edit_drafts.pop(record_id, None)

        return self.run(f"record:{record_id}", _action, "Record deleted", "Could not delete record.")
