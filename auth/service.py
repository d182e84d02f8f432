"""Authentication service - drives the one-time code sign-in flow."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from auth.config import ServiceConfig
from auth.exceptions import (
    MissingConfigurationError,
    SessionExpiredError,
    ValidationFailedError,
)
from auth.session_store import SessionStore
from auth.types import OneTimeCodeResult, OperatorProfile, Session
from clients.service_client import (
    CredentialClass,
    MissingCredentialError,
    RequestFailedError,
    ServiceClient,
)
from core.event_bus import EventBus
from core.events import SessionCreated, SignedOut
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

EXPIRED_MESSAGE = "Access expired. Sign in again."


class AuthState(Enum):
    """Where the sign-in handshake currently stands."""

    SIGNED_OUT = "signed_out"
    CODE_ISSUED = "code_issued"
    SIGNED_IN = "signed_in"


def _payload(body: Any) -> dict:
    """Response 'data' object when present, else the body itself."""
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, dict):
            return data
        return body
    return {}


class AuthService:
    """Owns the session and the signed-in profile.

    Handles:
    - One-time code requests and verification
    - Session validity checks for every gated operation
    - Profile fetch (a failed fetch counts as revocation)
    - Sign-out, which every other component follows via the SignedOut event
    """

    def __init__(
        self,
        config: ServiceConfig,
        client: ServiceClient,
        store: SessionStore,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._config = config
        self._client = client
        self._store = store
        self._event_bus = event_bus or EventBus()
        self._clock = clock

        self.session: Session | None = None
        self.profile: OperatorProfile | None = None
        self.code_result: OneTimeCodeResult | None = None
        self.state = AuthState.SIGNED_OUT

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def _require_ready(self) -> None:
        if not self._config.ready:
            raise MissingConfigurationError(
                f"Missing project configuration: {', '.join(self._config.warnings)}"
            )

    def restore(self) -> Session | None:
        """Adopt a persisted session at start-up if it is still valid.

        Invalid or stale sessions are purged from storage.
        """
        stored = self._store.load(self._config)
        if stored is None:
            return None
        if not self._not_expired(stored):
            logger.info("Persisted session has expired")
            self._store.clear()
            return None
        self.session = stored
        self.state = AuthState.SIGNED_IN
        logger.info(f"Restored session for {stored.owner_email}")
        return stored

    def fetch_operator_total(self) -> int:
        """Count of end users in the project.

        Uses the public key when configured, otherwise the management key,
        so it works before anyone signs in.

        Raises:
            MissingConfigurationError: If tenant id is not set
            MissingCredentialError: If neither key is set
        """
        if self._config.tenant_id is None:
            raise MissingConfigurationError(
                "Project identifier is missing. Update configuration."
            )
        if self._config.public_key:
            credential = CredentialClass.PUBLIC
        elif self._config.manage_key:
            credential = CredentialClass.MANAGE
        else:
            raise MissingCredentialError(
                "Access key is missing. Add a public or management key."
            )

        body = self._client.request(
            f"/api/projects/{self._config.tenant_id}/app-users/total",
            method="GET",
            credential=credential,
        )
        total = body.get("total") if isinstance(body, dict) else None
        if isinstance(total, (int, float)) and not isinstance(total, bool):
            return int(total)
        try:
            return int(float(total))
        except (TypeError, ValueError):
            return 0

    def request_code(self, email: str) -> OneTimeCodeResult:
        """Ask the service to issue a one-time sign-in code.

        Does not create a session.

        Raises:
            MissingConfigurationError: Configuration incomplete
            ValidationFailedError: Empty email
            MissingCredentialError: Public key absent
            RequestFailedError: Service rejected the request
        """
        self._require_ready()
        email = (email or "").strip()
        if not email:
            raise ValidationFailedError("Enter an email address first")

        body = self._client.request(
            "/api/app-users/login",
            method="POST",
            body={"email": email, "project_id": self._config.tenant_id},
            credential=CredentialClass.PUBLIC,
        )

        payload = _payload(body)
        sent = payload.get("sent")
        result = OneTimeCodeResult(
            issued=True if sent is None else bool(sent),
            code=payload.get("token"),
            delivery_link=payload.get("magicLink"),
            expires_in_minutes=payload.get("expires_in_minutes"),
            note=payload.get("note"),
            message=payload.get("message"),
        )

        self.code_result = result
        if self.state is not AuthState.SIGNED_IN:
            self.state = AuthState.CODE_ISSUED
        logger.info(f"One-time code requested for {email}")
        return result

    def verify_code(self, code: str) -> Session:
        """Exchange a one-time code for a session and persist it.

        The only place a Session is created.

        Raises:
            MissingConfigurationError: Configuration incomplete
            ValidationFailedError: Empty code
            MissingCredentialError: Management key absent
            RequestFailedError: Code rejected or malformed response
        """
        self._require_ready()
        code = (code or "").strip()
        if not code:
            raise ValidationFailedError("Paste the sign-in code first")

        body = self._client.request(
            "/api/app-users/verify",
            method="POST",
            body={"token": code, "project_id": self._config.tenant_id},
            credential=CredentialClass.MANAGE,
        )

        data = _payload(body)
        token = data.get("session_token")
        if not isinstance(token, str) or not token:
            raise RequestFailedError("Verification response did not include a session", raw_body=body)

        tenant_id = data.get("project_id")
        session = Session(
            token=token,
            expires_at=str(data.get("expires_at") or ""),
            tenant_id=tenant_id if isinstance(tenant_id, int) else self._config.tenant_id,
            owner_email=str(data.get("email") or ""),
        )

        self._store.save(session, self._config)
        self.session = session
        self.profile = None
        self.code_result = None
        self.state = AuthState.SIGNED_IN

        logger.info(f"Session created for {session.owner_email}")
        self._event_bus.publish(
            SessionCreated(owner_email=session.owner_email, tenant_id=session.tenant_id)
        )
        return session

    def _not_expired(self, session: Session) -> bool:
        expires_at = session.expires_at_datetime
        return expires_at is not None and expires_at > self._clock()

    def current_session_valid(self, session: Session | None = None) -> bool:
        """True iff a session is present, still persisted, and not expired.

        Args:
            session: Session to check (defaults to the current one)
        """
        session = session if session is not None else self.session
        if session is None:
            return False
        if not self._store.holds(session, self._config):
            return False
        return self._not_expired(session)

    def require_session(self, session: Session | None = None) -> Session:
        """Guard for every gated operation.

        Raises:
            SessionExpiredError: After signing out, when no valid session exists
        """
        session = session if session is not None else self.session
        if not self.current_session_valid(session):
            if session is not None or self.session is not None:
                self.sign_out(reason="expired")
            raise SessionExpiredError(EXPIRED_MESSAGE)
        return session

    def fetch_profile(self, session: Session | None = None) -> OperatorProfile:
        """Fetch the signed-in user's profile.

        A failed fetch is treated as revocation: the client signs out.

        Raises:
            SessionExpiredError: Session invalid, or the service rejected it
        """
        session = self.require_session(session)

        try:
            body = self._client.request(
                "/api/app-users/me",
                method="GET",
                credential=CredentialClass.SESSION,
                token=session.token,
            )
            profile = OperatorProfile.model_validate(_payload(body))
        except (RequestFailedError, ValueError) as e:
            logger.warning(f"Profile fetch failed, signing out: {e}")
            self.sign_out(reason="revoked")
            raise SessionExpiredError(EXPIRED_MESSAGE) from e

        self.profile = profile
        return profile

    def sign_out(self, reason: str = "user") -> None:
        """Clear session, profile and code state. Never contacts the network."""
        had_session = self.session is not None
        self.session = None
        self.profile = None
        self.code_result = None
        self.state = AuthState.SIGNED_OUT
        self._store.clear()

        if had_session:
            logger.info(f"Signed out ({reason})")
        self._event_bus.publish(SignedOut(reason=reason))
