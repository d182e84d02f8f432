"""
HTTP client for the hosted record and identity service.

Single chokepoint for outbound calls: builds URLs from the configured base,
attaches the credential each call class needs, and turns every non-success
response into one error type. No other module constructs headers or URLs.
"""

import json
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

import requests

from core.event_bus import EventBus
from core.events import RequestErrored, RequestStarted, RequestSucceeded

if TYPE_CHECKING:
    from auth.config import ServiceConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://reqres.in"
API_KEY_HEADER = "x-api-key"


class ServiceError(Exception):
    """Base class for every failure the client reports to its caller."""


class MissingCredentialError(ServiceError):
    """A required key or session token is absent. Raised before any network call."""


class RequestFailedError(ServiceError):
    """
    The service answered with a non-success status, or could not be reached.

    status is None for connection-level failures. raw_body holds the parsed
    JSON body, the raw text, or None when the body was empty.
    """

    def __init__(self, message: str, status: int | None = None, raw_body: Any = None):
        self.message = message
        self.status = status
        self.raw_body = raw_body
        super().__init__(message)


class CredentialClass(str, Enum):
    """Which credential accompanies a request."""

    NONE = "none"
    PUBLIC = "public"
    MANAGE = "manage"
    SESSION = "session"


def _error_message(data: Any, reason: str | None) -> str:
    """Best-effort message: body 'error', then body 'message', then HTTP reason."""
    if isinstance(data, dict):
        for field in ("error", "message"):
            value = data.get(field)
            if value:
                return value if isinstance(value, str) else str(value)
    return reason or "Request failed"


class ServiceClient:
    """
    Issue requests against the service with the right credential attached.

    Usage:
        client = ServiceClient(config)
        body = client.request("/api/app-users/me", credential=CredentialClass.SESSION,
                              token=session.token)
    """

    def __init__(
        self,
        config: "ServiceConfig",
        event_bus: EventBus | None = None,
        http: requests.Session | None = None,
    ):
        """
        Initialize with resolved configuration.

        Args:
            config: Resolved service configuration (base URL, keys)
            event_bus: Optional bus that receives request lifecycle events
            http: Optional requests session (connection reuse, test injection)
        """
        self.config = config
        self._event_bus = event_bus
        self._http = http or requests.Session()

    @property
    def base_url(self) -> str:
        return (self.config.base_url or DEFAULT_BASE_URL).rstrip("/")

    def build_url(self, path: str) -> str:
        """Join the configured base URL and a path."""
        return f"{self.base_url}{path if path.startswith('/') else '/' + path}"

    def _credential_headers(self, credential: CredentialClass, token: str | None) -> dict:
        """
        Headers for the requested credential class.

        Raises:
            MissingCredentialError: If the credential is not available
        """
        if credential == CredentialClass.SESSION:
            if not token:
                raise MissingCredentialError("Access is required for this action.")
            return {"Authorization": f"Bearer {token}"}

        if credential == CredentialClass.PUBLIC:
            if not self.config.public_key:
                raise MissingCredentialError("Public access key is missing.")
            return {API_KEY_HEADER: self.config.public_key}

        if credential == CredentialClass.MANAGE:
            if not self.config.manage_key:
                raise MissingCredentialError("Management access key is missing.")
            return {API_KEY_HEADER: self.config.manage_key}

        return {}

    def _publish(self, event) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event)

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        credential: CredentialClass = CredentialClass.NONE,
        token: str | None = None,
    ) -> Any:
        """
        Send one request and return the parsed response body.

        Args:
            path: Path relative to the base URL (query string included)
            method: HTTP method
            body: JSON-serializable value, or a pre-encoded string. None sends no body.
            credential: Credential class to attach
            token: Bearer token, required for CredentialClass.SESSION

        Returns:
            Parsed JSON, raw text when the body is not JSON, or an empty dict
            when the body is empty.

        Raises:
            MissingCredentialError: Credential absent (nothing was sent)
            RequestFailedError: Connection failure or non-2xx status
        """
        method = method.upper()
        headers = {"Accept": "application/json"}
        headers.update(self._credential_headers(credential, token))

        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = body if isinstance(body, str) else json.dumps(body)

        self._publish(RequestStarted(method=method, path=path, credential=credential.value))

        try:
            response = self._http.request(
                method,
                self.build_url(path),
                data=data,
                headers=headers,
                timeout=self.config.request_timeout_seconds,
            )
        except (requests.exceptions.RequestException, ConnectionError) as e:
            logger.error(f"{method} {path} connection failed: {e}")
            self._publish(RequestErrored(method=method, path=path, message=str(e)))
            raise RequestFailedError(f"Connection failed: {e}") from e

        text = response.text
        parsed: Any = None
        if text:
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = text

        if not 200 <= response.status_code < 300:
            message = _error_message(parsed, response.reason)
            logger.error(f"{method} {path} failed with {response.status_code}: {message}")
            self._publish(
                RequestErrored(
                    method=method, path=path, status=response.status_code, message=message
                )
            )
            raise RequestFailedError(message, status=response.status_code, raw_body=parsed)

        logger.debug(f"{method} {path} -> {response.status_code}")
        self._publish(RequestSucceeded(method=method, path=path, status=response.status_code))

        return {} if parsed is None else parsed

    def close(self) -> None:
        """Close pooled connections."""
        self._http.close()
