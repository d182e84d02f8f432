"""Typed exceptions for client-side failures.

Transport failures (MissingCredentialError, RequestFailedError) live in
clients.service_client; everything here is detected locally and never
reaches the network.
"""

from clients.service_client import ServiceError


class AuthError(ServiceError):
    """Base class for authentication and configuration errors."""


class MissingConfigurationError(AuthError):
    """Tenant id, keys, or collection slug are not configured."""


class UnauthenticatedError(AuthError):
    """No session is available for an operation that requires one."""


class SessionExpiredError(UnauthenticatedError):
    """
    The session expired or was revoked and the user must sign in again.

    Raised after local sign-out has already happened.
    """


class ValidationFailedError(ServiceError):
    """Client-side input validation failed (e.g. empty title, empty email)."""
