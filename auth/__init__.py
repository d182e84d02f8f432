"""Configuration, session and sign-in modules."""

from auth.exceptions import (
    AuthError,
    MissingConfigurationError,
    UnauthenticatedError,
    SessionExpiredError,
    ValidationFailedError,
)
from auth.types import (
    Session,
    OneTimeCodeResult,
    OperatorProfile,
)
from auth.config import ServiceConfig, ConfigIssue, resolve_config
from auth.storage import (
    KeyValueStorage,
    MemoryStorage,
    FileStorage,
    ValkeyStorage,
    UnavailableStorage,
    StorageUnavailableError,
)
from auth.session_store import SessionStore, SESSION_STORAGE_KEY
from auth.activity_log import ActivityLog, ActivityKind
from auth.service import AuthService, AuthState
