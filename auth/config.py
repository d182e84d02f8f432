"""Service configuration and the environment resolver."""

import logging
import math
import os
from enum import Enum
from pathlib import Path
from typing import Mapping

from dotenv import dotenv_values
from pydantic import BaseModel, Field

from clients.service_client import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "todos"

ENV_BASE_URL = "REQRES_BASE_URL"
ENV_PROJECT_ID = "REQRES_PROJECT_ID"
ENV_PUBLIC_KEY = "REQRES_PUBLIC_KEY"
ENV_MANAGE_KEY = "REQRES_MANAGE_KEY"
ENV_COLLECTION_SLUG = "REQRES_COLLECTION_SLUG"
ENV_TIMEOUT_SECONDS = "REQRES_TIMEOUT_SECONDS"


class ConfigIssue(Enum):
    """A single missing configuration item, reported individually."""

    TENANT_ID = "tenant_id"
    PUBLIC_KEY = "public_key"
    MANAGE_KEY = "manage_key"
    COLLECTION = "collection_name"

    @property
    def message(self) -> str:
        return {
            ConfigIssue.TENANT_ID: "Add a project ID",
            ConfigIssue.PUBLIC_KEY: "Add the public project key",
            ConfigIssue.MANAGE_KEY: "Add the manage project key",
            ConfigIssue.COLLECTION: "Set a collection slug",
        }[self]


def normalize_base_url(value: str | None) -> str:
    """Trim whitespace and trailing slashes. Empty input stays empty."""
    if not value:
        return ""
    return value.strip().rstrip("/")


def parse_tenant_id(value: str | None) -> int | None:
    """
    Convert a tenant id to a positive integer.

    Anything else (empty, non-numeric, fractional, zero, negative) is
    reported as absent rather than raised.
    """
    if value is None or not value.strip():
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    if not number.is_integer() or number <= 0:
        return None
    return int(number)


def _parse_timeout(value: str | None) -> float | None:
    if not value or not value.strip():
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        logger.warning(f"Ignoring non-numeric {ENV_TIMEOUT_SECONDS}: {value!r}")
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        logger.warning(f"Ignoring out-of-range {ENV_TIMEOUT_SECONDS}: {value!r}")
        return None
    return seconds


class ServiceConfig(BaseModel):
    """
    Resolved configuration for the hosted service.

    Immutable for the lifetime of the process once resolved.
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Service base URL without trailing slash",
    )
    tenant_id: int | None = Field(
        default=None,
        description="Project identifier scoping all data and keys",
    )
    public_key: str = Field(
        default="",
        description="Key allowed to request one-time codes",
    )
    manage_key: str = Field(
        default="",
        description="Key allowed to verify one-time codes into sessions",
    )
    collection_name: str = Field(
        default=DEFAULT_COLLECTION,
        description="Slug of the record collection",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="Per-request timeout; None waits for the service",
        gt=0,
        allow_inf_nan=False,
    )

    model_config = {"frozen": True}

    @property
    def issues(self) -> list[ConfigIssue]:
        """Every missing item, in a stable order."""
        found = []
        if self.tenant_id is None:
            found.append(ConfigIssue.TENANT_ID)
        if not self.public_key:
            found.append(ConfigIssue.PUBLIC_KEY)
        if not self.manage_key:
            found.append(ConfigIssue.MANAGE_KEY)
        if not self.collection_name:
            found.append(ConfigIssue.COLLECTION)
        return found

    @property
    def ready(self) -> bool:
        return not self.issues

    @property
    def warnings(self) -> list[str]:
        """Human-readable form of issues."""
        return [issue.message for issue in self.issues]


def resolve_config(
    environ: Mapping[str, str] | None = None,
    env_file: Path | str | None = None,
) -> ServiceConfig:
    """
    Build ServiceConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)
        env_file: Optional .env file; its values take precedence over environ

    Never raises on bad values: unusable entries resolve to absent/defaults.
    """
    values = dict(os.environ if environ is None else environ)
    if env_file is not None:
        file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        values.update(file_values)

    def _get(name: str) -> str:
        return (values.get(name) or "").strip()

    config = ServiceConfig(
        base_url=normalize_base_url(_get(ENV_BASE_URL)) or DEFAULT_BASE_URL,
        tenant_id=parse_tenant_id(_get(ENV_PROJECT_ID)),
        public_key=_get(ENV_PUBLIC_KEY),
        manage_key=_get(ENV_MANAGE_KEY),
        collection_name=_get(ENV_COLLECTION_SLUG) or DEFAULT_COLLECTION,
        request_timeout_seconds=_parse_timeout(_get(ENV_TIMEOUT_SECONDS)),
    )

    if not config.ready:
        logger.warning(f"Configuration incomplete: {', '.join(config.warnings)}")

    return config
