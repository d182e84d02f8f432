"""Pydantic models for auth domain."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from utils.timezone import try_parse_iso


class Session(BaseModel):
    """A signed-in end-user session issued by the service."""

    token: str = Field(..., min_length=1, description="Bearer token (opaque string)")
    expires_at: str = Field(..., description="Expiry as sent by the service")
    tenant_id: int | None = None
    owner_email: str = ""

    model_config = {"frozen": True}

    @property
    def expires_at_datetime(self) -> datetime | None:
        """Parsed expiry, or None when the service sent something unparseable."""
        return try_parse_iso(self.expires_at)


class OneTimeCodeResult(BaseModel):
    """Outcome of a one-time code request. Transient, never persisted."""

    issued: bool
    code: str | None = None
    delivery_link: str | None = None
    expires_in_minutes: float | None = None
    note: str | None = None
    message: str | None = None


class OperatorProfile(BaseModel):
    """Read-only mirror of the signed-in user as the service sees them."""

    id: str
    email: str
    tenant_id: int | None = Field(default=None, alias="project_id")
    status: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, value: Any) -> Any:
        return {} if value is None else value
