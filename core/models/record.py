"""Record domain models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class SortOrder(str, Enum):
    """Server-side ordering over creation time."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: "SortOrder | str | None") -> "SortOrder":
        """Anything other than 'asc' means newest first."""
        if isinstance(value, cls):
            return value
        return cls.ASC if str(value or "").lower() == "asc" else cls.DESC


class FilterMode(str, Enum):
    """Local completion filter over the loaded page."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


def _as_completed(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


class RecordFields(BaseModel):
    """Client-supplied record content. Unknown keys are carried through."""

    title: str = ""
    notes: str = ""
    completed: bool = False

    model_config = {"extra": "allow"}

    @classmethod
    def from_data(cls, data: dict[str, Any] | None) -> "RecordFields":
        """Normalize whatever the service stored into well-typed fields."""
        source = dict(data or {})
        title = source.pop("title", "")
        notes = source.pop("notes", "")
        completed = source.pop("completed", False)
        return cls(
            title=title if isinstance(title, str) else "",
            notes=notes if isinstance(notes, str) else "",
            completed=_as_completed(completed),
            **source,
        )

    def trimmed(self) -> "RecordFields":
        """Copy with title and notes stripped of surrounding whitespace."""
        return self.model_copy(update={"title": self.title.strip(), "notes": self.notes.strip()})

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


class Record(BaseModel):
    """One item in the collection, as returned by the service."""

    id: str
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None
    owner_id: str | None = Field(default=None, alias="app_user_id")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator("data", mode="before")
    @classmethod
    def default_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def fields(self) -> RecordFields:
        return RecordFields.from_data(self.data)

    @property
    def completed(self) -> bool:
        return self.fields.completed


class PageState(BaseModel):
    """Pagination metadata. Server-reported values win over local estimates."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=MIN_PAGE_SIZE, le=MAX_PAGE_SIZE)
    total: int = Field(default=0, ge=0)
    pages: int = Field(default=1, ge=1)


class RecordPage(BaseModel):
    """One page of records plus its pagination metadata."""

    records: list[Record]
    page_state: PageState
