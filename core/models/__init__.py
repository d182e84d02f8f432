"""Core domain models."""

from core.models.record import (
    Record,
    RecordFields,
    RecordPage,
    PageState,
    SortOrder,
    FilterMode,
    MIN_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
)

__all__ = [
    "Record", "RecordFields", "RecordPage", "PageState",
    "SortOrder", "FilterMode",
    "MIN_PAGE_SIZE", "MAX_PAGE_SIZE", "DEFAULT_PAGE_SIZE",
]
