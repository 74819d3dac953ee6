"""Data models for document store folders, files and listing pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# Document store JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_PARENT_ID = "parent_id"
FIELD_STATUS = "status"
FIELD_CREATED_AT = "created_at"
FIELD_UPDATED_AT = "updated_at"
FIELD_FILE_COUNT = "file_count"
FIELD_FOLDER_ID = "folder_id"
FIELD_FILE_SIZE = "file_size"
FIELD_FILE_TYPE = "file_type"
FIELD_LAST_MODIFIED_AT = "last_modified_at"
FIELD_LAST_MODIFIED_BY = "last_modified_by"
FIELD_LAST_ACCESSED_AT = "last_accessed_at"
FIELD_LAST_ACCESSED_BY = "last_accessed_by"
FIELD_IS_STARRED = "is_starred"

# Response envelope keys
RESPONSE_SUCCESS = "success"
RESPONSE_DATA = "data"
RESPONSE_MESSAGE = "message"
RESPONSE_PAGINATION = "pagination"

STATUS_ACTIVE = "active"
STATUS_DELETED = "deleted"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _optional_id(value: Any) -> int | None:
    # The store uses both NULL and 0 for "no parent".
    if value in (None, "", 0, "0", "null"):
        return None
    return int(value)


@dataclass(frozen=True)
class FolderNode:
    """Read-only copy of a folder owned by the document store."""

    id: int
    name: str
    parent_id: int | None = None
    status: str = STATUS_ACTIVE
    created_at: datetime | None = None
    file_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> FolderNode:
        """Map a raw folder record to a FolderNode."""
        return cls(
            id=int(raw[FIELD_ID]),
            name=raw.get(FIELD_NAME, ""),
            parent_id=_optional_id(raw.get(FIELD_PARENT_ID)),
            status=raw.get(FIELD_STATUS) or STATUS_ACTIVE,
            created_at=parse_timestamp(raw.get(FIELD_CREATED_AT)),
            file_count=int(raw.get(FIELD_FILE_COUNT) or 0),
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize back to the document store's record shape."""
        return {
            FIELD_ID: self.id,
            FIELD_NAME: self.name,
            FIELD_PARENT_ID: self.parent_id,
            FIELD_STATUS: self.status,
            FIELD_CREATED_AT: format_timestamp(self.created_at),
            FIELD_FILE_COUNT: self.file_count,
        }


@dataclass(frozen=True)
class FileNode:
    """Read-only copy of a file record."""

    id: int
    name: str
    folder_id: int | None = None
    size: int = 0
    type: str = ""
    status: str = STATUS_ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_modified_at: datetime | None = None
    last_accessed_at: datetime | None = None
    last_modified_by: int | None = None
    last_accessed_by: int | None = None
    starred: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> FileNode:
        """Map a raw file record to a FileNode."""
        return cls(
            id=int(raw[FIELD_ID]),
            name=raw.get(FIELD_NAME, ""),
            folder_id=_optional_id(raw.get(FIELD_FOLDER_ID)),
            size=int(raw.get(FIELD_FILE_SIZE) or 0),
            type=raw.get(FIELD_FILE_TYPE) or "",
            status=raw.get(FIELD_STATUS) or STATUS_ACTIVE,
            created_at=parse_timestamp(raw.get(FIELD_CREATED_AT)),
            updated_at=parse_timestamp(raw.get(FIELD_UPDATED_AT)),
            last_modified_at=parse_timestamp(raw.get(FIELD_LAST_MODIFIED_AT)),
            last_accessed_at=parse_timestamp(raw.get(FIELD_LAST_ACCESSED_AT)),
            last_modified_by=_optional_id(raw.get(FIELD_LAST_MODIFIED_BY)),
            last_accessed_by=_optional_id(raw.get(FIELD_LAST_ACCESSED_BY)),
            starred=bool(raw.get(FIELD_IS_STARRED)),
        )


@dataclass
class FilePage:
    """One page of a file listing."""

    items: list[FileNode] = field(default_factory=list)
    page: int = 1
    limit: int = 0
    total: int = 0
    pages: int = 0
