"""Data models for upload batches and their outcomes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from workspace_sync.errors import ValidationError


def split_relative_path(relative_path: str) -> tuple[tuple[str, ...], str]:
    """Split a relative upload path into directory segments and a filename.

    Backslashes count as separators; empty and "." segments are dropped.

    Raises:
        ValidationError: If the path climbs with ".." or has no filename.
    """
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p not in ("", ".")]
    if ".." in parts:
        raise ValidationError(f"Upload path may not contain '..': {relative_path!r}")
    if not parts:
        raise ValidationError(f"Upload path has no filename: {relative_path!r}")
    return tuple(parts[:-1]), parts[-1]


@dataclass(frozen=True)
class UploadEntry:
    """One file of an upload batch.

    Attributes:
        relative_path: "/"-joined directory names followed by the filename
            (e.g. "ProjectX/Notes/todo.txt"); a bare filename lands directly
            in the base folder.
        content: Raw file bytes.
    """

    relative_path: str
    content: bytes = b""

    @property
    def directories(self) -> tuple[str, ...]:
        return split_relative_path(self.relative_path)[0]

    @property
    def filename(self) -> str:
        return split_relative_path(self.relative_path)[1]


@dataclass
class UploadResult:
    """Aggregate outcome of one reconciliation run.

    Attributes:
        succeeded: Files uploaded.
        failed: Files whose upload, or whose folder creation, failed.
        created_folder_ids: Folders created during this run, in creation order.
    """

    succeeded: int = 0
    failed: int = 0
    created_folder_ids: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


@dataclass
class ReclaimResult:
    """Outcome of one empty-folder reclaim pass."""

    deleted_folder_ids: list[int] = field(default_factory=list)
    failed_folder_ids: list[int] = field(default_factory=list)


@dataclass
class UploadReport:
    """Upload followed by its reclaim pass."""

    upload: UploadResult
    reclaim: ReclaimResult


def validate_batch(entries: Sequence[UploadEntry]) -> None:
    """Reject a batch up front if any of its paths is malformed.

    Raises:
        ValidationError: For the first malformed path found.
    """
    for entry in entries:
        split_relative_path(entry.relative_path)
