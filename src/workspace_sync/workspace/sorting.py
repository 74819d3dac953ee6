"""Deterministic ordering of folder and file listings."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Sequence
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypeVar

T = TypeVar("T")

_DIGITS = re.compile(r"(\d+)")
_EPOCH = datetime.min.replace(tzinfo=UTC)


class SortCriterion(StrEnum):
    NAME = "name"
    DATE_MODIFIED = "dateModified"
    DATE_MODIFIED_BY_ME = "dateModifiedByMe"
    DATE_OPENED_BY_ME = "dateOpenedByMe"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _natural(text: str) -> tuple[Any, ...]:
    # re.split with a capture group alternates text and digit runs, starting
    # with text, so positions always compare str-to-str and int-to-int.
    parts = _DIGITS.split(text)
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def natural_key(name: str) -> tuple[Any, ...]:
    """Sort key for case- and accent-insensitive, numeric-aware name ordering.

    Accented and differently-cased spellings of the same name are ordered by
    their case-folded form as a tie-break.
    """
    return (_natural(_fold(name)), _natural(name.casefold()))


def modified_at(item: Any) -> datetime | None:
    """Last modification time, falling back to updated_at then created_at."""
    for attr in ("last_modified_at", "updated_at", "created_at"):
        value = getattr(item, attr, None)
        if value is not None:
            return value
    return None


def _stamp_by(item: Any, stamp_attr: str, actor_attr: str, user_id: int | None) -> datetime | None:
    if user_id is None or getattr(item, actor_attr, None) != user_id:
        return None
    return getattr(item, stamp_attr, None)


def sort_items(
    items: Sequence[T],
    criterion: SortCriterion | str,
    order: SortOrder | str = SortOrder.ASC,
    acting_user_id: int | None = None,
) -> list[T]:
    """Return a sorted copy of one listing (files or folders, never mixed).

    Sorting is stable in both directions. For the "by me" criteria only
    timestamps recorded against ``acting_user_id`` count, and items without
    one always follow every qualifying item, whatever the order.

    Args:
        items: FileNode or FolderNode instances.
        criterion: One of SortCriterion.
        order: SortOrder.ASC or SortOrder.DESC.
        acting_user_id: Current user for the "by me" criteria.

    Raises:
        ValueError: If criterion or order is not recognised.
    """
    criterion = SortCriterion(criterion)
    descending = SortOrder(order) == SortOrder.DESC

    if criterion == SortCriterion.NAME:
        return sorted(items, key=lambda i: natural_key(getattr(i, "name", "")), reverse=descending)

    if criterion == SortCriterion.DATE_MODIFIED:
        return sorted(items, key=lambda i: modified_at(i) or _EPOCH, reverse=descending)

    if criterion == SortCriterion.DATE_MODIFIED_BY_ME:
        stamp_attr, actor_attr = "last_modified_at", "last_modified_by"
    else:
        stamp_attr, actor_attr = "last_accessed_at", "last_accessed_by"

    qualifying: list[tuple[datetime, T]] = []
    untouched: list[T] = []
    for item in items:
        stamp = _stamp_by(item, stamp_attr, actor_attr, acting_user_id)
        if stamp is None:
            untouched.append(item)
        else:
            qualifying.append((stamp, item))
    qualifying.sort(key=lambda pair: pair[0], reverse=descending)
    return [item for _, item in qualifying] + untouched
