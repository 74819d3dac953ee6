"""Client-side guard against cycle-forming folder moves."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from workspace_sync.errors import ValidationError
from workspace_sync.workspace.paths import DEFAULT_MAX_DEPTH, iter_ancestry

if TYPE_CHECKING:
    from workspace_sync.workspace.cache import FolderTreeCache

logger = logging.getLogger(__name__)

MOVE_INTO_SELF = "Cannot move folder into itself"
MOVE_INTO_DESCENDANT = "Cannot move folder into its own subfolder"


class ItemType(StrEnum):
    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class MoveItem:
    """A file or folder being dragged to a new parent."""

    id: int
    type: ItemType


class MoveValidator:
    """Rejects moves that would put a folder inside itself.

    Best effort only: the cache may be missing part of the tree, and the
    document store rejects cycle-forming moves on its own.
    """

    def __init__(self, cache: FolderTreeCache, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self._cache = cache
        self._max_depth = max_depth

    def can_move(self, item: MoveItem, target_folder_id: int | None) -> bool:
        return self._rejection(item, target_folder_id) is None

    def validate(self, item: MoveItem, target_folder_id: int | None) -> None:
        """Raise ValidationError if the move is known to form a cycle."""
        reason = self._rejection(item, target_folder_id)
        if reason is not None:
            logger.info(
                "[validate] move rejected; item_id:%d;target:%s;reason:%s",
                item.id,
                target_folder_id,
                reason,
            )
            raise ValidationError(reason)

    def _rejection(self, item: MoveItem, target_folder_id: int | None) -> str | None:
        if item.type == ItemType.FILE or target_folder_id is None:
            return None
        if target_folder_id == item.id:
            return MOVE_INTO_SELF
        for ancestor_id, _ in iter_ancestry(self._cache, target_folder_id, self._max_depth):
            if ancestor_id == item.id:
                return MOVE_INTO_DESCENDANT
        return None
