"""Additive local replica of the document store's folder tree."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from workspace_sync.remote.models import FolderNode

logger = logging.getLogger(__name__)


class FolderTreeCache:
    """Eventually-consistent, partial view of folder metadata keyed by id.

    Listings returned by the store are filtered views, so merging one never
    removes entries it does not mention. The cache answers lookups for
    navigation and reconciliation; it is never the source of truth for a
    destructive decision.
    """

    def __init__(self, folders: Iterable[FolderNode] = ()) -> None:
        self._folders: dict[int, FolderNode] = {}
        self.merge(folders)

    def merge(self, folders: Iterable[FolderNode]) -> None:
        """Upsert folders by id; last writer wins."""
        for folder in folders:
            self._folders[folder.id] = folder

    def get(self, folder_id: int | None) -> FolderNode | None:
        if folder_id is None:
            return None
        return self._folders.get(folder_id)

    def evict(self, folder_id: int) -> None:
        """Drop a folder after a remote delete issued by this client succeeded."""
        if self._folders.pop(folder_id, None) is not None:
            logger.debug("[evict] evicted folder; folder_id:%d", folder_id)

    def children(self, parent_id: int | None) -> list[FolderNode]:
        """Return the cached active children of a folder (None for root)."""
        return [f for f in self._folders.values() if f.parent_id == parent_id and f.is_active]

    def find_active_child(self, parent_id: int | None, name: str) -> FolderNode | None:
        """Return the active child of ``parent_id`` named exactly ``name``.

        Deleted folders never match, so their names can be reused.
        """
        for folder in self._folders.values():
            if folder.parent_id == parent_id and folder.name == name and folder.is_active:
                return folder
        return None

    def folders(self) -> list[FolderNode]:
        return list(self._folders.values())

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self._folders

    def __len__(self) -> int:
        return len(self._folders)

    def __iter__(self) -> Iterator[FolderNode]:
        return iter(list(self._folders.values()))
