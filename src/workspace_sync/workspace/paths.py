"""Breadcrumb paths and bounded parent-chain walks over the folder cache."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workspace_sync.remote.models import FolderNode
    from workspace_sync.workspace.cache import FolderTreeCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100
DEFAULT_ROOT_LABEL = "My Drive"


@dataclass(frozen=True)
class Breadcrumb:
    """One entry of a root-to-leaf navigation path."""

    id: int | None
    name: str


def placeholder_name(folder_id: int) -> str:
    return f"Folder {folder_id}"


def iter_ancestry(
    cache: FolderTreeCache,
    folder_id: int | None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Iterator[tuple[int, FolderNode | None]]:
    """Walk from ``folder_id`` towards the root, leaf first.

    Yields ``(id, node)`` pairs; ``node`` is None for an id the cache has not
    observed, and the walk ends there because its parent is unknown. The walk
    also ends on a revisited id (cycle) or after ``max_depth`` steps; both are
    logged since a well-formed tree never triggers them.

    Args:
        cache: Folder cache to read parent pointers from.
        folder_id: Starting folder, or None for an empty walk.
        max_depth: Maximum number of folders to visit.
    """
    visited: set[int] = set()
    current = folder_id
    while current is not None:
        if current in visited:
            logger.warning(
                "[iter_ancestry] cycle detected in parent chain; start:%s;revisited:%s",
                folder_id,
                current,
            )
            return
        if len(visited) >= max_depth:
            logger.warning(
                "[iter_ancestry] parent chain exceeds max depth; start:%s;max_depth:%d",
                folder_id,
                max_depth,
            )
            return
        visited.add(current)
        node = cache.get(current)
        yield current, node
        if node is None:
            return
        current = node.parent_id


def folder_depth(
    cache: FolderTreeCache, folder_id: int | None, max_depth: int = DEFAULT_MAX_DEPTH
) -> int:
    """Return the distance from a null parent (root-level folders have depth 1)."""
    return sum(1 for _ in iter_ancestry(cache, folder_id, max_depth))


class PathResolver:
    """Builds breadcrumb paths from a possibly incomplete folder cache."""

    def __init__(
        self,
        cache: FolderTreeCache,
        root_label: str = DEFAULT_ROOT_LABEL,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._cache = cache
        self._root_label = root_label
        self._max_depth = max_depth

    def build_path(self, leaf_folder_id: int | None) -> list[Breadcrumb]:
        """Return the root-to-leaf breadcrumb path for a folder.

        Folders the cache has not seen yet are rendered as "Folder <id>"
        placeholders, and a cyclic or over-deep chain is cut short, so the
        result always starts with the root entry and this never raises.

        Args:
            leaf_folder_id: Folder being displayed, or None for the root.

        Returns:
            Breadcrumbs ordered from the root to the leaf.
        """
        trail: list[Breadcrumb] = []
        for folder_id, node in iter_ancestry(self._cache, leaf_folder_id, self._max_depth):
            name = node.name if node is not None else placeholder_name(folder_id)
            trail.append(Breadcrumb(id=folder_id, name=name))
        trail.append(Breadcrumb(id=None, name=self._root_label))
        trail.reverse()
        return trail
