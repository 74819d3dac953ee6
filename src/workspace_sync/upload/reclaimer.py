"""Post-upload reclaim of folders left empty by a reconciliation run."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from workspace_sync.remote.client import NotFoundOrPermissionDenied, RemoteServiceError
from workspace_sync.upload.models import ReclaimResult
from workspace_sync.workspace.paths import DEFAULT_MAX_DEPTH, folder_depth

if TYPE_CHECKING:
    from workspace_sync.remote.client import DocumentStoreClient
    from workspace_sync.workspace.cache import FolderTreeCache

logger = logging.getLogger(__name__)


class EmptyFolderReclaimer:
    """Deletes created folders that ended up empty, then their emptied ancestors.

    Every delete is preceded by a live re-check against the document store;
    the cache only supplies parent pointers and depths. Absence from a folder
    listing never counts as deleted, since listings are filtered views.
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        cache: FolderTreeCache,
        scope_id: int | None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialise the reclaimer.

        Args:
            client: Document store client for listings and deletes.
            cache: Session folder cache; deleted folders are evicted from it.
            scope_id: Organization whose folders are listed.
            max_depth: Bound on depth computation and upward walks.
        """
        self._client = client
        self._cache = cache
        self._scope_id = scope_id
        self._max_depth = max_depth

    async def reclaim(self, created_folder_ids: Iterable[int]) -> ReclaimResult:
        """Run one reclaim pass seeded with a run's created folders.

        Steps:
            1. Visit candidates deepest first so children go before parents.
            2. Check each candidate live; a 404 means it is already gone.
            3. Delete each live-empty candidate and walk up through parents
               that the delete left empty, created by this run or not.

        A failed check or delete ends that branch only. Running the pass on
        an already clean tree deletes nothing.

        Args:
            created_folder_ids: CreatedFolderSet of the reconciliation run.

        Returns:
            ReclaimResult listing deleted and failed folder ids.
        """
        result = ReclaimResult()
        candidates = list(dict.fromkeys(created_folder_ids))
        if not candidates:
            return result

        depths = {c: folder_depth(self._cache, c, self._max_depth) for c in candidates}
        candidates.sort(key=lambda c: depths[c], reverse=True)
        logger.info("[reclaim] starting; candidate_count:%d", len(candidates))

        for folder_id in candidates:
            await self._reclaim_branch(folder_id, result)

        logger.info(
            "[reclaim] complete; deleted:%d;failed:%d",
            len(result.deleted_folder_ids),
            len(result.failed_folder_ids),
        )
        return result

    async def _reclaim_branch(self, folder_id: int, result: ReclaimResult) -> None:
        # A parent found non-empty here may be emptied by a later candidate,
        # so only deleted folders are skipped across branches.
        visited: set[int] = set()
        current: int | None = folder_id
        while current is not None and len(visited) < self._max_depth:
            if current in visited or current in result.deleted_folder_ids:
                return
            visited.add(current)

            try:
                empty = await self._is_empty(current)
            except NotFoundOrPermissionDenied:
                logger.info("[reclaim] folder already gone; folder_id:%d", current)
                return
            except RemoteServiceError as exc:
                logger.warning(
                    "[reclaim] live check failed, keeping folder; folder_id:%d;error:%s",
                    current,
                    exc,
                )
                return
            if not empty:
                return

            node = self._cache.get(current)
            parent_id = node.parent_id if node is not None else None
            try:
                await self._client.delete_folder(current)
            except NotFoundOrPermissionDenied:
                logger.info("[reclaim] folder already gone; folder_id:%d", current)
                return
            except RemoteServiceError as exc:
                result.failed_folder_ids.append(current)
                logger.warning(
                    "[reclaim] delete failed; folder_id:%d;error:%s",
                    current,
                    exc,
                )
                return

            self._cache.evict(current)
            result.deleted_folder_ids.append(current)
            logger.info("[reclaim] deleted empty folder; folder_id:%d", current)
            current = parent_id

    async def _is_empty(self, folder_id: int) -> bool:
        """Check live state: no active files and no active subfolders."""
        page = await self._client.list_files(folder_id, page=1, page_size=1)
        if page.total > 0 or any(f.is_active for f in page.items):
            return False
        subfolders = await self._client.list_folders(self._scope_id, parent_id=folder_id)
        return not any(f.is_active for f in subfolders)
