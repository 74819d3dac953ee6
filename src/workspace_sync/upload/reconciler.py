"""Bulk upload reconciliation of path-carrying files onto the folder tree."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from workspace_sync.remote.client import ProgressCallback, RemoteServiceError
from workspace_sync.remote.models import STATUS_ACTIVE, FolderNode
from workspace_sync.upload.models import UploadEntry, UploadResult, split_relative_path

if TYPE_CHECKING:
    from workspace_sync.remote.client import DocumentStoreClient
    from workspace_sync.workspace.cache import FolderTreeCache

logger = logging.getLogger(__name__)

# Live children of one parent by name; None when the listing failed.
ChildListing = dict[str, int] | None


class FolderCreationGuard:
    """Serialises folder creation per (parent_id, name).

    Shared by every reconciliation run of a session, so two runs racing to
    create the same folder end up with one remote create; the loser finds
    the winner's folder recorded here once it holds the lock.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[int | None, str], asyncio.Lock] = {}
        self._created: dict[tuple[int | None, str], int] = {}

    def lock_for(self, parent_id: int | None, name: str) -> asyncio.Lock:
        return self._locks.setdefault((parent_id, name), asyncio.Lock())

    def created_id(self, parent_id: int | None, name: str) -> int | None:
        return self._created.get((parent_id, name))

    def record(self, parent_id: int | None, name: str, folder_id: int) -> None:
        self._created[(parent_id, name)] = folder_id


def group_by_directory(
    entries: Sequence[UploadEntry],
) -> dict[tuple[str, ...], list[UploadEntry]]:
    """Group entries by directory segments, shallowest groups first.

    The empty tuple groups files that land directly in the base folder.
    Groups of equal depth keep their first-seen order.

    Raises:
        ValidationError: If any entry's path is malformed.
    """
    groups: dict[tuple[str, ...], list[UploadEntry]] = {}
    for entry in entries:
        directories, _ = split_relative_path(entry.relative_path)
        groups.setdefault(directories, []).append(entry)
    return {key: groups[key] for key in sorted(groups, key=len)}


class BulkUploadReconciler:
    """Creates missing folders for a batch and uploads its files into them.

    Folder creation and uploads run strictly one after another: each lookup
    must see the folders created by the previous step.
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        cache: FolderTreeCache,
        creation_guard: FolderCreationGuard | None = None,
        scope_id: int | None = None,
    ) -> None:
        """Initialise the reconciler.

        Args:
            client: Document store client used to create folders and upload files.
            cache: Session folder cache; listed and created folders are merged into it.
            creation_guard: Guard shared across runs; a private one when omitted.
            scope_id: Organization whose folders are listed.
        """
        self._client = client
        self._cache = cache
        self._guard = creation_guard or FolderCreationGuard()
        self._scope_id = scope_id

    async def reconcile(
        self,
        entries: Sequence[UploadEntry],
        base_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadResult:
        """Upload a batch, creating only the folders that do not exist yet.

        Steps:
            1. Validate and group entries by directory path, shallowest first.
            2. Resolve each group's folder from ``base_folder_id``. Every parent
               on the way is listed live once per run; an active child with
               the exact name is reused and the rest are created.
            3. Upload the group's files into the resolved folder.

        The cache is consulted for reuse only when a parent's live listing
        fails, since it may still hold folders deleted elsewhere.

        A failed upload is counted and skipped. A failed folder creation fails
        that group's files only. Progress (files done / total) is reported
        after every file.

        Args:
            entries: Files with their relative paths.
            base_folder_id: Destination folder, or None for the root.
            on_progress: Optional callback receiving the completed fraction.

        Returns:
            UploadResult with counts and the ids of folders created by this run.

        Raises:
            ValidationError: If any path is malformed; nothing is sent then.
        """
        groups = group_by_directory(entries)
        total = len(entries)
        result = UploadResult()
        listings: dict[int | None, ChildListing] = {}
        completed = 0

        logger.info(
            "[reconcile] starting; file_count:%d;group_count:%d;base_folder_id:%s",
            total,
            len(groups),
            base_folder_id,
        )

        for directories, group in groups.items():
            try:
                target_id = await self._resolve_folder(
                    directories, base_folder_id, result, listings
                )
            except RemoteServiceError as exc:
                logger.warning(
                    "[reconcile] folder creation failed, skipping group; path:%s;file_count:%d;error:%s",
                    "/".join(directories),
                    len(group),
                    exc,
                )
                for _ in group:
                    result.failed += 1
                    completed += 1
                    self._report(on_progress, completed, total)
                continue

            for entry in group:
                await self._upload_one(entry, target_id, result)
                completed += 1
                self._report(on_progress, completed, total)

        logger.info(
            "[reconcile] complete; succeeded:%d;failed:%d;created_folders:%d",
            result.succeeded,
            result.failed,
            len(result.created_folder_ids),
        )
        return result

    async def _resolve_folder(
        self,
        directories: tuple[str, ...],
        base_folder_id: int | None,
        result: UploadResult,
        listings: dict[int | None, ChildListing],
    ) -> int | None:
        parent_id = base_folder_id
        for name in directories:
            parent_id = await self._ensure_folder(parent_id, name, result, listings)
        return parent_id

    async def _ensure_folder(
        self,
        parent_id: int | None,
        name: str,
        result: UploadResult,
        listings: dict[int | None, ChildListing],
    ) -> int:
        existing = await self._find_child(parent_id, name, result, listings)
        if existing is not None:
            return existing

        async with self._guard.lock_for(parent_id, name):
            # Another run may have created it while we waited; a reclaimed
            # folder has been evicted and is not reused.
            created = self._guard.created_id(parent_id, name)
            if created is not None and created in self._cache:
                return created

            folder_id = await self._client.create_folder(name, parent_id)
            self._cache.merge(
                [
                    FolderNode(
                        id=folder_id,
                        name=name,
                        parent_id=parent_id,
                        status=STATUS_ACTIVE,
                        created_at=datetime.now(tz=UTC),
                    )
                ]
            )
            self._guard.record(parent_id, name, folder_id)
            result.created_folder_ids.append(folder_id)
            return folder_id

    async def _find_child(
        self,
        parent_id: int | None,
        name: str,
        result: UploadResult,
        listings: dict[int | None, ChildListing],
    ) -> int | None:
        if parent_id not in listings:
            listings[parent_id] = await self._list_children(parent_id, result)
        listing = listings[parent_id]
        if listing is None:
            cached = self._cache.find_active_child(parent_id, name)
            return cached.id if cached is not None else None
        return listing.get(name)

    async def _list_children(self, parent_id: int | None, result: UploadResult) -> ChildListing:
        # A folder this run created starts out empty.
        if parent_id is not None and parent_id in result.created_folder_ids:
            return {}
        try:
            folders = await self._client.list_folders(self._scope_id, parent_id=parent_id)
        except RemoteServiceError as exc:
            logger.warning(
                "[reconcile] folder listing failed, using cache; parent_id:%s;error:%s",
                parent_id,
                exc,
            )
            return None
        self._cache.merge(folders)
        children: dict[str, int] = {}
        for folder in folders:
            if folder.is_active and folder.parent_id == parent_id:
                children.setdefault(folder.name, folder.id)
        return children

    async def _upload_one(
        self, entry: UploadEntry, folder_id: int | None, result: UploadResult
    ) -> None:
        try:
            await self._client.upload_file(entry.content, entry.filename, folder_id)
        except RemoteServiceError as exc:
            result.failed += 1
            logger.warning(
                "[reconcile] upload failed; path:%s;folder_id:%s;error:%s",
                entry.relative_path,
                folder_id,
                exc,
            )
            return
        result.succeeded += 1

    @staticmethod
    def _report(on_progress: ProgressCallback | None, completed: int, total: int) -> None:
        if on_progress is not None and total:
            on_progress(completed / total)
