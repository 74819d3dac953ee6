"""Workspace session: owns the folder cache and wires the engine together."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from workspace_sync.remote.client import (
    ANY_PARENT,
    DocumentStoreClient,
    ProgressCallback,
    document_store_client_from_config,
)
from workspace_sync.upload.models import UploadEntry, UploadReport, validate_batch
from workspace_sync.upload.reclaimer import EmptyFolderReclaimer
from workspace_sync.upload.reconciler import BulkUploadReconciler, FolderCreationGuard
from workspace_sync.workspace.cache import FolderTreeCache
from workspace_sync.workspace.moves import ItemType, MoveItem, MoveValidator
from workspace_sync.workspace.paths import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_ROOT_LABEL,
    Breadcrumb,
    PathResolver,
)
from workspace_sync.workspace.sorting import SortCriterion, SortOrder, sort_items

if TYPE_CHECKING:
    from workspace_sync.config import AppConfig
    from workspace_sync.remote.models import FileNode, FolderNode

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


@dataclass
class FolderContents:
    """A folder's breadcrumbs plus its sorted subfolders and files."""

    folder_id: int | None
    breadcrumbs: list[Breadcrumb]
    folders: list[FolderNode] = field(default_factory=list)
    files: list[FileNode] = field(default_factory=list)


class WorkspaceSession:
    """Caller-owned context threaded through every engine operation.

    Holds the remote client, the organization scope and the folder cache
    that uploads, breadcrumbs and move checks share. Nothing here is global:
    two sessions never see each other's cache.
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        scope_id: int | None,
        cache: FolderTreeCache | None = None,
        acting_user_id: int | None = None,
        root_label: str = DEFAULT_ROOT_LABEL,
        max_depth: int = DEFAULT_MAX_DEPTH,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialise the session.

        Args:
            client: Document store client.
            scope_id: Organization whose folder tree this session mirrors.
            cache: Existing cache to continue from; a fresh one when omitted.
            acting_user_id: Current user, for the "by me" sort criteria.
            root_label: Breadcrumb label of the root folder.
            max_depth: Bound on every parent-chain walk.
            page_size: Page size used when listing files.
        """
        self._client = client
        self._scope_id = scope_id
        self._cache = cache if cache is not None else FolderTreeCache()
        self._acting_user_id = acting_user_id
        self._max_depth = max_depth
        self._page_size = page_size
        self._guard = FolderCreationGuard()
        self._paths = PathResolver(self._cache, root_label=root_label, max_depth=max_depth)
        self._moves = MoveValidator(self._cache, max_depth=max_depth)

    @property
    def cache(self) -> FolderTreeCache:
        return self._cache

    @property
    def client(self) -> DocumentStoreClient:
        return self._client

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> WorkspaceSession:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def refresh_folders(
        self, parent_id: int | None | Any = ANY_PARENT, search: str | None = None
    ) -> list[FolderNode]:
        """List folders from the store and merge them into the cache."""
        folders = await self._client.list_folders(self._scope_id, parent_id=parent_id, search=search)
        self._cache.merge(folders)
        logger.debug(
            "[refresh_folders] merged listing; parent_id:%s;folder_count:%d;cache_size:%d",
            parent_id,
            len(folders),
            len(self._cache),
        )
        return folders

    def breadcrumbs(self, folder_id: int | None) -> list[Breadcrumb]:
        return self._paths.build_path(folder_id)

    def can_move(self, item: MoveItem, target_folder_id: int | None) -> bool:
        return self._moves.can_move(item, target_folder_id)

    async def move(self, item: MoveItem, target_folder_id: int | None) -> None:
        """Validate a move locally, then ask the store to perform it.

        Raises:
            ValidationError: If the move would put a folder inside itself.
            RemoteServiceError: If the store rejects or fails the move.
        """
        self._moves.validate(item, target_folder_id)
        if item.type == ItemType.FILE:
            await self._client.move_file(item.id, target_folder_id)
        else:
            await self._client.move_folder(item.id, target_folder_id)
            node = self._cache.get(item.id)
            if node is not None:
                self._cache.merge([replace(node, parent_id=target_folder_id)])
        logger.info(
            "[move] moved item; type:%s;item_id:%d;target:%s",
            item.type,
            item.id,
            target_folder_id,
        )

    async def upload(
        self,
        entries: Sequence[UploadEntry],
        base_folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UploadReport:
        """Upload a batch of path-carrying files, then reclaim emptied folders.

        Existing folders are found through live per-parent listings, so a
        cached folder deleted elsewhere is never reused.

        Returns:
            UploadReport combining the reconciliation and reclaim outcomes.

        Raises:
            ValidationError: If any upload path is malformed.
        """
        validate_batch(entries)
        reconciler = BulkUploadReconciler(
            self._client, self._cache, self._guard, scope_id=self._scope_id
        )
        upload_result = await reconciler.reconcile(entries, base_folder_id, on_progress)

        reclaimer = EmptyFolderReclaimer(
            self._client, self._cache, self._scope_id, max_depth=self._max_depth
        )
        reclaim_result = await reclaimer.reclaim(upload_result.created_folder_ids)
        return UploadReport(upload=upload_result, reclaim=reclaim_result)

    async def list_contents(
        self,
        folder_id: int | None,
        criterion: SortCriterion | str = SortCriterion.NAME,
        order: SortOrder | str = SortOrder.ASC,
    ) -> FolderContents:
        """Fetch a folder's live contents and sort folders and files separately."""
        folders = await self.refresh_folders(parent_id=folder_id)
        files: list[FileNode] = []
        page = 1
        while True:
            listing = await self._client.list_files(folder_id, page=page, page_size=self._page_size)
            files.extend(listing.items)
            if page >= listing.pages or not listing.items:
                break
            page += 1

        return FolderContents(
            folder_id=folder_id,
            breadcrumbs=self.breadcrumbs(folder_id),
            folders=sort_items(
                [f for f in folders if f.is_active], criterion, order, self._acting_user_id
            ),
            files=sort_items(files, criterion, order, self._acting_user_id),
        )


def workspace_session_from_config(
    config: AppConfig,
    api_token: str | None = None,
    folders: Sequence[FolderNode] = (),
) -> WorkspaceSession:
    """Construct a WorkspaceSession from application configuration.

    Args:
        config: Application configuration instance.
        api_token: Bearer token forwarded by the caller, if any.
        folders: Previously observed folders (e.g. a cache snapshot) to start from.

    Returns:
        Configured WorkspaceSession instance.
    """
    client = document_store_client_from_config(config, api_token)
    return WorkspaceSession(
        client=client,
        scope_id=config.organization_id,
        cache=FolderTreeCache(folders),
        acting_user_id=config.acting_user_id,
        root_label=config.root_label,
        max_depth=config.max_depth,
        page_size=config.list_page_size,
    )
