"""Folder cache snapshots persisted in Azure Blob Storage."""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from workspace_sync.remote.models import FolderNode

if TYPE_CHECKING:
    from workspace_sync.config import AppConfig
    from workspace_sync.workspace.cache import FolderTreeCache

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_CONTAINER = "workspace-sync-state"
DEFAULT_SNAPSHOT_BLOB = "folder-cache/current.json"


class CacheSnapshotStore:
    """Persists cached folder nodes between stateless invocations.

    A snapshot only warms the cache: it is merged additively and re-queried
    state always wins over it.
    """

    def __init__(
        self,
        storage_connection_string: str,
        container: str = DEFAULT_SNAPSHOT_CONTAINER,
        blob: str = DEFAULT_SNAPSHOT_BLOB,
    ) -> None:
        """Initialise the snapshot store.

        Args:
            storage_connection_string: Azure Storage connection string.
            container: Blob container name for snapshot storage.
            blob: Blob path of the snapshot document.
        """
        self._blob_service = BlobServiceClient.from_connection_string(storage_connection_string)
        self._container = container
        self._blob = blob

    def load(self) -> list[FolderNode]:
        """Read the persisted folder nodes.

        Returns:
            The stored folders, or an empty list if no snapshot exists yet or
            the stored document is unreadable.
        """
        try:
            container_client = self._blob_service.get_container_client(self._container)
            blob_client = container_client.get_blob_client(self._blob)
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            logger.info("[load_snapshot] no cache snapshot found, starting cold")
            return []
        try:
            folders = [FolderNode.from_api(raw) for raw in json.loads(data)]
        except (ValueError, TypeError, KeyError):
            logger.warning("[load_snapshot] ignoring unreadable cache snapshot; blob:%s", self._blob)
            return []
        logger.info("[load_snapshot] loaded cache snapshot; folder_count:%d", len(folders))
        return folders

    def save(self, cache: FolderTreeCache) -> None:
        """Write every cached folder, creating the container if needed."""
        container_client = self._blob_service.get_container_client(self._container)
        with contextlib.suppress(Exception):
            container_client.create_container()

        payload = json.dumps([folder.to_api() for folder in cache.folders()])
        blob_client = container_client.get_blob_client(self._blob)
        blob_client.upload_blob(payload.encode("utf-8"), overwrite=True)
        logger.info("[save_snapshot] saved cache snapshot; folder_count:%d", len(cache))


def snapshot_store_from_config(config: AppConfig) -> CacheSnapshotStore:
    """Construct a CacheSnapshotStore from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured CacheSnapshotStore instance.
    """
    return CacheSnapshotStore(
        storage_connection_string=config.storage_connection_string,
        container=config.snapshot_container,
        blob=config.snapshot_blob,
    )
