"""Async document store API client."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx

from workspace_sync.remote.models import (
    RESPONSE_DATA,
    RESPONSE_MESSAGE,
    RESPONSE_PAGINATION,
    RESPONSE_SUCCESS,
    FileNode,
    FilePage,
    FolderNode,
)

if TYPE_CHECKING:
    from workspace_sync.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 50

ProgressCallback = Callable[[float], None]


class _AnyParent:
    def __repr__(self) -> str:
        return "ANY_PARENT"


# Passed as parent_id to omit the parent filter. The store then answers with
# root folders, or with every name match when a search term is given.
ANY_PARENT: Any = _AnyParent()


class RemoteServiceError(Exception):
    """Raised when the document store rejects or fails a request."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Document store error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class TransientNetworkError(RemoteServiceError):
    """Raised for transport failures, timeouts, throttling and 5xx responses."""


class NotFoundOrPermissionDenied(RemoteServiceError):
    """Raised when the target does not exist or the caller may not access it."""


class DocumentStoreClient:
    """Authenticated async client for the document store REST API.

    The client never retries; retry and backoff belong to the transport.
    """

    def __init__(
        self,
        base_url: str,
        api_token: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise the underlying httpx client.

        Args:
            base_url: API root, e.g. "http://localhost:5000/api".
            api_token: Bearer token sent with every request; omitted when empty.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> DocumentStoreClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the response envelope.

        Returns:
            The ``data`` member of the envelope (may be None).

        Raises:
            TransientNetworkError: Transport failure, 429 or 5xx.
            NotFoundOrPermissionDenied: 401, 403 or 404.
            RemoteServiceError: Any other failure, including success=false.
        """
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("[_request] transport failure; method:%s;path:%s", method, path)
            raise TransientNetworkError(0, str(exc) or type(exc).__name__) from exc

        body = self._parse_body(response)
        message = str(body.get(RESPONSE_MESSAGE) or response.reason_phrase or "")
        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientNetworkError(status, message)
        if status in (401, 403, 404):
            raise NotFoundOrPermissionDenied(status, message)
        if status >= 400:
            raise RemoteServiceError(status, message)
        if body.get(RESPONSE_SUCCESS) is False:
            raise RemoteServiceError(status, message or "Request was not successful")
        return body.get(RESPONSE_DATA)

    @staticmethod
    def _parse_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def create_folder(self, name: str, parent_id: int | None = None) -> int:
        """Create a folder and return its server-assigned id."""
        data = await self._request(
            "POST", "/files/folders", json={"name": name, "parentId": parent_id}
        )
        folder_id = int((data or {})["folderId"])
        logger.info(
            "[create_folder] created folder; folder_id:%d;parent_id:%s;name:%s",
            folder_id,
            parent_id,
            name,
        )
        return folder_id

    async def list_folders(
        self,
        scope_id: int | None,
        parent_id: int | None | Any = ANY_PARENT,
        search: str | None = None,
    ) -> list[FolderNode]:
        """List active folders of a scope.

        The result is a filtered view: a folder missing from it may still exist.

        Args:
            scope_id: Organization id; None lets the server use the caller's own.
            parent_id: Folder whose children to list, None for root folders,
                or ANY_PARENT to omit the filter (root folders, or every
                match when searching).
            search: Optional case-insensitive name filter.
        """
        params: dict[str, Any] = {}
        if scope_id is not None:
            params["organizationId"] = scope_id
        if parent_id is not ANY_PARENT:
            params["parentId"] = "null" if parent_id is None else parent_id
        if search:
            params["q"] = search
        data = await self._request("GET", "/files/folders/list", params=params)
        return [FolderNode.from_api(raw) for raw in data or []]

    async def list_files(
        self,
        folder_id: int | None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> FilePage:
        """List one page of active files in a folder (None for root files)."""
        params = {
            "page": page,
            "limit": page_size,
            "folderId": "null" if folder_id is None else folder_id,
        }
        data = await self._request("GET", "/files", params=params) or {}
        items = [FileNode.from_api(raw) for raw in data.get(RESPONSE_DATA) or []]
        pagination = data.get(RESPONSE_PAGINATION) or {}
        return FilePage(
            items=items,
            page=int(pagination.get("page", page)),
            limit=int(pagination.get("limit", page_size)),
            total=int(pagination.get("total", len(items))),
            pages=int(pagination.get("pages", 1 if items else 0)),
        )

    async def delete_folder(self, folder_id: int) -> None:
        """Delete a folder; the store refuses non-empty folders."""
        await self._request("DELETE", f"/files/folders/{folder_id}")
        logger.info("[delete_folder] deleted folder; folder_id:%d", folder_id)

    async def move_file(self, file_id: int, new_parent_id: int | None) -> None:
        await self._request("PUT", f"/files/{file_id}/move", json={"folderId": new_parent_id})

    async def move_folder(self, folder_id: int, new_parent_id: int | None) -> None:
        await self._request(
            "PUT", f"/files/folders/{folder_id}/move", json={"parentId": new_parent_id}
        )

    async def upload_file(
        self,
        content: bytes,
        filename: str,
        folder_id: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """Upload one file and return its new id.

        ``on_progress`` receives 0.0 when the request starts and 1.0 once the
        store has accepted the file.
        """
        form: dict[str, str] = {"name": filename}
        if folder_id is not None:
            form["folderId"] = str(folder_id)
        if on_progress is not None:
            on_progress(0.0)
        data = await self._request(
            "POST", "/files/upload", data=form, files={"file": (filename, content)}
        )
        if on_progress is not None:
            on_progress(1.0)
        return int((data or {})["fileId"])


def document_store_client_from_config(
    config: AppConfig, api_token: str | None = None
) -> DocumentStoreClient:
    """Construct a DocumentStoreClient from application configuration.

    Args:
        config: Application configuration instance.
        api_token: Token forwarded by the caller; falls back to config.api_token.

    Returns:
        Configured DocumentStoreClient instance.
    """
    return DocumentStoreClient(
        base_url=config.api_base_url,
        api_token=api_token or config.api_token,
        timeout=config.request_timeout,
    )
