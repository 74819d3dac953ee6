"""Unit tests for remote/client.py — DocumentStoreClient HTTP calls."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from workspace_sync.config import AppConfig
from workspace_sync.remote.client import (
    ANY_PARENT,
    DocumentStoreClient,
    NotFoundOrPermissionDenied,
    RemoteServiceError,
    TransientNetworkError,
    document_store_client_from_config,
)

BASE_URL = "http://store.test/api"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(
    status_code: int = 200, body: object = None, token: str = "tok-123"
) -> tuple[DocumentStoreClient, list[httpx.Request]]:
    """Return (client, captured_requests) answering every request the same way."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        payload = {"success": True, "data": None} if body is None else body
        return httpx.Response(status_code, json=payload)

    client = DocumentStoreClient(BASE_URL, api_token=token, transport=httpx.MockTransport(handler))
    return client, captured


def _failing_client(exc: Exception) -> DocumentStoreClient:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc

    return DocumentStoreClient(BASE_URL, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Request construction tests
# ---------------------------------------------------------------------------


class TestRequests:
    async def test_sends_bearer_token(self) -> None:
        client, captured = _make_client(body={"success": True, "data": []})

        await client.list_folders(3)

        assert captured[0].headers["Authorization"] == "Bearer tok-123"

    async def test_omits_authorization_without_token(self) -> None:
        client, captured = _make_client(body={"success": True, "data": []}, token="")

        await client.list_folders(3)

        assert "Authorization" not in captured[0].headers

    async def test_create_folder_posts_name_and_parent(self) -> None:
        client, captured = _make_client(
            body={"success": True, "data": {"folderId": 41, "name": "Notes", "parentId": 7}}
        )

        folder_id = await client.create_folder("Notes", 7)

        assert folder_id == 41
        assert captured[0].method == "POST"
        assert str(captured[0].url) == f"{BASE_URL}/files/folders"
        assert json.loads(captured[0].content) == {"name": "Notes", "parentId": 7}

    async def test_list_folders_all_parents_omits_parent_filter(self) -> None:
        client, captured = _make_client(
            body={"success": True, "data": [{"id": 1, "name": "A", "parent_id": None}]}
        )

        folders = await client.list_folders(3, parent_id=ANY_PARENT)

        assert [f.id for f in folders] == [1]
        assert captured[0].url.path == "/api/files/folders/list"
        assert dict(captured[0].url.params) == {"organizationId": "3"}

    async def test_list_folders_root_sends_null_parent(self) -> None:
        client, captured = _make_client(body={"success": True, "data": []})

        await client.list_folders(3, parent_id=None, search="rep")

        assert dict(captured[0].url.params) == {
            "organizationId": "3",
            "parentId": "null",
            "q": "rep",
        }

    async def test_list_files_parses_page(self) -> None:
        client, captured = _make_client(
            body={
                "success": True,
                "data": {
                    "data": [{"id": 9, "name": "a.txt", "folder_id": 4}],
                    "pagination": {"page": 2, "limit": 1, "total": 3, "pages": 3},
                },
            }
        )

        page = await client.list_files(4, page=2, page_size=1)

        assert [f.name for f in page.items] == ["a.txt"]
        assert (page.page, page.limit, page.total, page.pages) == (2, 1, 3, 3)
        assert dict(captured[0].url.params) == {"page": "2", "limit": "1", "folderId": "4"}

    async def test_list_root_files_sends_null_folder(self) -> None:
        client, captured = _make_client(body={"success": True, "data": {"data": []}})

        page = await client.list_files(None)

        assert captured[0].url.params["folderId"] == "null"
        assert page.total == 0

    async def test_delete_and_moves_use_expected_routes(self) -> None:
        client, captured = _make_client()

        await client.delete_folder(5)
        await client.move_file(8, None)
        await client.move_folder(5, 2)

        assert [(r.method, r.url.path) for r in captured] == [
            ("DELETE", "/api/files/folders/5"),
            ("PUT", "/api/files/8/move"),
            ("PUT", "/api/files/folders/5/move"),
        ]
        assert json.loads(captured[1].content) == {"folderId": None}
        assert json.loads(captured[2].content) == {"parentId": 2}

    async def test_upload_file_sends_multipart_and_reports_progress(self) -> None:
        client, captured = _make_client(body={"success": True, "data": {"fileId": 77}})
        progress = MagicMock()

        file_id = await client.upload_file(b"hello", "todo.txt", 12, on_progress=progress)

        assert file_id == 77
        request = captured[0]
        assert request.url.path == "/api/files/upload"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="folderId"' in request.content
        assert b"hello" in request.content
        assert [c.args[0] for c in progress.call_args_list] == [0.0, 1.0]

    async def test_close_closes_http_client(self) -> None:
        client, _ = _make_client()

        async with client:
            pass

        assert client._http.is_closed


# ---------------------------------------------------------------------------
# Error mapping tests
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.parametrize("status", [401, 403, 404])
    async def test_not_found_or_denied(self, status: int) -> None:
        client, _ = _make_client(status, {"success": False, "message": "Folder not found"})

        with pytest.raises(NotFoundOrPermissionDenied) as exc_info:
            await client.delete_folder(1)

        assert exc_info.value.status_code == status
        assert exc_info.value.message == "Folder not found"

    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_transient_statuses(self, status: int) -> None:
        client, _ = _make_client(status, {"success": False, "message": "busy"})

        with pytest.raises(TransientNetworkError):
            await client.create_folder("A")

    async def test_other_client_errors(self) -> None:
        client, _ = _make_client(400, {"success": False, "message": "Folder is not empty"})

        with pytest.raises(RemoteServiceError) as exc_info:
            await client.delete_folder(1)

        assert not isinstance(exc_info.value, TransientNetworkError)
        assert exc_info.value.message == "Folder is not empty"

    async def test_unsuccessful_envelope_with_ok_status(self) -> None:
        client, _ = _make_client(200, {"success": False, "message": "Failed to move folder"})

        with pytest.raises(RemoteServiceError, match="Failed to move folder"):
            await client.move_folder(1, 2)

    async def test_transport_failure_is_transient(self) -> None:
        client = _failing_client(httpx.ConnectError("connection refused"))

        with pytest.raises(TransientNetworkError, match="connection refused"):
            await client.list_folders(1)

    async def test_timeout_is_transient(self) -> None:
        client = _failing_client(httpx.ReadTimeout("timed out"))

        with pytest.raises(TransientNetworkError):
            await client.upload_file(b"x", "x.txt")


class TestClientFromConfig:
    def test_prefers_forwarded_token(self) -> None:
        config = AppConfig(
            api_base_url=BASE_URL,
            organization_id=1,
            storage_connection_string="conn",
            api_token="config-token",
        )

        forwarded = document_store_client_from_config(config, "caller-token")
        fallback = document_store_client_from_config(config)

        assert forwarded._http.headers["Authorization"] == "Bearer caller-token"
        assert fallback._http.headers["Authorization"] == "Bearer config-token"
