"""HTTP trigger blueprint for the upload, navigation and move endpoints."""

import asyncio
import json
import logging
from typing import Any

import azure.functions as func

from workspace_sync import __version__
from workspace_sync.config import AppConfig, load_config
from workspace_sync.orchestration.session import WorkspaceSession, workspace_session_from_config
from workspace_sync.remote.client import NotFoundOrPermissionDenied, RemoteServiceError
from workspace_sync.upload.models import UploadEntry
from workspace_sync.workspace.moves import ItemType, MoveItem
from workspace_sync.workspace.snapshot import snapshot_store_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


def _json_response(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload), status_code=status_code, mimetype="application/json"
    )


def _error_response(message: str, status_code: int) -> func.HttpResponse:
    return _json_response({"status": "error", "message": message}, status_code)


def _bearer_token(req: func.HttpRequest) -> str | None:
    header = req.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def _optional_folder_id(value: Any) -> int | None:
    if value in (None, "", "null"):
        return None
    return int(value)


async def _open_session(config: AppConfig, req: func.HttpRequest) -> WorkspaceSession:
    """Build a session warmed with the persisted folder cache snapshot.

    The snapshot only seeds breadcrumbs and move checks; uploads re-list
    folders live before reusing one.
    """
    folders = await asyncio.to_thread(snapshot_store_from_config(config).load)
    return workspace_session_from_config(config, _bearer_token(req), folders)


async def _save_snapshot(config: AppConfig, session: WorkspaceSession) -> None:
    await asyncio.to_thread(snapshot_store_from_config(config).save, session.cache)


def _remote_error_response(operation: str, exc: RemoteServiceError) -> func.HttpResponse:
    """Pass store rejections (4xx) through; anything else is a 500."""
    if isinstance(exc, NotFoundOrPermissionDenied):
        return _error_response(exc.message, 404)
    if 400 <= exc.status_code < 500:
        logger.warning(
            "[%s] document store rejected request; status:%d;error:%s",
            operation,
            exc.status_code,
            exc.message,
        )
        return _error_response(exc.message, exc.status_code)
    logger.error("[%s] document store request failed", operation, exc_info=True)
    return _error_response("Internal server error", 500)


def _read_upload_entries(req: func.HttpRequest) -> list[UploadEntry]:
    """Pair uploaded files with their relative paths.

    Paths come from the parallel ``relativePaths`` form list; a file without
    one falls back to its own filename.
    """
    files = req.files.getlist("files")
    paths = req.form.getlist("relativePaths")
    entries: list[UploadEntry] = []
    for index, upload in enumerate(files):
        path = paths[index] if index < len(paths) and paths[index] else upload.filename
        entries.append(UploadEntry(relative_path=path or "", content=upload.read()))
    return entries


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")

    try:
        return _json_response({"status": "ok", "version": __version__})

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        return _error_response("Internal server error", 500)


@bp.route(route="upload", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def upload(req: func.HttpRequest) -> func.HttpResponse:
    """Upload a directory tree into a folder and reclaim folders left empty.

    Partial failures still return 200 with the succeeded/failed counts.
    """
    logger.info("[upload] upload requested")

    try:
        config = load_config()
        base_folder_id = _optional_folder_id(req.form.get("folderId"))
        entries = _read_upload_entries(req)
        async with await _open_session(config, req) as session:
            report = await session.upload(entries, base_folder_id)
            await _save_snapshot(config, session)

        return _json_response(
            {
                "status": "ok",
                "succeeded": report.upload.succeeded,
                "failed": report.upload.failed,
                "createdFolders": report.upload.created_folder_ids,
                "reclaimedFolders": report.reclaim.deleted_folder_ids,
            }
        )

    except ValueError as exc:
        logger.warning("[upload] rejected upload request; error:%s", exc)
        return _error_response(str(exc), 400)
    except Exception:
        logger.error("[upload] upload failed", exc_info=True)
        return _error_response("Internal server error", 500)


@bp.route(route="breadcrumbs", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
async def breadcrumbs(req: func.HttpRequest) -> func.HttpResponse:
    """Return the root-to-leaf breadcrumb path for ``folderId``."""
    try:
        config = load_config()
        folder_id = _optional_folder_id(req.params.get("folderId"))
        async with await _open_session(config, req) as session:
            trail = session.breadcrumbs(folder_id)

        return _json_response(
            {"status": "ok", "path": [{"id": crumb.id, "name": crumb.name} for crumb in trail]}
        )

    except ValueError as exc:
        return _error_response(str(exc), 400)
    except Exception:
        logger.error("[breadcrumbs] breadcrumb lookup failed", exc_info=True)
        return _error_response("Internal server error", 500)


@bp.route(route="move", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
async def move(req: func.HttpRequest) -> func.HttpResponse:
    """Move a file or folder after checking the move cannot form a cycle."""
    try:
        config = load_config()
        body = req.get_json()
        item = MoveItem(id=int(body["id"]), type=ItemType(body["type"]))
        target = _optional_folder_id(body.get("targetFolderId"))
        async with await _open_session(config, req) as session:
            await session.move(item, target)
            await _save_snapshot(config, session)

        return _json_response({"status": "ok"})

    except (ValueError, KeyError) as exc:
        logger.warning("[move] rejected move request; error:%s", exc)
        return _error_response(str(exc), 400)
    except RemoteServiceError as exc:
        return _remote_error_response("move", exc)
    except Exception:
        logger.error("[move] move failed", exc_info=True)
        return _error_response("Internal server error", 500)


@bp.route(route="contents", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
async def contents(req: func.HttpRequest) -> func.HttpResponse:
    """List a folder's subfolders and files, each sorted independently."""
    try:
        config = load_config()
        folder_id = _optional_folder_id(req.params.get("folderId"))
        criterion = req.params.get("sort", "name")
        order = req.params.get("order", "asc")
        async with await _open_session(config, req) as session:
            listing = await session.list_contents(folder_id, criterion, order)
            await _save_snapshot(config, session)

        return _json_response(
            {
                "status": "ok",
                "path": [{"id": c.id, "name": c.name} for c in listing.breadcrumbs],
                "folders": [{"id": f.id, "name": f.name} for f in listing.folders],
                "files": [{"id": f.id, "name": f.name, "size": f.size} for f in listing.files],
            }
        )

    except ValueError as exc:
        return _error_response(str(exc), 400)
    except RemoteServiceError as exc:
        return _remote_error_response("contents", exc)
    except Exception:
        logger.error("[contents] folder listing failed", exc_info=True)
        return _error_response("Internal server error", 500)
