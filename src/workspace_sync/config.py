"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Engine constants
    have sensible defaults but can be overridden via environment variables.
    """

    # Required: no defaults, fail at startup if missing
    api_base_url: str
    organization_id: int
    storage_connection_string: str

    # Optional: defaults provided, overridable via env
    api_token: str = ""
    acting_user_id: int | None = None
    root_label: str = "My Drive"
    max_depth: int = 100
    request_timeout: float = 30.0
    list_page_size: int = 50
    snapshot_container: str = "workspace-sync-state"
    snapshot_blob: str = "folder-cache/current.json"


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        WS_API_BASE_URL: Base URL of the document store API (e.g. http://host/api).
        WS_ORGANIZATION_ID: Organization whose folder tree is synchronized.
        AzureWebJobsStorage: Azure Storage account connection string.

    Optional environment variables (with defaults):
        WS_API_TOKEN: Bearer token used when the caller does not forward one.
        WS_ACTING_USER_ID: User id for the "by me" sort criteria (default: unset).
        WS_ROOT_LABEL: Breadcrumb label of the root folder (default: My Drive).
        WS_MAX_DEPTH: Bound on parent-chain walks (default: 100).
        WS_REQUEST_TIMEOUT: Per-request timeout in seconds (default: 30).
        WS_LIST_PAGE_SIZE: Page size for file listings (default: 50).
        WS_SNAPSHOT_CONTAINER: Blob container for the folder cache snapshot.
        WS_SNAPSHOT_BLOB: Blob path for the folder cache snapshot.

    Returns:
        Configured AppConfig instance.
    """
    acting_user = os.environ.get("WS_ACTING_USER_ID", "")
    return AppConfig(
        api_base_url=os.environ["WS_API_BASE_URL"],
        organization_id=int(os.environ["WS_ORGANIZATION_ID"]),
        storage_connection_string=os.environ["AzureWebJobsStorage"],  # noqa: SIM112
        api_token=os.environ.get("WS_API_TOKEN", ""),
        acting_user_id=int(acting_user) if acting_user else None,
        root_label=os.environ.get("WS_ROOT_LABEL", "My Drive"),
        max_depth=int(os.environ.get("WS_MAX_DEPTH", "100")),
        request_timeout=float(os.environ.get("WS_REQUEST_TIMEOUT", "30")),
        list_page_size=int(os.environ.get("WS_LIST_PAGE_SIZE", "50")),
        snapshot_container=os.environ.get("WS_SNAPSHOT_CONTAINER", "workspace-sync-state"),
        snapshot_blob=os.environ.get("WS_SNAPSHOT_BLOB", "folder-cache/current.json"),
    )
