"""Backend API façade and status server."""

from pm_sync.api.client import ApiClient, ApiResponse, unwrap_envelope, unwrap_list
from pm_sync.api.resources import BackendAPI

__all__ = [
    "ApiClient",
    "ApiResponse",
    "BackendAPI",
    "unwrap_envelope",
    "unwrap_list",
]
