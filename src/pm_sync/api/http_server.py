"""FastAPI status server for health checks, metrics and sync state."""

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pm_sync import __version__
from pm_sync.utils.logging import get_logger

if TYPE_CHECKING:
    from pm_sync.app import SyncApp

logger = get_logger(__name__)


def create_http_server(app: "SyncApp") -> FastAPI:
    """Create FastAPI server exposing the running app's state.

    Args:
        app: Running sync app

    Returns:
        FastAPI application
    """
    server = FastAPI(
        title="pm-sync",
        description="Health, metrics and status endpoints for the sync daemon",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    @server.get("/health")
    async def health() -> JSONResponse:
        """Liveness check. Returns 200 while the process is running."""
        return JSONResponse(content={"status": "ok", "service": "pm-sync"}, status_code=200)

    @server.get("/health/ready")
    async def readiness() -> JSONResponse:
        """Readiness check: the backend answers its health endpoint."""
        checks: dict[str, Any] = {"backend": False}
        try:
            checks["backend"] = await app.client.health_check()
        except Exception as e:
            logger.error("backend_health_failed", error=str(e))

        ready = all(checks.values())
        return JSONResponse(
            content={"status": "ready" if ready else "not_ready", "checks": checks},
            status_code=200 if ready else 503,
        )

    @server.get("/metrics")
    async def metrics() -> Response:
        """Prometheus exposition format."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @server.get("/status")
    async def status() -> JSONResponse:
        return JSONResponse(content={"service": "pm-sync", "version": __version__, **app.status()})

    return server
