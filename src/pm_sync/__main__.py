"""Entry point for the sync daemon."""

import asyncio
import signal
import sys
from typing import NoReturn

import uvicorn

from pm_sync.app import SyncApp
from pm_sync.config import get_settings, validate_environment
from pm_sync.utils.logging import get_logger, setup_logging


async def run_daemon() -> None:
    """Keep controllers synced and the push channel open until a signal arrives."""
    from pm_sync import __version__

    settings = get_settings()
    logger = get_logger(__name__)

    logger.info("starting_pm_sync", version=__version__, api_base_url=settings.api_base_url)
    validate_environment(settings)

    app = SyncApp.from_settings(settings)
    await app.start()

    # Setup graceful shutdown
    shutdown_event = asyncio.Event()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with asyncio.TaskGroup() as tg:
            if settings.metrics_enabled:
                from pm_sync.api.http_server import create_http_server

                http_config = uvicorn.Config(
                    create_http_server(app),
                    host=settings.status_host,
                    port=settings.status_port,
                    log_level="warning",
                )
                http_server = uvicorn.Server(http_config)
                tg.create_task(http_server.serve())
                tg.create_task(_stop_on_shutdown(http_server, shutdown_event))
            tg.create_task(shutdown_event.wait())
    except* Exception as eg:
        for exc in eg.exceptions:
            logger.error("service_error", error=str(exc))
    finally:
        logger.info("shutting_down")
        await app.close()
        logger.info("pm_sync_stopped")


async def _stop_on_shutdown(server: uvicorn.Server, shutdown_event: asyncio.Event) -> None:
    await shutdown_event.wait()
    server.should_exit = True


def main() -> NoReturn:
    """Main entry point."""
    setup_logging()
    try:
        asyncio.run(run_daemon())
    except KeyboardInterrupt:
        pass
    sys.exit(0)


if __name__ == "__main__":
    main()
