"""Entry point for the funding spread scanner.

Wires all components together and either serves the JSON API (scanner runs
in the same event loop via the FastAPI lifespan) or runs the scanner loop
alone when the API is disabled.

Component wiring order (in _build_components):
1. Alert state store (SQLite or in-memory)
2. aiohttp session (Lighter adapter, Telegram notifier)
3. Exchange adapters
4. Notifier (Telegram or log-only)
5. Alert throttle
6. OpportunityRanker
7. FundingScanner
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import uvicorn
from fastapi import FastAPI

from fundingarb.alerts.notifier import build_notifier
from fundingarb.alerts.store import AlertStateStore, InMemoryAlertStore, SqliteAlertStore
from fundingarb.alerts.throttle import AlertThrottle
from fundingarb.config import AppSettings
from fundingarb.core.ranker import OpportunityRanker
from fundingarb.exchange.registry import build_adapters
from fundingarb.logging import get_logger, setup_logging
from fundingarb.scanner import FundingScanner


async def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all scanner components from settings.

    Connects the SQLite store first, so a failed connect leaves no open
    session. If later wiring fails, both are closed before re-raising. On
    success the caller owns shutdown via _close_components().
    """
    store: AlertStateStore
    if settings.store.backend == "sqlite":
        store = SqliteAlertStore(settings.store.db_path)
        await store.connect()
    else:
        store = InMemoryAlertStore()

    session = aiohttp.ClientSession()
    try:
        adapters = build_adapters(settings.scanner, session)
        notifier = build_notifier(settings.telegram, session)
        throttle = AlertThrottle(store, settings.alerts) if settings.alerts.enabled else None
        scanner = FundingScanner(
            adapters=adapters,
            ranker=OpportunityRanker(),
            throttle=throttle,
            notifier=notifier,
            digest_settings=settings.digest,
            poll_interval=settings.scanner.poll_interval,
        )
    except Exception:
        await session.close()
        if isinstance(store, SqliteAlertStore):
            await store.close()
        raise

    return {
        "session": session,
        "adapters": adapters,
        "store": store,
        "notifier": notifier,
        "throttle": throttle,
        "scanner": scanner,
    }


async def _close_components(components: dict[str, Any]) -> None:
    """Stop the scanner and release every external resource."""
    logger = get_logger("fundingarb.main")

    await components["scanner"].stop()
    await components["scanner"].close()

    store = components["store"]
    if isinstance(store, SqliteAlertStore):
        await store.close()

    await components["session"].close()
    logger.info("funding_scanner_stopped")


def _setup_signal_handlers(scanner: FundingScanner) -> None:
    """SIGINT/SIGTERM stop the scanner loop gracefully.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("fundingarb.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(scanner.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the scanner with the API server and tear everything down after."""
    logger = get_logger("fundingarb.main")
    components = app.state.components

    app.state.scanner = components["scanner"]
    await components["scanner"].start()

    logger.info("lifespan_started")

    yield

    await _close_components(components)


async def run() -> None:
    """Run the funding spread scanner."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("fundingarb.main")

    components = await _build_components(settings)

    if settings.api.enabled:
        from fundingarb.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        scanner: FundingScanner = components["scanner"]
        _setup_signal_handlers(scanner)

        logger.info(
            "starting_without_api",
            poll_interval=settings.scanner.poll_interval,
            alerts_enabled=settings.alerts.enabled,
        )

        try:
            await scanner.start()
            # start() returns once the loop task is scheduled; wait for it to end
            while scanner.get_status()["running"]:
                await asyncio.sleep(1)
        finally:
            await _close_components(components)


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
