"""aiohttp application factory and server runner for whosfree."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Optional

from aiohttp import web

from whosfree.api.middleware import correlation_id_middleware, error_middleware
from whosfree.api.routes import register_api_routes
from whosfree.core.config import Config
from whosfree.core.timezone_utils import CIVIL_TIMEZONE, now_utc
from whosfree.domain.service import AvailabilityService, TimeSource
from whosfree.storage.database import BusyBlockStore

logger = logging.getLogger(__name__)

# Room for multipart framing and headers around the largest accepted feed
_BODY_SIZE_MARGIN = 64 * 1024


def make_app(
    config: Config,
    store: Optional[BusyBlockStore] = None,
    time_provider: TimeSource = now_utc,
) -> web.Application:
    """Create the aiohttp application with routes wired to the service.

    Args:
        config: Application configuration
        store: Store to use; defaults to one at config.database_path
        time_provider: Source of "now", injectable for tests
    """
    store = store or BusyBlockStore(config.database_path)
    service = AvailabilityService(store, time_provider, config.max_ics_bytes)

    app = web.Application(
        middlewares=[correlation_id_middleware, error_middleware],
        client_max_size=config.max_ics_bytes + _BODY_SIZE_MARGIN,
    )
    register_api_routes(app, service, config.user_header)

    async def _startup(_app: web.Application) -> None:
        await store.initialize()
        logger.info("whosfree ready (civil timezone %s)", CIVIL_TIMEZONE)

    app.on_startup.append(_startup)
    return app


async def _serve(config: Config, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server until stop_event is set or SIGINT/SIGTERM arrives."""
    stop_event = stop_event or asyncio.Event()
    app = make_app(config)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", config.server_bind, config.server_port)
        await runner.cleanup()
        raise

    logger.info("Serving on http://%s:%d", config.server_bind, config.server_port)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows)
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        await runner.cleanup()


def start_server(config: Config) -> None:
    """Blocking entrypoint used by the CLI."""
    asyncio.run(_serve(config))
