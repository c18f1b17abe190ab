"""
Serving loop and process signals.

``serve`` runs the application under uvicorn until ``stop_event`` is set.
The event is the only shutdown path: SIGTERM and SIGINT set it, and the
server then stops accepting connections and drains in-flight requests.
SIGUSR1 writes the stack of every thread to the log.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
import threading
import traceback
from typing import Iterator, Optional

import uvicorn

from capship.app.core.config import Settings
from capship.app.core.logging_config import setup_logging
from capship.app.main import create_app

STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)
GRACEFUL_SHUTDOWN_SECONDS = 30


class _Server(uvicorn.Server):
    """uvicorn server whose shutdown is driven by ``serve``, not by its own signal handling."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


def dump_stacks(logger: logging.Logger) -> None:
    """Log the current stack of every live thread."""
    names = {t.ident: t.name for t in threading.enumerate()}
    chunks = []
    for ident, frame in sys._current_frames().items():
        chunks.append(f"thread {names.get(ident, '?')} ({ident}):\n")
        chunks.extend(traceback.format_stack(frame))
    logger.info("Received SIGUSR1, thread dump:\n%s", "".join(chunks))


def install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
    logger: logging.Logger,
) -> None:
    def _stop(sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down", sig.name)
        stop_event.set()

    for sig in STOP_SIGNALS:
        loop.add_signal_handler(sig, _stop, sig)
    if hasattr(signal, "SIGUSR1"):
        loop.add_signal_handler(signal.SIGUSR1, dump_stacks, logger)


async def serve(
    settings: Settings,
    stop_event: asyncio.Event,
    logger: Optional[logging.Logger] = None,
    handle_signals: bool = True,
) -> None:
    """Serve until ``stop_event`` is set, then drain and return."""
    log = logger or setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    app = create_app(settings, log)

    config = uvicorn.Config(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
        access_log=False,
        timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_SECONDS,
    )
    server = _Server(config)

    if handle_signals:
        install_signal_handlers(asyncio.get_running_loop(), stop_event, log)

    async def _watch() -> None:
        await stop_event.wait()
        server.should_exit = True

    watcher = asyncio.create_task(_watch())
    log.info("Listening on %s:%d", settings.HOST, settings.PORT)
    try:
        await server.serve()
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
    log.info("Server stopped")
