"""Process entry point: serve the API with uvicorn.

An unhandled failure in any background coroutine is fatal: it is logged, the
server stops accepting connections and the process exits with status 1 so
the supervisor can restart it.
"""
import asyncio
import logging
import sys

import uvicorn

from ..config import get_settings

logger = logging.getLogger("taskhub-core.server")


class FatalErrorMonitor:
    """Asyncio exception handler that shuts the server down on the first failure."""

    def __init__(self, server: uvicorn.Server):
        self.server = server
        self.failed = False

    def __call__(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.critical(f"Unhandled error: {context.get('message')}", exc_info=exc)
        self.failed = True
        self.server.should_exit = True


async def serve(server: uvicorn.Server) -> bool:
    """Run the server until it exits. Returns True if it stopped on a fatal error."""
    monitor = FatalErrorMonitor(server)
    asyncio.get_running_loop().set_exception_handler(monitor)
    await server.serve()
    return monitor.failed


def run() -> None:
    """Console script entry point."""
    settings = get_settings()
    config = uvicorn.Config(
        "taskhub_core.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)

    if asyncio.run(serve(server)):
        sys.exit(1)


if __name__ == "__main__":
    run()
