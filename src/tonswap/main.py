"""Main entry point - runs the API and WebSocket server."""

import asyncio
import logging
import signal

import uvicorn

from tonswap.api.app import create_app
from tonswap.config import get_settings

logger = logging.getLogger(__name__)


class Application:
    """Main application wrapping the uvicorn server."""

    def __init__(self):
        self.settings = get_settings()
        self.server = None

    async def start(self):
        """Start the server and wait until it exits."""
        # Configure logging
        log_level = logging.DEBUG if self.settings.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

        logger.info("Starting tonswap...")
        logger.info(f"Environment: {self.settings.environment}")

        config = uvicorn.Config(
            create_app(self.settings),
            host=self.settings.api_host,
            port=self.settings.api_port,
            log_level="debug" if self.settings.debug else "info",
        )
        self.server = uvicorn.Server(config)
        logger.info(f"HTTP server: http://{self.settings.api_host}:{self.settings.api_port}")
        logger.info(f"WebSocket: ws://{self.settings.api_host}:{self.settings.api_port}/ws")

        try:
            await self.server.serve()
        except asyncio.CancelledError:
            logger.info("API server cancelled")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        if self.server is not None:
            self.server.should_exit = True


def main():
    """Main entry point."""
    app = Application()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()


if __name__ == "__main__":
    main()
