"""Service orchestration - ties all components together."""

import asyncio
import logging
from typing import Optional

from pairline.config import Config
from pairline.context import AppContext
from pairline.server import PairingServer

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """Error during service startup."""

    pass


class PairingDaemon:
    """Runs the HTTP server, the expiry worker and the link supervisor.

    Responsibilities:
    - Build the application context from configuration
    - Serve the pairing API
    - Expire and sweep pairing codes in the background
    - Keep the device-link connection up
    - Handle graceful shutdown
    """

    def __init__(self, config: Config, context: Optional[AppContext] = None):
        """Initialize daemon.

        Args:
            config: Service configuration.
            context: Optional prebuilt context (for testing).
        """
        self._config = config
        self._context = context
        self._server: Optional[PairingServer] = None
        self._running = False

    @property
    def context(self) -> Optional[AppContext]:
        return self._context

    @property
    def server(self) -> Optional[PairingServer]:
        return self._server

    async def start(self) -> None:
        """Start all components.

        Raises:
            StartupError: If the context cannot be built or the port is taken.
        """
        logger.info("Starting pairing service...")

        if self._context is None:
            try:
                self._context = AppContext.from_config(self._config)
            except ValueError as e:
                raise StartupError(str(e)) from e

        context = self._context
        self._server = PairingServer(
            context.service,
            max_requests=self._config.rate_limit.max_requests,
            window_seconds=self._config.rate_limit.window_seconds,
        )
        try:
            await self._server.start(self._config.bind_address, self._config.port)
        except OSError as e:
            raise StartupError(f"Cannot listen on port {self._config.port}: {e}") from e

        try:
            await context.expiry_worker.start()
            await context.supervisor.start()
        except Exception as e:
            await self._shutdown()
            raise StartupError(f"Failed to start components: {e}") from e

        self._running = True
        logger.info("Pairing service started")

    async def run_forever(self) -> None:
        """Run until stop() is called."""
        if not self._running:
            await self.start()

        try:
            while self._running:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass
        finally:
            await self._shutdown()

    async def stop(self) -> None:
        """Stop the daemon gracefully."""
        self._running = False

    async def _shutdown(self) -> None:
        logger.info("Shutting down...")
        if self._context is not None:
            await self._context.supervisor.stop()
            await self._context.expiry_worker.stop()
        if self._server is not None:
            await self._server.stop()
        logger.info("Pairing service stopped")
