"""Supervises the device-link client.

Creates the client, starts it with the stored credentials and feeds its
events into the ConnectionTracker one at a time, in the order emitted.
Every (re)connect replaces the previous client instance.
"""

import asyncio
import importlib
import logging
from typing import Optional

from pairline.errors import CollaboratorUnavailableError, StorageError
from pairline.link.credentials import CredentialStore
from pairline.link.protocols import (
    CloseEvent,
    CredentialsEvent,
    LinkClient,
    LinkClientFactory,
    LinkEvent,
    OpenEvent,
    QrEvent,
)
from pairline.link.tracker import ConnectionTracker
from pairline.qr import QrRenderer

logger = logging.getLogger(__name__)


def load_link_client(path: str) -> LinkClientFactory:
    """Resolve a ``"package.module:factory"`` path to a client factory.

    Raises:
        ValueError: If the path is malformed or does not name a callable.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Link client must look like 'module:factory', got {path!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import link client module {module_name}: {e}") from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"{path} is not callable")
    return factory


class LinkSupervisor:
    """Owns the device-link client instance for the process."""

    def __init__(
        self,
        tracker: ConnectionTracker,
        credentials: CredentialStore,
        factory: Optional[LinkClientFactory] = None,
        qr_renderer: Optional[QrRenderer] = None,
        print_qr_in_terminal: bool = False,
        reset_credentials_on_start: bool = False,
    ):
        """Initialize supervisor.

        Args:
            tracker: Connection tracker receiving the client's events.
            credentials: Store the client's credentials are loaded from.
            factory: Creates a fresh client per connection attempt.
            qr_renderer: Renderer for console QR output.
            print_qr_in_terminal: Print each new QR code to stdout.
            reset_credentials_on_start: Wipe stored credentials before the
                first connect, forcing a fresh QR login.
        """
        self._tracker = tracker
        self._credentials = credentials
        self._factory = factory
        self._qr_renderer = qr_renderer or QrRenderer()
        self._print_qr = print_qr_in_terminal
        self._reset_credentials = reset_credentials_on_start

        self._client: Optional[LinkClient] = None
        self._event_lock = asyncio.Lock()
        self._running = False

        tracker.set_reconnect(self.connect)

    @property
    def client(self) -> Optional[LinkClient]:
        return self._client

    async def start(self) -> None:
        """Start the first connection attempt."""
        if self._running:
            return

        if self._factory is None:
            logger.warning("No link client configured, pairing codes cannot be issued")
            return

        self._running = True
        if self._reset_credentials:
            try:
                await self._credentials.clear()
            except StorageError as e:
                logger.error(f"{e}, connecting with existing credentials")
        await self.connect()

    async def connect(self) -> None:
        """(Re)initialize the link client.

        Failures are reported to the tracker, which schedules the retry.
        """
        if not self._running or self._factory is None:
            return

        await self._close_client()
        self._tracker.on_connecting()
        logger.info("Initializing link connection...")

        try:
            credentials = await self._credentials.load()
            client = self._factory()
            self._client = client
            await client.start(credentials, self.handle_event)
        except Exception as e:
            self._client = None
            await self._tracker.on_init_failed(CollaboratorUnavailableError(str(e)))

    async def handle_event(self, event: LinkEvent) -> None:
        """Apply one client event to the tracker.

        Events are handled strictly one after another, so a credential save
        never overtakes the qr/open/close event emitted before it.
        """
        async with self._event_lock:
            if isinstance(event, QrEvent):
                await self._tracker.on_qr(event.payload)
                if self._print_qr:
                    print(self._qr_renderer.to_terminal(event.payload))
            elif isinstance(event, OpenEvent):
                await self._tracker.on_open(event.account_id)
            elif isinstance(event, CloseEvent):
                await self._tracker.on_close(event.reason_code)
            elif isinstance(event, CredentialsEvent):
                await self._tracker.on_credentials_update(event.credentials)
            else:
                logger.warning(f"Ignoring unknown link event: {event!r}")

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.close()
        except Exception as e:
            logger.warning(f"Error closing link client: {e}")

    async def stop(self) -> None:
        """Stop retrying and close the client."""
        self._running = False
        self._tracker.cancel_retries()
        await self._close_client()
        logger.info("Link supervisor stopped")
