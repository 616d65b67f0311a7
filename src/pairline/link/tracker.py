"""Connection state machine for the device-link client.

States:
    disconnected -> connecting -> {qr_ready, online, error}
    on close: reconnecting -> connecting, or disconnected after a logout

The tracker never sleeps. Reconnects go through an injected Scheduler,
so backoff policy can be tested without real delays.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pairline.errors import StorageError
from pairline.link.credentials import CredentialStore
from pairline.link.protocols import LOGGED_OUT
from pairline.link.retry import Scheduler
from pairline.pairing.reconciler import Reconciler

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """State of the device-link connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    QR_READY = "qr_ready"
    ONLINE = "online"
    ERROR = "error"
    RECONNECTING = "reconnecting"


class ConnectionTracker:
    """Tracks the single device-link connection of the process.

    Usage:
        tracker = ConnectionTracker(reconciler, credentials, RetryScheduler())
        tracker.set_reconnect(supervisor.connect)

        await tracker.on_qr(payload)
        await tracker.on_open(account_id)
        await tracker.on_close(reason_code)
    """

    def __init__(
        self,
        reconciler: Reconciler,
        credentials: CredentialStore,
        scheduler: Scheduler,
        reconnect_delay: float = 10.0,
        init_retry_delay: float = 15.0,
        max_retries: Optional[int] = None,
    ):
        """Initialize tracker.

        Args:
            reconciler: Links pending codes when the connection opens.
            credentials: Credential store, cleared on logout.
            scheduler: Runs deferred reconnect attempts.
            reconnect_delay: Seconds before reconnecting after a close.
            init_retry_delay: Seconds before retrying a failed start.
            max_retries: Consecutive failed attempts tolerated before
                giving up. None retries forever.
        """
        self._reconciler = reconciler
        self._credentials = credentials
        self._scheduler = scheduler
        self.reconnect_delay = reconnect_delay
        self.init_retry_delay = init_retry_delay
        self.max_retries = max_retries

        self._state = ConnectionState.DISCONNECTED
        self._qr_payload: Optional[str] = None
        self._account_id: Optional[str] = None
        self._failures = 0
        self._reconnect: Optional[Callable[[], Awaitable[None]]] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def qr_payload(self) -> Optional[str]:
        return self._qr_payload

    @property
    def account_id(self) -> Optional[str]:
        return self._account_id

    @property
    def failures(self) -> int:
        """Consecutive failed connection attempts since the last open."""
        return self._failures

    @property
    def has_qr(self) -> bool:
        return self._state == ConnectionState.QR_READY and self._qr_payload is not None

    @property
    def can_issue_codes(self) -> bool:
        return self._state in (ConnectionState.QR_READY, ConnectionState.ONLINE)

    def set_reconnect(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Register the coroutine that re-initializes the link client."""
        self._reconnect = callback

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.debug(f"Link state {self._state.value} -> {state.value}")
        self._state = state

    def on_connecting(self) -> None:
        self._set_state(ConnectionState.CONNECTING)

    async def on_qr(self, payload: str) -> None:
        """Store a new QR payload for rendering."""
        self._qr_payload = payload
        self._set_state(ConnectionState.QR_READY)
        logger.info("QR code generated, scan it to link the account")

    async def on_open(self, account_id: Optional[str] = None) -> None:
        """Mark the connection online and link all pending codes."""
        self._account_id = account_id
        self._qr_payload = None
        self._failures = 0
        self._set_state(ConnectionState.ONLINE)
        logger.info(f"Link connection online as {account_id or 'unknown account'}")
        await self._reconciler.on_connection_open(account_id)

    async def on_close(self, reason_code: Optional[int]) -> None:
        """Handle a closed connection.

        A logout clears the stored credentials and stops; anything else
        schedules a reconnect.
        """
        self._qr_payload = None
        logger.warning(f"Link connection closed. Status code: {reason_code}")

        if reason_code == LOGGED_OUT:
            self._account_id = None
            self._failures = 0
            self._scheduler.cancel_all()
            try:
                await self._credentials.clear()
            except StorageError as e:
                logger.error(str(e))
            self._set_state(ConnectionState.DISCONNECTED)
            logger.warning("Logged out, stored credentials cleared")
            return

        self._set_state(ConnectionState.RECONNECTING)
        if self._schedule_retry(self.reconnect_delay):
            logger.info(f"Reconnecting in {self.reconnect_delay} seconds...")

    async def on_init_failed(self, error: Exception) -> None:
        """Handle a link client that failed to start."""
        self._set_state(ConnectionState.ERROR)
        logger.error(f"Link client initialization failed: {error}")
        if self._schedule_retry(self.init_retry_delay):
            logger.info(f"Retrying in {self.init_retry_delay} seconds...")

    async def on_credentials_update(self, credentials: dict[str, Any]) -> None:
        """Persist updated credentials before acknowledging them.

        Raises:
            StorageError: If the credentials could not be written.
        """
        try:
            await self._credentials.save(credentials)
        except StorageError as e:
            logger.error(str(e))
            raise

    def _schedule_retry(self, delay: float) -> bool:
        self._failures += 1
        if self.max_retries is not None and self._failures > self.max_retries:
            self._set_state(ConnectionState.ERROR)
            logger.error(
                f"Giving up on link connection after {self.max_retries} retries"
            )
            return False

        if self._reconnect is None:
            logger.warning("No reconnect callback registered, not retrying")
            return False

        self._scheduler.schedule(delay, self._reconnect)
        return True

    def cancel_retries(self) -> None:
        self._scheduler.cancel_all()
