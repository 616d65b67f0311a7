"""Protocols and event types for the device-link client.

The device-link client implements the actual linked-device handshake.
pairline only consumes its connection events and persists the
credentials it hands over.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

# Close reason reported when the account logged the linked device out
LOGGED_OUT = 401


@dataclass(frozen=True)
class QrEvent:
    """A fresh QR payload is available for scanning."""

    payload: str


@dataclass(frozen=True)
class OpenEvent:
    """The connection is open and authenticated as ``account_id``."""

    account_id: Optional[str] = None


@dataclass(frozen=True)
class CloseEvent:
    """The connection closed with ``reason_code``."""

    reason_code: Optional[int] = None

    @property
    def logged_out(self) -> bool:
        return self.reason_code == LOGGED_OUT


@dataclass(frozen=True)
class CredentialsEvent:
    """The client's credential bundle changed and must be persisted."""

    credentials: dict[str, Any] = field(default_factory=dict)


LinkEvent = Union[QrEvent, OpenEvent, CloseEvent, CredentialsEvent]

# Async sink the client calls for every event, in order
EventSink = Callable[[LinkEvent], Awaitable[None]]


class LinkClient(Protocol):
    """Protocol for device-link client implementations."""

    async def start(
        self, credentials: Optional[dict[str, Any]], emit: EventSink
    ) -> None:
        """Connect using stored credentials (None for a fresh login).

        Returns once the connection attempt is underway; further progress
        is reported through ``emit``. Raises if the client cannot start.
        """
        ...

    async def close(self) -> None:
        """Tear down the connection."""
        ...


LinkClientFactory = Callable[[], LinkClient]
