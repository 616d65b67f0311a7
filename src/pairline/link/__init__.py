"""Device-link connection handling for pairline.

Tracks the single external connection, persists its credentials and
reconnects with backoff.
"""

from .credentials import CredentialStore
from .protocols import (
    LOGGED_OUT,
    CloseEvent,
    CredentialsEvent,
    LinkClient,
    LinkEvent,
    OpenEvent,
    QrEvent,
)
from .retry import RetryScheduler, Scheduler
from .supervisor import LinkSupervisor, load_link_client
from .tracker import ConnectionState, ConnectionTracker

__all__ = [
    "LOGGED_OUT",
    "CloseEvent",
    "ConnectionState",
    "ConnectionTracker",
    "CredentialStore",
    "CredentialsEvent",
    "LinkClient",
    "LinkEvent",
    "LinkSupervisor",
    "OpenEvent",
    "QrEvent",
    "RetryScheduler",
    "Scheduler",
    "load_link_client",
]
