"""Pairing session record and status state machine.

A session is created pending and moves exactly once to one of the
terminal statuses: linked, expired or used.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pairline.errors import InvalidTransitionError


class SessionStatus(Enum):
    """Pairing session statuses."""

    PENDING = "pending"
    LINKED = "linked"
    EXPIRED = "expired"
    USED = "used"


VALID_TRANSITIONS = {
    SessionStatus.PENDING: {
        SessionStatus.LINKED,
        SessionStatus.EXPIRED,
        SessionStatus.USED,
    },
    SessionStatus.LINKED: set(),
    SessionStatus.EXPIRED: set(),
    SessionStatus.USED: set(),
}


def format_timestamp(ts: Optional[float]) -> Optional[str]:
    """Render an epoch timestamp as ISO-8601 UTC with a Z suffix."""
    if ts is None:
        return None
    return (
        datetime.fromtimestamp(ts, timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass
class PairingSession:
    """A pairing code issued to a requester.

    Attributes:
        code: The pairing code the user enters on their device.
        session_id: Id correlating the code with the link credentials.
        created_at: Unix timestamp when the code was issued.
        expires_at: Unix timestamp after which a pending code is reclaimed.
        phone_number: Requester's full number, if given.
        status: Current status.
        linked_at: Unix timestamp of the transition to linked or used.
        linked_to: Account id that consumed the code.
    """

    code: str
    session_id: str
    created_at: float
    expires_at: float
    phone_number: Optional[str] = None
    status: SessionStatus = SessionStatus.PENDING
    linked_at: Optional[float] = None
    linked_to: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == SessionStatus.PENDING

    @property
    def is_live(self) -> bool:
        """Live sessions (pending or linked) own their code."""
        return self.status in (SessionStatus.PENDING, SessionStatus.LINKED)

    def is_expired(self, now: float) -> bool:
        """Check if a pending session has passed its expiry time."""
        return self.is_pending and self.expires_at <= now

    def transition_to(self, new_status: SessionStatus) -> None:
        """Transition to a new status with validation.

        Args:
            new_status: Target status.

        Raises:
            InvalidTransitionError: If the session is no longer pending.
        """
        if new_status not in VALID_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Invalid transition for {self.code}: "
                f"{self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "code": self.code,
            "sessionId": self.session_id,
            "phoneNumber": self.phone_number,
            "status": self.status.value,
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
            "linkedAt": format_timestamp(self.linked_at),
            "linkedTo": self.linked_to,
        }
