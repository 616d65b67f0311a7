"""Pairing service: the operations exposed to callers.

Transport-agnostic. Success returns a result object; every rejection is a
PairlineError subclass that the HTTP layer maps to a response.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from pairline.config import DEFAULT_PHONE_PATTERN
from pairline.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    NotReadyError,
)
from pairline.link.tracker import ConnectionState, ConnectionTracker
from pairline.pairing.session import PairingSession, format_timestamp
from pairline.pairing.store import SessionStore
from pairline.qr import QrRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeIssued:
    """A pairing code handed to a requester."""

    code: str
    session_id: str
    phone_number: str
    expires_at: float
    reused: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "sessionId": self.session_id,
            "phoneNumber": self.phone_number,
            "expiresAt": format_timestamp(self.expires_at),
            "reused": self.reused,
        }


@dataclass(frozen=True)
class QrIssued:
    """A pairing code plus the current link QR image, if one is showing."""

    code: str
    session_id: str
    phone_number: str
    qr_image: Optional[str] = None  # PNG data URL

    def to_dict(self) -> dict[str, Any]:
        return {
            "qrImage": self.qr_image,
            "pairingCode": self.code,
            "sessionId": self.session_id,
            "phoneNumber": self.phone_number,
        }


@dataclass(frozen=True)
class StatusReport:
    connection_state: ConnectionState
    live_session_count: int
    has_qr: bool
    account_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "connectionState": self.connection_state.value,
            "liveSessionCount": self.live_session_count,
            "hasQR": self.has_qr,
            "account": self.account_id,
        }


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of an out-of-band code verification."""

    valid: bool
    phone_number: Optional[str] = None
    session_id: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        if self.valid:
            return {
                "valid": True,
                "phoneNumber": self.phone_number,
                "sessionId": self.session_id,
            }
        return {"valid": False, "reason": self.reason}


class PairingService:
    """Issue, inspect and confirm pairing codes."""

    def __init__(
        self,
        store: SessionStore,
        tracker: ConnectionTracker,
        qr_renderer: Optional[QrRenderer] = None,
        country_code: str = "+254",
        phone_pattern: str = DEFAULT_PHONE_PATTERN,
        reuse_pending_codes: bool = False,
    ):
        """Initialize service.

        Args:
            store: Session store.
            tracker: Link connection tracker gating issuance.
            qr_renderer: Renders the link QR payload for request_qr.
            country_code: Prefix prepended to validated local numbers.
            phone_pattern: Regex a local number must fully match.
            reuse_pending_codes: Return a number's existing pending code
                instead of issuing another one.
        """
        self._store = store
        self._tracker = tracker
        self._qr_renderer = qr_renderer or QrRenderer()
        self._country_code = country_code
        self._phone_re = re.compile(phone_pattern)
        self._reuse_pending = reuse_pending_codes

    def normalize_phone(self, phone_number: Optional[str]) -> str:
        """Validate a local number and return it with the country code.

        Raises:
            InvalidInputError: If the number does not match the pattern.
        """
        local = re.sub(r"\s+", "", phone_number or "")
        if not local or not self._phone_re.match(local):
            raise InvalidInputError("Invalid phone number format")
        return self._country_code + local

    def _require_ready(self) -> None:
        if not self._tracker.can_issue_codes:
            raise NotReadyError(
                f"Link connection not ready ({self._tracker.state.value}). "
                "Please scan the QR code first."
            )

    async def _issue(self, full_number: str) -> tuple[PairingSession, bool]:
        if self._reuse_pending:
            existing = self._store.find_pending_for_phone(full_number)
            if existing is not None:
                logger.debug(f"Reusing active code for {full_number}")
                return existing, True
        return await self._store.create(full_number), False

    async def request_code(self, phone_number: Optional[str]) -> CodeIssued:
        """Issue a pairing code for ``phone_number``.

        Raises:
            InvalidInputError: Malformed phone number.
            NotReadyError: Link connection is neither qr_ready nor online.
        """
        full_number = self.normalize_phone(phone_number)
        self._require_ready()

        session, reused = await self._issue(full_number)
        return CodeIssued(
            code=session.code,
            session_id=session.session_id,
            phone_number=full_number,
            expires_at=session.expires_at,
            reused=reused,
        )

    async def request_qr(self, phone_number: Optional[str]) -> QrIssued:
        """Issue a pairing code together with the current link QR image.

        The image is only present while a QR is showing; once the link is
        online the code alone is returned.

        Raises:
            InvalidInputError: Malformed phone number.
            NotReadyError: No QR available and the link is not online.
        """
        full_number = self.normalize_phone(phone_number)

        qr_image = None
        if self._tracker.has_qr:
            qr_image = self._qr_renderer.to_data_url(self._tracker.qr_payload)
        elif self._tracker.state != ConnectionState.ONLINE:
            raise NotReadyError("QR code not ready yet. Please wait for connection...")

        session, _ = await self._issue(full_number)
        return QrIssued(
            code=session.code,
            session_id=session.session_id,
            phone_number=full_number,
            qr_image=qr_image,
        )

    def get_status(self) -> StatusReport:
        return StatusReport(
            connection_state=self._tracker.state,
            live_session_count=self._store.live_count(),
            has_qr=self._tracker.has_qr,
            account_id=self._tracker.account_id,
        )

    def lookup(self, code: str) -> PairingSession:
        """Get the session for ``code``.

        Raises:
            NotFoundError: Unknown code.
        """
        session = self._store.get(code)
        if session is None:
            raise NotFoundError(f"Code not found: {code}")
        return session

    async def mark_linked_by_code(
        self, code: str, linked_to: Optional[str] = None
    ) -> PairingSession:
        """Confirm that ``code`` was consumed on the linked device.

        Confirming an already linked code returns it unchanged.

        Raises:
            NotFoundError: Unknown or expired code.
            InvalidTransitionError: Code was already used.
        """
        return await self._store.mark_linked(
            code, linked_to or self._tracker.account_id, allow_linked=True
        )

    async def verify_code(self, code: str) -> VerifyResult:
        """Check a code entered on the bot side and consume it if valid."""
        session = self._store.get(code)
        if session is None:
            return VerifyResult(valid=False, reason="Invalid code")
        if not session.is_pending:
            return VerifyResult(valid=False, reason="Code already used")

        try:
            session = await self._store.mark_used(code, self._tracker.account_id)
        except NotFoundError:
            return VerifyResult(valid=False, reason="Code expired")
        except InvalidTransitionError:
            return VerifyResult(valid=False, reason="Code already used")

        return VerifyResult(
            valid=True,
            phone_number=session.phone_number,
            session_id=session.session_id,
        )
