"""In-memory pairing session store.

Maps code -> PairingSession. Every mutation runs under a single
asyncio.Lock, so a timer-driven expiry and a concurrent "mark linked"
call on the same code never interleave.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from pairline.errors import NotFoundError
from pairline.pairing.codes import CodeGenerator, generate_session_id
from pairline.pairing.expiry import ExpiryQueue
from pairline.pairing.session import PairingSession, SessionStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL = 600.0  # 10 minutes


class RetentionPolicy(Enum):
    """What happens to linked/used sessions."""

    KEEP = "keep"  # retained for audit until terminal_retention elapses
    PURGE = "purge"  # dropped as soon as they leave pending


class SessionStore:
    """Owns all pairing sessions of the process.

    Usage:
        store = SessionStore(ttl=600.0)
        session = await store.create("+254723278526")
        await store.mark_linked(session.code, "254700000000@s.whatsapp.net")
    """

    def __init__(
        self,
        generator: Optional[CodeGenerator] = None,
        ttl: float = DEFAULT_TTL,
        session_prefix: str = "PAIRLINE",
        retention: RetentionPolicy = RetentionPolicy.KEEP,
        terminal_retention: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            generator: Code generator. Defaults to 8-character codes.
            ttl: Seconds a pending code stays valid.
            session_prefix: Prefix for generated session ids.
            retention: Retention policy for linked/used sessions.
            terminal_retention: Seconds kept sessions survive the sweep.
            clock: Time source.
        """
        self._generator = generator or CodeGenerator(clock=clock)
        self._ttl = ttl
        self._session_prefix = session_prefix
        self._retention = retention
        self._terminal_retention = terminal_retention
        self._clock = clock
        self._sessions: dict[str, PairingSession] = {}
        self._lock = asyncio.Lock()
        self.expiry_queue = ExpiryQueue()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def retention(self) -> RetentionPolicy:
        return self._retention

    def _now(self, now: Optional[float] = None) -> float:
        return self._clock() if now is None else now

    def is_live(self, code: str) -> bool:
        """Check whether a code is held by a pending or linked session."""
        session = self._sessions.get(code)
        if session is None or not session.is_live:
            return False
        return not session.is_expired(self._clock())

    async def create(self, phone_number: Optional[str] = None) -> PairingSession:
        """Issue a new pending session and schedule its expiry.

        Args:
            phone_number: Requester's full number, if known.

        Returns:
            The created session.
        """
        async with self._lock:
            now = self._clock()
            code = self._generator.generate(is_taken=self.is_live)
            session = PairingSession(
                code=code,
                session_id=generate_session_id(self._session_prefix, self._clock),
                created_at=now,
                expires_at=now + self._ttl,
                phone_number=phone_number,
            )
            self._sessions[code] = session
            self.expiry_queue.schedule(session.expires_at, code, session.session_id)

        logger.info(f"Generated pairing code for {phone_number or 'anonymous'}: {code}")
        return session

    def get(self, code: str) -> Optional[PairingSession]:
        """Get a session by code."""
        return self._sessions.get(code)

    def find_pending_for_phone(self, phone_number: str) -> Optional[PairingSession]:
        """Return an unexpired pending session issued to ``phone_number``."""
        now = self._clock()
        for session in self._sessions.values():
            if (
                session.is_pending
                and session.phone_number == phone_number
                and not session.is_expired(now)
            ):
                return session
        return None

    def _require(self, code: str, now: float) -> PairingSession:
        session = self._sessions.get(code)
        if session is None:
            raise NotFoundError(f"Code not found: {code}")
        if session.is_expired(now):
            self._remove_expired(session)
            raise NotFoundError(f"Code expired: {code}")
        return session

    def _remove_expired(self, session: PairingSession) -> None:
        session.transition_to(SessionStatus.EXPIRED)
        del self._sessions[session.code]

    def _finish(
        self,
        session: PairingSession,
        status: SessionStatus,
        linked_to: Optional[str],
        now: float,
    ) -> None:
        session.transition_to(status)
        session.linked_at = now
        session.linked_to = linked_to
        if self._retention == RetentionPolicy.PURGE:
            del self._sessions[session.code]

    async def mark_linked(
        self,
        code: str,
        linked_to: Optional[str] = None,
        allow_linked: bool = False,
    ) -> PairingSession:
        """Mark a pending session as linked.

        Args:
            code: Pairing code.
            linked_to: Account id that consumed the code.
            allow_linked: Return an already linked session unchanged
                instead of rejecting it.

        Raises:
            NotFoundError: Unknown or expired code.
            InvalidTransitionError: Session is no longer pending.
        """
        async with self._lock:
            now = self._clock()
            session = self._require(code, now)
            if allow_linked and session.status == SessionStatus.LINKED:
                return session
            self._finish(session, SessionStatus.LINKED, linked_to, now)

        logger.info(f"Code {code} linked to {linked_to or 'unknown account'}")
        return session

    async def mark_used(
        self, code: str, linked_to: Optional[str] = None
    ) -> PairingSession:
        """Mark a pending session as consumed by out-of-band verification.

        Raises:
            NotFoundError: Unknown or expired code.
            InvalidTransitionError: Session is no longer pending.
        """
        async with self._lock:
            now = self._clock()
            session = self._require(code, now)
            self._finish(session, SessionStatus.USED, linked_to, now)

        logger.info(f"Code {code} used")
        return session

    async def bulk_mark_linked(
        self, linked_to: Optional[str] = None
    ) -> list[PairingSession]:
        """Move every unexpired pending session to linked.

        Sessions that are already linked keep their original stamps.

        Returns:
            The sessions that changed.
        """
        async with self._lock:
            now = self._clock()
            changed = [
                session
                for session in self._sessions.values()
                if session.is_pending and not session.is_expired(now)
            ]
            for session in changed:
                self._finish(session, SessionStatus.LINKED, linked_to, now)

        return changed

    async def expire(self, code: str, session_id: Optional[str] = None) -> bool:
        """Remove a session if it is still pending.

        A session that was linked or used before its timer fired is left
        alone. When ``session_id`` is given, only that issuance of the code
        is removed, so a stale timer cannot reclaim a reissued code.

        Returns:
            True if the session was removed.
        """
        async with self._lock:
            session = self._sessions.get(code)
            if session is None or not session.is_pending:
                return False
            if session_id is not None and session.session_id != session_id:
                return False
            self._remove_expired(session)

        logger.info(f"Expired code removed: {code}")
        return True

    async def process_due(self, now: Optional[float] = None) -> int:
        """Expire every session whose scheduled expiry time has passed.

        Returns:
            Number of sessions removed.
        """
        removed = 0
        for entry in self.expiry_queue.pop_due(self._now(now)):
            if await self.expire(entry.code, entry.session_id):
                removed += 1
        return removed

    async def sweep(self, now: Optional[float] = None) -> int:
        """Remove expired pending sessions and stale retained ones.

        Covers sessions whose expiry entry was lost. Linked and used
        sessions kept for audit are pruned ``terminal_retention`` seconds
        after they left pending.

        Returns:
            Number of expired pending sessions removed.
        """
        async with self._lock:
            now = self._now(now)
            expired = [s for s in self._sessions.values() if s.is_expired(now)]
            for session in expired:
                self._remove_expired(session)

            stale = [
                s
                for s in self._sessions.values()
                if not s.is_pending
                and s.linked_at is not None
                and s.linked_at + self._terminal_retention <= now
            ]
            for session in stale:
                del self._sessions[session.code]

        if stale:
            logger.debug(f"Pruned {len(stale)} retained sessions")
        return len(expired)

    def live_count(self) -> int:
        """Number of sessions currently holding their code."""
        now = self._clock()
        return sum(
            1 for s in self._sessions.values() if s.is_live and not s.is_expired(now)
        )

    def all(self) -> list[PairingSession]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions
