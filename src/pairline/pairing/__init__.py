"""Pairing module for pairline.

Provides the pairing-code lifecycle:
- Code generation
- Session records and status transitions
- In-memory session store with expiry scheduling
- Reconciliation against the link connection
"""

from .codes import CODE_ALPHABET, CodeGenerator, generate_session_id, is_well_formed
from .expiry import ExpiryQueue, ExpiryWorker
from .reconciler import Reconciler
from .session import PairingSession, SessionStatus
from .store import RetentionPolicy, SessionStore

__all__ = [
    "CODE_ALPHABET",
    "CodeGenerator",
    "ExpiryQueue",
    "ExpiryWorker",
    "PairingSession",
    "Reconciler",
    "RetentionPolicy",
    "SessionStatus",
    "SessionStore",
    "generate_session_id",
    "is_well_formed",
]
