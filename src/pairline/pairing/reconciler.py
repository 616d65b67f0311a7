"""Reconcile pending pairing codes with the link connection."""

import logging
from typing import Optional

from pairline.pairing.session import PairingSession
from pairline.pairing.store import SessionStore

logger = logging.getLogger(__name__)


class Reconciler:
    """Links every pending code once the device-link connection opens.

    Only sessions pending at call time change, so calling it again after
    a reconnect leaves earlier links untouched.
    """

    def __init__(self, store: SessionStore):
        self._store = store

    async def on_connection_open(
        self, account_id: Optional[str] = None
    ) -> list[PairingSession]:
        """Mark all pending sessions as linked to ``account_id``.

        Returns:
            The sessions that were linked by this call.
        """
        linked = await self._store.bulk_mark_linked(account_id)
        if linked:
            logger.info(
                f"Linked {len(linked)} pending codes to {account_id or 'unknown account'}"
            )
        return linked
