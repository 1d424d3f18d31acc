"""
Session store - where the latest token pair for each user lives.

One record per user id, overwritten on every login. Two concurrent logins
for the same user race and the last write wins; both pairs stay valid
until they expire since verification never consults the store.
"""

from __future__ import annotations

import logging

from bistro.core.utils import utc_now
from bistro.storage.base import Collections, DocumentStore, with_timeout

logger = logging.getLogger(__name__)


class SessionStore:
    """Persists token pairs through ``update_one(..., upsert=True)``."""

    def __init__(
        self,
        store: DocumentStore,
        timeout: float = 10.0,
        collection: str = Collections.USERS,
    ):
        self.store = store
        self.timeout = timeout
        self.collection = collection

    async def save(self, user_id: str, access_token: str, refresh_token: str) -> None:
        """Replace the stored pair for ``user_id`` and stamp ``updated_at``."""
        patch = {
            "token": access_token,
            "refresh_token": refresh_token,
            "updated_at": utc_now(),
        }
        result = await with_timeout(
            self.store.update_one(self.collection, {"user_id": user_id}, patch, upsert=True),
            self.timeout,
            "session.save",
        )
        if result.upserted_id:
            logger.info("Created session record for user %s", user_id)
        else:
            logger.debug("Updated tokens for user %s", user_id)
