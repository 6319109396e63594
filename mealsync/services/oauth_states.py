"""
Server-held OAuth state tokens.

Each authorization attempt gets a random state value mapped to the local user
id. The mapping expires after ``OAUTH_STATE_TTL`` seconds and is deleted the
first time it is consumed.
"""

from __future__ import annotations

import logging
import secrets
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

from mealsync.clients.sqlite_store import SQLiteStore
from mealsync.core.errors import CredentialStoreError

logger = logging.getLogger(__name__)


class OAuthStateService:
    """Issue and consume single-use state tokens."""

    def __init__(self, store: SQLiteStore, ttl_seconds: int = 900) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)

    def _prune(self, now: datetime) -> None:
        removed = self._store.delete_states_issued_before((now - self._ttl).isoformat())
        if removed:
            logger.debug("Pruned %s expired OAuth states", removed)

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        state = secrets.token_urlsafe(32)
        try:
            self._prune(now)
            self._store.insert_state(state=state, user_id=user_id, issued_at=now.isoformat())
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to record OAuth state: {exc}") from exc
        return state

    def consume(self, state: str) -> Optional[str]:
        """Return the bound user id, or ``None`` for unknown, reused or expired states."""
        now = datetime.now(timezone.utc)
        try:
            row = self._store.pop_state(state)
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to read OAuth state: {exc}") from exc
        if row is None:
            return None

        issued_at = datetime.fromisoformat(row["issued_at"])
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        if now - issued_at > self._ttl:
            logger.info("Rejected expired OAuth state issued at %s", row["issued_at"])
            return None
        return row["user_id"]


__all__ = ["OAuthStateService"]
