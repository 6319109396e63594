"""
Credential store for Fitbit tokens.

Wraps the SQLite rows with encryption and converts them into
``CredentialRecord`` objects.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from mealsync.clients.sqlite_store import SQLiteStore
from mealsync.core.errors import CredentialStoreError
from mealsync.models.credentials import CredentialRecord, TokenGrant
from mealsync.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CredentialStore:
    """Read, write and clear per-user Fitbit credentials."""

    def __init__(self, store: SQLiteStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def load(self, user_id: str) -> Optional[CredentialRecord]:
        try:
            row = self._store.get_credentials(user_id)
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to read Fitbit credentials: {exc}") from exc
        if row is None:
            return None

        access_token = self._cipher.decrypt(row.get("access_token_encrypted"))
        refresh_token = self._cipher.decrypt(row.get("refresh_token_encrypted"))
        if (access_token is None) != (refresh_token is None):
            # A half-populated row cannot be used to call Fitbit.
            logger.warning("Ignoring partial Fitbit credential row for user %s", user_id)
            access_token = refresh_token = None

        return CredentialRecord(
            user_id=row["user_id"],
            access_token=access_token,
            refresh_token=refresh_token,
            provider_user_id=row.get("provider_user_id"),
            connected_at=_parse_timestamp(row.get("connected_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )

    def save_authorization(
        self,
        *,
        user_id: str,
        grant: TokenGrant,
        provider_user_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> CredentialRecord:
        """Upsert the record after a completed authorization."""
        timestamp = now or _utcnow()
        try:
            self._store.upsert_credentials(
                user_id=user_id,
                access_token_encrypted=self._cipher.encrypt(grant.access_token),
                refresh_token_encrypted=self._cipher.encrypt(grant.refresh_token),
                provider_user_id=provider_user_id,
                connected_at=timestamp.isoformat(),
                updated_at=timestamp.isoformat(),
            )
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Error storing Fitbit tokens: {exc}") from exc

        return CredentialRecord(
            user_id=user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            provider_user_id=provider_user_id,
            connected_at=timestamp,
            updated_at=timestamp,
        )

    def rotate_tokens(self, *, user_id: str, grant: TokenGrant) -> datetime:
        """Overwrite both tokens in one statement and return the new ``updated_at``."""
        timestamp = _utcnow()
        try:
            updated = self._store.update_tokens(
                user_id=user_id,
                access_token_encrypted=self._cipher.encrypt(grant.access_token),
                refresh_token_encrypted=self._cipher.encrypt(grant.refresh_token),
                updated_at=timestamp.isoformat(),
            )
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Error storing refreshed Fitbit tokens: {exc}") from exc
        if not updated:
            raise CredentialStoreError(
                f"No Fitbit credential record exists for user {user_id}."
            )
        return timestamp

    def clear(self, user_id: str) -> None:
        try:
            self._store.clear_credentials(user_id=user_id, updated_at=_utcnow().isoformat())
        except sqlite3.Error as exc:
            raise CredentialStoreError(f"Failed to clear Fitbit credentials: {exc}") from exc


__all__ = ["CredentialStore"]
