"""
Refresh-token rotation for stored Fitbit credentials.
"""

from __future__ import annotations

import logging

from mealsync.clients.fitbit_auth import FitbitOAuthClient
from mealsync.core.errors import NotConnected, RefreshFailed
from mealsync.models.credentials import CredentialRecord
from mealsync.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Exchange a stored refresh token and persist the rotated pair.

    Each call performs exactly one token request and at most one write.
    Concurrent refreshes for the same user are not deduplicated; the last
    write wins. When Fitbit rejects a refresh token that another caller has
    already rotated, the pair that caller stored is used instead. Any other
    rejection raises ``RefreshFailed`` and leaves the stored pair as it was.
    """

    def __init__(self, oauth_client: FitbitOAuthClient, credential_store: CredentialStore) -> None:
        self._oauth = oauth_client
        self._store = credential_store

    async def refresh(self, record: CredentialRecord) -> str:
        if not record.refresh_token:
            raise NotConnected(record.user_id)

        used_refresh_token = record.refresh_token
        try:
            grant = await self._oauth.refresh_token(used_refresh_token)
        except RefreshFailed:
            current = self._store.load(record.user_id)
            if (
                current is None
                or not current.is_connected
                or current.refresh_token == used_refresh_token
            ):
                raise
            logger.info(
                "Fitbit tokens for user %s were rotated concurrently; using the stored pair",
                record.user_id,
            )
            self._adopt(record, current.access_token, current.refresh_token, current.updated_at)
            return current.access_token

        updated_at = self._store.rotate_tokens(user_id=record.user_id, grant=grant)
        logger.info("Rotated Fitbit tokens for user %s", record.user_id)
        self._adopt(record, grant.access_token, grant.refresh_token, updated_at)
        return grant.access_token

    @staticmethod
    def _adopt(record: CredentialRecord, access_token, refresh_token, updated_at) -> None:
        record.access_token = access_token
        record.refresh_token = refresh_token
        record.updated_at = updated_at


__all__ = ["TokenRefresher"]
