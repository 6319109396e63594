"""
UI-facing Fitbit connection service.

Drives the connect flow ``IDLE -> AWAITING_CONSENT -> CONNECTED | FAILED |
TIMED_OUT`` and exposes disconnect, status and test-sync actions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from mealsync.core.config import OAuthSettings
from mealsync.core.errors import InvalidRequest
from mealsync.models.credentials import CredentialRecord
from mealsync.schemas import MealData
from mealsync.services.authorization import AuthorizationInitiator
from mealsync.services.completion import CompletionBroker, ConnectState
from mealsync.services.credential_store import CredentialStore
from mealsync.services.meal_sync import MealSyncService, SyncResult

logger = logging.getLogger(__name__)

# Terminal attempts stay readable for a short while so late pollers get the outcome.
_ATTEMPT_RETENTION = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ConnectAttempt:
    user_id: str
    auth_url: str
    state: str
    started_at: datetime = field(default_factory=_utcnow)
    status: ConnectState = ConnectState.AWAITING_CONSENT
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status not in (ConnectState.IDLE, ConnectState.AWAITING_CONSENT)


@dataclass(slots=True)
class ConnectionStatus:
    connected: bool
    connected_at: Optional[datetime] = None
    provider_user_id: Optional[str] = None


class FitbitConnectionService:
    """Connect, disconnect, inspect and smoke-test a user's Fitbit link."""

    def __init__(
        self,
        *,
        initiator: AuthorizationInitiator,
        credential_store: CredentialStore,
        meal_sync: MealSyncService,
        broker: CompletionBroker,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._initiator = initiator
        self._store = credential_store
        self._meal_sync = meal_sync
        self._broker = broker
        self._settings = oauth_settings
        self._attempts: Dict[str, ConnectAttempt] = {}

    async def connect(self, user_id: str) -> ConnectAttempt:
        """Start a connect attempt and subscribe to its completion signal."""
        self._prune_attempts()
        start = self._initiator.start(user_id)
        self._broker.subscribe(start.state)
        attempt = ConnectAttempt(
            user_id=start.user_id, auth_url=start.auth_url, state=start.state
        )
        self._attempts[attempt.state] = attempt
        return attempt

    def get_attempt(self, state: str) -> Optional[ConnectAttempt]:
        return self._attempts.get(state)

    async def wait_for_completion(
        self, attempt: ConnectAttempt, *, timeout: Optional[float] = None
    ) -> ConnectAttempt:
        """Wait until the attempt resolves, the overall bound passes, or ``timeout`` elapses.

        When only ``timeout`` elapses the attempt is still awaiting consent and
        the caller may wait again. Reaching the connect bound is final.
        """
        if attempt.finished:
            return attempt

        deadline = attempt.started_at + timedelta(seconds=self._settings.connect_timeout_seconds)
        remaining = (deadline - _utcnow()).total_seconds()
        if remaining <= 0:
            self._finish(attempt, ConnectState.TIMED_OUT)
            return attempt
        reaches_deadline = timeout is None or timeout >= remaining
        bound = remaining if reaches_deadline else timeout

        signal = self._broker.subscribe(attempt.state)
        poller = asyncio.ensure_future(self._poll_for_credentials(attempt))
        try:
            done, _ = await asyncio.wait(
                {signal, poller}, timeout=bound, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            poller.cancel()
            await asyncio.gather(poller, return_exceptions=True)

        if signal in done and not signal.cancelled():
            outcome = signal.result()
            self._finish(attempt, outcome.state, outcome.error)
        elif poller in done:
            poller.result()
            self._finish(attempt, ConnectState.CONNECTED)
        elif reaches_deadline:
            logger.info("Fitbit connect attempt for user %s timed out", attempt.user_id)
            self._finish(attempt, ConnectState.TIMED_OUT)
        return attempt

    async def disconnect(self, user_id: str) -> ConnectionStatus:
        if not user_id or not user_id.strip():
            raise InvalidRequest("User ID is required")
        self._store.clear(user_id)
        logger.info("Disconnected Fitbit for user %s", user_id)
        return ConnectionStatus(connected=False)

    async def status(self, user_id: str) -> ConnectionStatus:
        if not user_id or not user_id.strip():
            raise InvalidRequest("User ID is required")
        record = self._store.load(user_id)
        if record is None or not record.is_connected:
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            connected_at=record.connected_at,
            provider_user_id=record.provider_user_id,
        )

    async def test_sync(self, user_id: str) -> SyncResult:
        """Push one synthetic meal through the sync path to validate the link."""
        meal = MealData(name="Meal Planner Test Meal", calories=100, servings=1)
        return await self._meal_sync.log_meal(user_id, meal)

    async def _poll_for_credentials(self, attempt: ConnectAttempt) -> CredentialRecord:
        while True:
            record = self._store.load(attempt.user_id)
            if (
                record is not None
                and record.is_connected
                and record.connected_at is not None
                and record.connected_at >= attempt.started_at
            ):
                return record
            await asyncio.sleep(self._settings.poll_interval_seconds)

    def _finish(
        self, attempt: ConnectAttempt, status: ConnectState, error: Optional[str] = None
    ) -> None:
        attempt.status = status
        attempt.error = error
        self._broker.discard(attempt.state)

    def _prune_attempts(self) -> None:
        cutoff = _utcnow() - timedelta(seconds=self._settings.connect_timeout_seconds)
        for state, attempt in list(self._attempts.items()):
            if attempt.started_at >= cutoff - _ATTEMPT_RETENTION:
                continue
            if not attempt.finished:
                self._finish(attempt, ConnectState.TIMED_OUT)
            del self._attempts[state]


__all__ = ["ConnectAttempt", "ConnectionStatus", "FitbitConnectionService"]
