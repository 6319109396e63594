"""
In-process completion signals for pending Fitbit connection attempts.

The OAuth callback publishes the outcome for its state value; whoever is
waiting on that state receives it through an ``asyncio.Future``. Signals only
reach waiters in the same process, so waiters also poll the credential store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class ConnectState(str, Enum):
    IDLE = "idle"
    AWAITING_CONSENT = "awaiting_consent"
    CONNECTED = "connected"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(slots=True, frozen=True)
class CompletionSignal:
    state: ConnectState
    error: Optional[str] = None


class CompletionBroker:
    """Map OAuth state values to futures resolved by the callback handler."""

    def __init__(self) -> None:
        self._waiters: Dict[str, asyncio.Future[CompletionSignal]] = {}

    def subscribe(self, state: str) -> asyncio.Future[CompletionSignal]:
        """Return the future for ``state``, creating it on first use."""
        future = self._waiters.get(state)
        if future is None or future.cancelled():
            future = asyncio.get_running_loop().create_future()
            self._waiters[state] = future
        return future

    def publish(self, state: Optional[str], signal: CompletionSignal) -> bool:
        """Resolve the subscription for ``state``. Returns False when nobody subscribed."""
        if not state:
            return False
        future = self._waiters.get(state)
        if future is None or future.done():
            return False
        future.set_result(signal)
        return True

    def discard(self, state: str) -> None:
        future = self._waiters.pop(state, None)
        if future is not None and not future.done():
            future.cancel()

    def __len__(self) -> int:
        return len(self._waiters)


__all__ = ["CompletionBroker", "CompletionSignal", "ConnectState"]
