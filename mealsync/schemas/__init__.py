"""Public schema exports."""

from .auth import (
    ConnectionStatusResponse,
    ConnectRequest,
    ConnectResponse,
    ConnectWaitResponse,
)
from .meal import MealData, MealSyncRequest, MealSyncResponse, SyncCheckRequest

__all__ = [
    "ConnectRequest",
    "ConnectResponse",
    "ConnectWaitResponse",
    "ConnectionStatusResponse",
    "MealData",
    "MealSyncRequest",
    "MealSyncResponse",
    "SyncCheckRequest",
]
