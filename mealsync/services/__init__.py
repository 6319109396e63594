"""Service layer exports."""

from .authorization import (
    AuthorizationCompleter,
    AuthorizationInitiator,
    AuthorizationResult,
    AuthorizationStart,
)
from .completion import CompletionBroker, CompletionSignal, ConnectState
from .connection import ConnectAttempt, ConnectionStatus, FitbitConnectionService
from .credential_store import CredentialStore
from .meal_sync import MealSyncService, SyncResult
from .oauth_states import OAuthStateService
from .token_cipher import TokenCipherService
from .token_refresher import TokenRefresher

__all__ = [
    "AuthorizationCompleter",
    "AuthorizationInitiator",
    "AuthorizationResult",
    "AuthorizationStart",
    "CompletionBroker",
    "CompletionSignal",
    "ConnectAttempt",
    "ConnectState",
    "ConnectionStatus",
    "CredentialStore",
    "FitbitConnectionService",
    "MealSyncService",
    "OAuthStateService",
    "SyncResult",
    "TokenCipherService",
    "TokenRefresher",
]
