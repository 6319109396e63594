"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from mealsync.clients import FitbitApiClient, FitbitOAuthClient, SQLiteStore
from mealsync.core.config import get_settings
from mealsync.services import (
    AuthorizationCompleter,
    AuthorizationInitiator,
    CompletionBroker,
    CredentialStore,
    FitbitConnectionService,
    MealSyncService,
    OAuthStateService,
    TokenCipherService,
    TokenRefresher,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the SQLite database behind the credential store."""
    settings = _settings()
    settings.storage.ensure_complete()
    return SQLiteStore(settings.storage.credential_store_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.fitbit.client_secret
    return TokenCipherService(secret=secret or "")


@lru_cache()
def get_fitbit_oauth_client() -> FitbitOAuthClient:
    return FitbitOAuthClient(_settings().fitbit)


@lru_cache()
def get_fitbit_api_client() -> FitbitApiClient:
    return FitbitApiClient(_settings().fitbit)


@lru_cache()
def get_credential_store() -> CredentialStore:
    return CredentialStore(get_sqlite_store(), get_token_cipher_service())


@lru_cache()
def get_oauth_state_service() -> OAuthStateService:
    settings = _settings()
    return OAuthStateService(get_sqlite_store(), ttl_seconds=settings.oauth.state_ttl_seconds)


@lru_cache()
def get_completion_broker() -> CompletionBroker:
    """Process-wide broker shared by the callback and the connect waiters."""
    return CompletionBroker()


def get_authorization_initiator() -> AuthorizationInitiator:
    return AuthorizationInitiator(
        _settings(), get_fitbit_oauth_client(), get_oauth_state_service()
    )


def get_authorization_completer() -> AuthorizationCompleter:
    return AuthorizationCompleter(
        oauth_client=get_fitbit_oauth_client(),
        api_client=get_fitbit_api_client(),
        credential_store=get_credential_store(),
        state_service=get_oauth_state_service(),
        oauth_settings=_settings().oauth,
        broker=get_completion_broker(),
    )


def get_token_refresher() -> TokenRefresher:
    return TokenRefresher(get_fitbit_oauth_client(), get_credential_store())


def get_meal_sync_service() -> MealSyncService:
    return MealSyncService(
        credential_store=get_credential_store(),
        api_client=get_fitbit_api_client(),
        token_refresher=get_token_refresher(),
    )


@lru_cache()
def get_connection_service() -> FitbitConnectionService:
    """Provide the connection service; it tracks pending attempts in memory."""
    return FitbitConnectionService(
        initiator=get_authorization_initiator(),
        credential_store=get_credential_store(),
        meal_sync=get_meal_sync_service(),
        broker=get_completion_broker(),
        oauth_settings=_settings().oauth,
    )


__all__ = [
    "get_authorization_completer",
    "get_authorization_initiator",
    "get_completion_broker",
    "get_connection_service",
    "get_credential_store",
    "get_fitbit_api_client",
    "get_fitbit_oauth_client",
    "get_meal_sync_service",
    "get_oauth_state_service",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_refresher",
]
