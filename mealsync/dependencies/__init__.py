"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_authorization_completer,
    get_authorization_initiator,
    get_completion_broker,
    get_connection_service,
    get_credential_store,
    get_fitbit_api_client,
    get_fitbit_oauth_client,
    get_meal_sync_service,
    get_oauth_state_service,
    get_sqlite_store,
    get_token_cipher_service,
    get_token_refresher,
)
from .config import get_app_settings, get_callback_target_origin

__all__ = [
    "get_app_settings",
    "get_authorization_completer",
    "get_authorization_initiator",
    "get_callback_target_origin",
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
