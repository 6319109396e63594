"""Expose constructed client wrappers."""

from .fitbit_api import FitbitApiClient
from .fitbit_auth import FITBIT_SCOPES, FitbitOAuthClient
from .sqlite_store import SQLiteStore

__all__ = [
    "FITBIT_SCOPES",
    "FitbitApiClient",
    "FitbitOAuthClient",
    "SQLiteStore",
]
