"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI routes and the integration
services share one configuration surface. Required values are optional at load
time and validated by the components that need them, so a partially
configured deployment fails with ``ConfigurationError`` before any network call.
"""

from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Optional

import os

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from mealsync.core.errors import ConfigurationError


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _require(settings: BaseSettings, required: dict[str, str], label: str) -> None:
    missing = tuple(
        env_name for field_name, env_name in required.items() if not getattr(settings, field_name)
    )
    if missing:
        raise ConfigurationError(
            f"{label} is not configured; missing {', '.join(missing)}.",
            missing=missing,
        )


class FitbitSettings(BaseSettings):
    """Credentials and endpoints for the Fitbit Web API."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: Optional[str] = Field(None, validation_alias="FITBIT_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="FITBIT_CLIENT_SECRET")
    # Kept as a plain string: Fitbit compares it byte-for-byte with the
    # registered callback, and URL types normalize trailing slashes.
    redirect_uri: Optional[str] = Field(None, validation_alias="FITBIT_REDIRECT_URI")
    authorize_url: str = Field(
        "https://www.fitbit.com/oauth2/authorize", validation_alias="FITBIT_AUTHORIZE_URL"
    )
    token_url: str = Field(
        "https://api.fitbit.com/oauth2/token", validation_alias="FITBIT_TOKEN_URL"
    )
    api_base_url: str = Field("https://api.fitbit.com", validation_alias="FITBIT_API_BASE_URL")
    http_timeout_seconds: float = Field(10.0, validation_alias="FITBIT_HTTP_TIMEOUT")

    _REQUIRED: ClassVar[dict[str, str]] = {
        "client_id": "FITBIT_CLIENT_ID",
        "client_secret": "FITBIT_CLIENT_SECRET",
        "redirect_uri": "FITBIT_REDIRECT_URI",
    }

    def ensure_complete(self) -> None:
        """Raise ``ConfigurationError`` when any Fitbit credential is absent."""
        _require(self, self._REQUIRED, "Fitbit integration")


class StorageSettings(BaseSettings):
    """Location of the credential store."""

    model_config = SettingsConfigDict(extra="ignore")

    credential_store_path: Optional[str] = Field(
        None,
        validation_alias="CREDENTIAL_STORE_PATH",
        description="SQLite database holding Fitbit credentials and OAuth states.",
    )

    def ensure_complete(self) -> None:
        _require(self, {"credential_store_path": "CREDENTIAL_STORE_PATH"}, "Credential store")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    connect_timeout_seconds: float = Field(300.0, validation_alias="OAUTH_CONNECT_TIMEOUT")
    poll_interval_seconds: float = Field(2.0, validation_alias="OAUTH_POLL_INTERVAL")
    allow_raw_state_binding: bool = Field(
        False,
        validation_alias="OAUTH_ALLOW_RAW_STATE_BINDING",
        description=(
            "Accept an unknown state value as the user identifier. Only for "
            "clients that still send the user id as the state."
        ),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Origin of the meal planner UI; used as the postMessage target.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    fitbit: FitbitSettings = Field(default_factory=FitbitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    def ensure_complete(self) -> None:
        """Validate every required value, reporting all missing names at once."""
        missing: list[str] = []
        for section in (self.fitbit, self.storage):
            try:
                section.ensure_complete()
            except ConfigurationError as exc:
                missing.extend(exc.missing)
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}.",
                missing=tuple(missing),
            )


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "FitbitSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
