"""
Error taxonomy for the Fitbit integration.

Every failure raised by the integration core derives from ``IntegrationError``
so the API layer can render a consistent payload. Provider-side rejections
carry the upstream status and body for diagnostics.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, Optional


class IntegrationError(Exception):
    """Base class for errors surfaced by the integration core."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "integration_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.error_code}


class InvalidRequest(IntegrationError):
    """Caller-supplied data is missing or malformed."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "invalid_request"


class MissingParameter(InvalidRequest):
    """A required callback parameter was not supplied."""

    error_code = "missing_parameter"

    def __init__(self, *names: str) -> None:
        super().__init__(f"Missing required parameter(s): {', '.join(names)}")
        self.names = names


class ConfigurationError(IntegrationError):
    """Deployment configuration is incomplete."""

    error_code = "configuration_error"

    def __init__(self, message: str, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


class NotConnected(IntegrationError):
    """The user has no usable Fitbit credentials."""

    status_code = HTTPStatus.CONFLICT
    error_code = "not_connected"

    def __init__(self, user_id: str) -> None:
        super().__init__("User is not connected to Fitbit. Connect an account first.")
        self.user_id = user_id


class CredentialStoreError(IntegrationError):
    """Persisting or reading credentials failed."""

    error_code = "credential_store_error"


class ProviderError(IntegrationError):
    """Fitbit rejected a request."""

    status_code = HTTPStatus.BAD_GATEWAY
    error_code = "provider_error"

    def __init__(
        self,
        message: str,
        *,
        provider_status: Optional[int] = None,
        provider_body: Optional[str] = None,
    ) -> None:
        if provider_status is not None and provider_body:
            message = f"{message}: {provider_status} - {provider_body}"
        elif provider_status is not None:
            message = f"{message}: {provider_status}"
        super().__init__(message)
        self.provider_status = provider_status
        self.provider_body = provider_body

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.provider_status is not None:
            payload["providerStatus"] = self.provider_status
        return payload


class TokenExchangeFailed(ProviderError):
    error_code = "token_exchange_failed"


class RefreshFailed(ProviderError):
    error_code = "refresh_failed"


class SyncFailed(ProviderError):
    error_code = "sync_failed"


__all__ = [
    "ConfigurationError",
    "CredentialStoreError",
    "IntegrationError",
    "InvalidRequest",
    "MissingParameter",
    "NotConnected",
    "ProviderError",
    "RefreshFailed",
    "SyncFailed",
    "TokenExchangeFailed",
]
