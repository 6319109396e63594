"""
Fitbit OAuth utilities.

Builds the consent URL and talks to the token endpoint for both the
authorization-code and refresh-token grants.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import httpx

from mealsync.core.config import FitbitSettings
from mealsync.core.errors import ProviderError, RefreshFailed, TokenExchangeFailed
from mealsync.models.credentials import TokenGrant
from mealsync.utils.http import basic_auth_header, is_success, response_body_preview

logger = logging.getLogger(__name__)

FITBIT_SCOPES = (
    "nutrition",
    "weight",
    "heartrate",
    "activity",
    "location",
    "profile",
    "sleep",
)


class FitbitOAuthClient:
    """Build Fitbit authorization URLs and call the token endpoint."""

    def __init__(
        self,
        settings: FitbitSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def build_authorization_url(self, state: str) -> str:
        """Construct the Fitbit consent URL."""
        self._settings.ensure_complete()
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": self._settings.redirect_uri,
            "scope": " ".join(FITBIT_SCOPES),
            "state": state,
        }
        query = urlencode(params, quote_via=quote)
        return f"{self._settings.authorize_url}?{query}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "client_id": self._settings.client_id,
            "grant_type": "authorization_code",
            "redirect_uri": self._settings.redirect_uri,
            "code": code,
        }
        response = await self._post_token(payload, TokenExchangeFailed)
        if not is_success(response):
            body = response_body_preview(response)
            logger.error("Fitbit token exchange failed with status %s", response.status_code)
            raise TokenExchangeFailed(
                "Token exchange failed",
                provider_status=response.status_code,
                provider_body=body,
            )
        return self._parse_grant(response, TokenExchangeFailed)

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a rotated token pair."""
        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        response = await self._post_token(payload, RefreshFailed)
        if not is_success(response):
            logger.warning("Fitbit token refresh failed with status %s", response.status_code)
            raise RefreshFailed(
                "Failed to refresh Fitbit token",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            )
        return self._parse_grant(response, RefreshFailed)

    async def _post_token(
        self, payload: Dict[str, Any], error_cls: type[ProviderError]
    ) -> httpx.Response:
        self._settings.ensure_complete()
        headers = {
            "Authorization": basic_auth_header(
                self._settings.client_id, self._settings.client_secret
            ),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            try:
                return await client.post(
                    self._settings.token_url, data=payload, headers=headers
                )
            except httpx.HTTPError as exc:
                raise error_cls(f"Fitbit token endpoint unreachable: {exc}") from exc

    @staticmethod
    def _parse_grant(response: httpx.Response, error_cls: type[ProviderError]) -> TokenGrant:
        try:
            token_payload = response.json()
        except ValueError as exc:
            raise error_cls(
                "Token endpoint returned a non-JSON body",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            ) from exc

        if not isinstance(token_payload, dict):
            raise error_cls(
                "Token endpoint returned an unexpected body",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            )

        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        if not access_token or not refresh_token:
            raise error_cls("Incomplete token payload returned from Fitbit.")

        return TokenGrant(
            access_token=access_token,
            refresh_token=refresh_token,
            provider_user_id=token_payload.get("user_id"),
            expires_in=token_payload.get("expires_in"),
            scope=token_payload.get("scope"),
        )


__all__ = ["FITBIT_SCOPES", "FitbitOAuthClient"]
