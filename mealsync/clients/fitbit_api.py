"""
Thin wrapper around the Fitbit Web API endpoints used by meal sync.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx

from mealsync.core.config import FitbitSettings
from mealsync.core.errors import TokenExchangeFailed
from mealsync.utils.http import bearer_auth_header, is_success, response_body_preview


class FitbitApiClient:
    """Issue bearer-authenticated calls against ``api.fitbit.com``."""

    def __init__(
        self,
        settings: FitbitSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.api_base_url,
            timeout=self._settings.http_timeout_seconds,
            transport=self._transport,
        )

    async def log_food(
        self,
        *,
        access_token: str,
        provider_user_id: Optional[str],
        fields: Mapping[str, Any],
    ) -> httpx.Response:
        """Create a food log entry. The raw response is returned for status handling."""
        path = f"/1/user/{provider_user_id or '-'}/foods/log.json"
        headers = {
            "Authorization": bearer_auth_header(access_token),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        async with self._client() as client:
            return await client.post(path, data=dict(fields), headers=headers)

    async def get_profile_user_id(self, access_token: str) -> str:
        """Return the encoded Fitbit user id of the token owner."""
        async with self._client() as client:
            try:
                response = await client.get(
                    "/1/user/-/profile.json",
                    headers={"Authorization": bearer_auth_header(access_token)},
                )
            except httpx.HTTPError as exc:
                raise TokenExchangeFailed(f"Fitbit profile endpoint unreachable: {exc}") from exc
        if not is_success(response):
            raise TokenExchangeFailed(
                "Failed to get Fitbit user profile",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TokenExchangeFailed(
                "Fitbit profile endpoint returned a non-JSON body",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            ) from exc
        user = payload.get("user") if isinstance(payload, dict) else None
        encoded_id = user.get("encodedId") if isinstance(user, dict) else None
        if not encoded_id:
            raise TokenExchangeFailed("Fitbit profile response did not include a user id.")
        return encoded_id


__all__ = ["FitbitApiClient"]
