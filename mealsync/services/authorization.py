"""
Fitbit authorization-code handshake.

``AuthorizationInitiator`` issues the consent URL and a server-held state;
``AuthorizationCompleter`` handles the redirect back from Fitbit, exchanges
the code and binds the tokens to the user the state was issued for.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from mealsync.clients.fitbit_api import FitbitApiClient
from mealsync.clients.fitbit_auth import FitbitOAuthClient
from mealsync.core.config import AppSettings, OAuthSettings
from mealsync.core.errors import IntegrationError, InvalidRequest, MissingParameter
from mealsync.core.logging import mask_secret
from mealsync.services.completion import CompletionBroker, CompletionSignal, ConnectState
from mealsync.services.credential_store import CredentialStore
from mealsync.services.oauth_states import OAuthStateService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuthorizationStart:
    user_id: str
    auth_url: str
    state: str


@dataclass(slots=True)
class AuthorizationResult:
    success: bool
    user_id: Optional[str] = None
    provider_user_id: Optional[str] = None
    error: Optional[str] = None


class AuthorizationInitiator:
    """Build the Fitbit consent URL for a local user."""

    def __init__(
        self,
        settings: AppSettings,
        oauth_client: FitbitOAuthClient,
        state_service: OAuthStateService,
    ) -> None:
        self._settings = settings
        self._oauth = oauth_client
        self._states = state_service

    def start(self, user_id: Optional[str]) -> AuthorizationStart:
        if not user_id or not user_id.strip():
            raise InvalidRequest("User ID is required")
        user_id = user_id.strip()

        # Nothing is issued until every required setting is present.
        self._settings.ensure_complete()

        state = self._states.issue(user_id)
        auth_url = self._oauth.build_authorization_url(state)
        logger.info("Generated Fitbit auth URL for user %s", user_id)
        return AuthorizationStart(user_id=user_id, auth_url=auth_url, state=state)


class AuthorizationCompleter:
    """Finish the handshake started by ``AuthorizationInitiator``."""

    def __init__(
        self,
        *,
        oauth_client: FitbitOAuthClient,
        api_client: FitbitApiClient,
        credential_store: CredentialStore,
        state_service: OAuthStateService,
        oauth_settings: OAuthSettings,
        broker: Optional[CompletionBroker] = None,
    ) -> None:
        self._oauth = oauth_client
        self._api = api_client
        self._store = credential_store
        self._states = state_service
        self._oauth_settings = oauth_settings
        self._broker = broker

    async def complete(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
    ) -> AuthorizationResult:
        if error:
            # Consent was declined; Fitbit is not contacted.
            user_id = self._states.consume(state) if state else None
            logger.warning("Fitbit authorization declined for user %s: %s", user_id, error)
            self._notify(state, CompletionSignal(ConnectState.FAILED, error))
            return AuthorizationResult(success=False, user_id=user_id, error=error)

        missing = [name for name, value in (("code", code), ("state", state)) if not value]
        if missing:
            raise MissingParameter(*missing)

        try:
            user_id = self._resolve_user_id(state)
            logger.info("Processing Fitbit OAuth callback for user %s", user_id)

            grant = await self._oauth.exchange_authorization_code(code)
            provider_user_id = grant.provider_user_id
            if not provider_user_id:
                provider_user_id = await self._api.get_profile_user_id(grant.access_token)

            self._store.save_authorization(
                user_id=user_id,
                grant=grant,
                provider_user_id=provider_user_id,
            )
        except IntegrationError as exc:
            self._notify(state, CompletionSignal(ConnectState.FAILED, exc.message))
            raise

        logger.info(
            "Fitbit integration successful for user %s (fitbit user %s)",
            user_id,
            mask_secret(provider_user_id),
        )
        self._notify(state, CompletionSignal(ConnectState.CONNECTED))
        return AuthorizationResult(
            success=True, user_id=user_id, provider_user_id=provider_user_id
        )

    def _resolve_user_id(self, state: str) -> str:
        user_id = self._states.consume(state)
        if user_id:
            return user_id
        if self._oauth_settings.allow_raw_state_binding:
            logger.warning(
                "OAuth state was not issued by this service; binding it as a raw user id"
            )
            return state
        raise InvalidRequest("OAuth state is unknown, expired or already used.")

    def _notify(self, state: Optional[str], signal: CompletionSignal) -> None:
        if self._broker is not None:
            self._broker.publish(state, signal)


__all__ = [
    "AuthorizationCompleter",
    "AuthorizationInitiator",
    "AuthorizationResult",
    "AuthorizationStart",
]
