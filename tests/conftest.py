"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - rootdir-style collection
    import _bootstrap  # type: ignore # noqa: F401

from dataclasses import dataclass
from urllib.parse import parse_qs

import httpx
import pytest

from mealsync.clients import FitbitApiClient, FitbitOAuthClient, SQLiteStore
from mealsync.core.config import AppSettings, FitbitSettings, OAuthSettings, StorageSettings
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

REDIRECT_URI = "https://meals.example.com/api/fitbit/callback"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


class FakeFitbit:
    """Scripted stand-in for the Fitbit token, profile and food-log endpoints."""

    def __init__(self) -> None:
        self.token_responses: list[httpx.Response] = []
        self.log_responses: list[httpx.Response] = []
        self.profile_responses: list[httpx.Response] = []
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/oauth2/token":
            queue = self.token_responses
        elif path.endswith("/foods/log.json"):
            queue = self.log_responses
        elif path == "/1/user/-/profile.json":
            queue = self.profile_responses
        else:
            return httpx.Response(404, json={"errors": [{"message": "not found"}]})
        if not queue:
            raise AssertionError(f"Unexpected Fitbit request to {path}")
        return queue.pop(0)

    def calls_to(self, suffix: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(suffix)]

    @property
    def token_calls(self) -> list[httpx.Request]:
        return self.calls_to("/oauth2/token")

    @property
    def log_calls(self) -> list[httpx.Request]:
        return self.calls_to("/foods/log.json")

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        parsed = parse_qs(request.content.decode("utf-8"), keep_blank_values=True)
        return {key: values[0] for key, values in parsed.items()}


@pytest.fixture
def fake_fitbit() -> FakeFitbit:
    return FakeFitbit()


@pytest.fixture
def app_settings(tmp_path) -> AppSettings:
    return AppSettings(
        fitbit=FitbitSettings(
            FITBIT_CLIENT_ID="client-123",
            FITBIT_CLIENT_SECRET="client-secret",
            FITBIT_REDIRECT_URI=REDIRECT_URI,
        ),
        storage=StorageSettings(CREDENTIAL_STORE_PATH=str(tmp_path / "credentials.db")),
        oauth=OAuthSettings(
            OAUTH_STATE_TTL=900,
            OAUTH_CONNECT_TIMEOUT=5,
            OAUTH_POLL_INTERVAL=0.01,
            OAUTH_ALLOW_RAW_STATE_BINDING=False,
        ),
    )


@dataclass
class Harness:
    settings: AppSettings
    fitbit: FakeFitbit
    sqlite: SQLiteStore
    cipher: TokenCipherService
    credentials: CredentialStore
    states: OAuthStateService
    broker: CompletionBroker
    initiator: AuthorizationInitiator
    completer: AuthorizationCompleter
    refresher: TokenRefresher
    meal_sync: MealSyncService
    connection: FitbitConnectionService


def build_harness(settings: AppSettings, fitbit: FakeFitbit) -> Harness:
    sqlite = SQLiteStore(settings.storage.credential_store_path)
    cipher = TokenCipherService(secret="harness-secret")
    credentials = CredentialStore(sqlite, cipher)
    states = OAuthStateService(sqlite, ttl_seconds=settings.oauth.state_ttl_seconds)
    broker = CompletionBroker()
    oauth_client = FitbitOAuthClient(settings.fitbit, transport=fitbit.transport)
    api_client = FitbitApiClient(settings.fitbit, transport=fitbit.transport)
    initiator = AuthorizationInitiator(settings, oauth_client, states)
    completer = AuthorizationCompleter(
        oauth_client=oauth_client,
        api_client=api_client,
        credential_store=credentials,
        state_service=states,
        oauth_settings=settings.oauth,
        broker=broker,
    )
    refresher = TokenRefresher(oauth_client, credentials)
    meal_sync = MealSyncService(
        credential_store=credentials, api_client=api_client, token_refresher=refresher
    )
    connection = FitbitConnectionService(
        initiator=initiator,
        credential_store=credentials,
        meal_sync=meal_sync,
        broker=broker,
        oauth_settings=settings.oauth,
    )
    return Harness(
        settings=settings,
        fitbit=fitbit,
        sqlite=sqlite,
        cipher=cipher,
        credentials=credentials,
        states=states,
        broker=broker,
        initiator=initiator,
        completer=completer,
        refresher=refresher,
        meal_sync=meal_sync,
        connection=connection,
    )


@pytest.fixture
def harness(app_settings: AppSettings, fake_fitbit: FakeFitbit) -> Harness:
    return build_harness(app_settings, fake_fitbit)
