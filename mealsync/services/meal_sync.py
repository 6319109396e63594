"""
Relay planner meals to the Fitbit food log.

A write that comes back 401 triggers one token refresh and one retry; any
other failure is reported to the caller as ``SyncFailed``. Fitbit creates a
new log entry per successful call, so callers must not replay a request
without a fresh user action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from http import HTTPStatus
from typing import Dict, Optional

import httpx

from mealsync.clients.fitbit_api import FitbitApiClient
from mealsync.core.errors import NotConnected, SyncFailed
from mealsync.models.credentials import CredentialRecord
from mealsync.schemas import MealData
from mealsync.services.credential_store import CredentialStore
from mealsync.services.token_refresher import TokenRefresher
from mealsync.utils.http import is_success, response_body_preview

logger = logging.getLogger(__name__)

# Fitbit unit id for "serving".
SERVING_UNIT_ID = 147

MEAL_TYPE_IDS: Dict[str, int] = {
    "breakfast": 1,
    "morning-snack": 2,
    "lunch": 3,
    "afternoon-snack": 4,
    "dinner": 5,
    "evening-snack": 7,
}
DEFAULT_MEAL_TYPE_ID = MEAL_TYPE_IDS["breakfast"]


def meal_type_id(meal_type: Optional[str]) -> int:
    """Map a planner meal category to Fitbit's ``mealTypeId``; unknown falls back."""
    if not meal_type:
        return DEFAULT_MEAL_TYPE_ID
    key = meal_type.strip().lower().replace("_", "-").replace(" ", "-")
    return MEAL_TYPE_IDS.get(key, DEFAULT_MEAL_TYPE_ID)


def build_food_log_fields(meal: MealData, *, today: Optional[date] = None) -> Dict[str, str]:
    log_date = meal.date or today or datetime.now(timezone.utc).date()
    return {
        "foodName": meal.name,
        "brandName": meal.brand or "",
        "unitId": str(SERVING_UNIT_ID),
        "amount": f"{meal.servings:g}",
        "calories": str(round(meal.calories)),
        "mealTypeId": str(meal_type_id(meal.meal_type)),
        "date": log_date.isoformat(),
    }


@dataclass(slots=True)
class SyncResult:
    success: bool
    provider_log_id: Optional[int] = None
    refreshed: bool = False


class MealSyncService:
    """Log meals to Fitbit on behalf of a connected user."""

    def __init__(
        self,
        *,
        credential_store: CredentialStore,
        api_client: FitbitApiClient,
        token_refresher: TokenRefresher,
    ) -> None:
        self._store = credential_store
        self._api = api_client
        self._refresher = token_refresher

    async def log_meal(self, user_id: str, meal: MealData) -> SyncResult:
        record = self._store.load(user_id)
        if record is None or not record.access_token:
            raise NotConnected(user_id)

        logger.info("Logging meal to Fitbit for user %s", user_id)
        fields = build_food_log_fields(meal)

        response = await self._post(record, record.access_token, fields)
        refreshed = False
        if response.status_code == HTTPStatus.UNAUTHORIZED:
            logger.info("Fitbit access token expired for user %s, refreshing", user_id)
            access_token = await self._refresher.refresh(record)
            refreshed = True
            response = await self._post(record, access_token, fields)
            if response.status_code == HTTPStatus.UNAUTHORIZED:
                raise SyncFailed(
                    "Fitbit rejected the refreshed access token",
                    provider_status=response.status_code,
                    provider_body=response_body_preview(response),
                )

        if not is_success(response):
            logger.error("Fitbit API error for user %s: %s", user_id, response.status_code)
            raise SyncFailed(
                "Fitbit API error",
                provider_status=response.status_code,
                provider_body=response_body_preview(response),
            )

        log_id = self._extract_log_id(response)
        logger.info("Logged meal to Fitbit for user %s (log %s)", user_id, log_id)
        return SyncResult(success=True, provider_log_id=log_id, refreshed=refreshed)

    async def _post(
        self, record: CredentialRecord, access_token: str, fields: Dict[str, str]
    ) -> httpx.Response:
        try:
            return await self._api.log_food(
                access_token=access_token,
                provider_user_id=record.provider_user_id,
                fields=fields,
            )
        except httpx.HTTPError as exc:
            raise SyncFailed(f"Fitbit API unreachable: {exc}") from exc

    @staticmethod
    def _extract_log_id(response: httpx.Response) -> Optional[int]:
        try:
            payload = response.json()
        except ValueError:
            return None
        food_log = payload.get("foodLog") if isinstance(payload, dict) else None
        if not isinstance(food_log, dict):
            return None
        return food_log.get("logId")


__all__ = [
    "DEFAULT_MEAL_TYPE_ID",
    "MEAL_TYPE_IDS",
    "MealSyncService",
    "SyncResult",
    "build_food_log_fields",
    "meal_type_id",
]
