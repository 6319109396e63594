from __future__ import annotations

from datetime import date

import httpx
import pytest

from mealsync.core.errors import NotConnected, RefreshFailed, SyncFailed
from mealsync.models.credentials import TokenGrant
from mealsync.schemas import MealData
from mealsync.services.meal_sync import (
    DEFAULT_MEAL_TYPE_ID,
    build_food_log_fields,
    meal_type_id,
)


def _connect(harness, user_id: str = "u1", provider_user_id: str = "F1") -> None:
    harness.credentials.save_authorization(
        user_id=user_id,
        grant=TokenGrant(access_token="A1", refresh_token="R1"),
        provider_user_id=provider_user_id,
    )


def _logged(log_id: int = 42) -> httpx.Response:
    return httpx.Response(201, json={"foodLog": {"logId": log_id}})


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("breakfast", 1),
        ("morning-snack", 2),
        ("Lunch", 3),
        ("afternoon_snack", 4),
        ("dinner", 5),
        ("evening snack", 7),
        ("brunch", DEFAULT_MEAL_TYPE_ID),
        (None, DEFAULT_MEAL_TYPE_ID),
    ],
)
def test_meal_type_mapping(label, expected) -> None:
    assert meal_type_id(label) == expected


def test_food_log_fields_use_serving_unit() -> None:
    meal = MealData(name="Oatmeal", calories=310.6, mealType="breakfast", servings=1.5)

    fields = build_food_log_fields(meal, today=date(2024, 5, 1))

    assert fields == {
        "foodName": "Oatmeal",
        "brandName": "",
        "unitId": "147",
        "amount": "1.5",
        "calories": "311",
        "mealTypeId": "1",
        "date": "2024-05-01",
    }


def test_food_log_fields_prefer_meal_date() -> None:
    meal = MealData(name="Soup", calories=200, date=date(2024, 2, 29), brand="Home")

    fields = build_food_log_fields(meal, today=date(2024, 5, 1))

    assert fields["date"] == "2024-02-29"
    assert fields["brandName"] == "Home"
    assert fields["amount"] == "1"


@pytest.mark.asyncio
async def test_log_meal_posts_once_with_bearer_token(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.append(_logged(7))

    result = await harness.meal_sync.log_meal(
        "u1", MealData(name="Chicken Salad", calories=450, mealType="lunch")
    )

    assert result.success
    assert result.provider_log_id == 7
    assert not result.refreshed
    assert harness.fitbit.token_calls == []
    request = harness.fitbit.log_calls[0]
    assert request.url.path == "/1/user/F1/foods/log.json"
    assert request.headers["Authorization"] == "Bearer A1"
    form = harness.fitbit.form(request)
    assert form["mealTypeId"] == "3"
    assert form["foodName"] == "Chicken Salad"
    assert form["calories"] == "450"


@pytest.mark.asyncio
async def test_unknown_category_uses_default_meal_type(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.append(_logged())

    await harness.meal_sync.log_meal("u1", MealData(name="Pie", calories=300, mealType="brunch"))

    form = harness.fitbit.form(harness.fitbit.log_calls[0])
    assert form["mealTypeId"] == str(DEFAULT_MEAL_TYPE_ID)


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_once_and_retried(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.extend([httpx.Response(401), _logged(42)])
    harness.fitbit.token_responses.append(
        httpx.Response(200, json={"access_token": "A2", "refresh_token": "R2", "user_id": "F1"})
    )

    result = await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert result.provider_log_id == 42
    assert result.refreshed
    assert len(harness.fitbit.token_calls) == 1
    first, second = harness.fitbit.log_calls
    assert first.headers["Authorization"] == "Bearer A1"
    assert second.headers["Authorization"] == "Bearer A2"
    stored = harness.credentials.load("u1")
    assert (stored.access_token, stored.refresh_token) == ("A2", "R2")


@pytest.mark.asyncio
async def test_second_unauthorized_response_fails_without_another_refresh(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.extend([httpx.Response(401), httpx.Response(401)])
    harness.fitbit.token_responses.append(
        httpx.Response(200, json={"access_token": "A2", "refresh_token": "R2"})
    )

    with pytest.raises(SyncFailed) as excinfo:
        await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert excinfo.value.provider_status == 401
    assert len(harness.fitbit.token_calls) == 1
    assert len(harness.fitbit.log_calls) == 2


@pytest.mark.asyncio
async def test_rejected_refresh_surfaces_refresh_failure(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.append(httpx.Response(401))
    harness.fitbit.token_responses.append(httpx.Response(400, text="invalid_grant"))

    with pytest.raises(RefreshFailed):
        await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert len(harness.fitbit.log_calls) == 1


@pytest.mark.asyncio
async def test_server_error_is_not_retried(harness) -> None:
    _connect(harness)
    harness.fitbit.log_responses.append(httpx.Response(500, text="upstream down"))

    with pytest.raises(SyncFailed) as excinfo:
        await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert excinfo.value.provider_status == 500
    assert "upstream down" in excinfo.value.message
    assert harness.fitbit.token_calls == []
    assert len(harness.fitbit.log_calls) == 1


@pytest.mark.asyncio
async def test_unconnected_user_makes_no_network_call(harness) -> None:
    with pytest.raises(NotConnected):
        await harness.meal_sync.log_meal("nobody", MealData(name="Soup", calories=200))

    assert harness.fitbit.requests == []


@pytest.mark.asyncio
async def test_disconnected_user_cannot_sync(harness) -> None:
    _connect(harness)
    await harness.connection.disconnect("u1")

    with pytest.raises(NotConnected):
        await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert harness.fitbit.requests == []


@pytest.mark.asyncio
async def test_missing_provider_user_id_uses_current_user_path(harness) -> None:
    harness.credentials.save_authorization(
        user_id="u1",
        grant=TokenGrant(access_token="A1", refresh_token="R1"),
        provider_user_id=None,
    )
    harness.fitbit.log_responses.append(_logged())

    await harness.meal_sync.log_meal("u1", MealData(name="Soup", calories=200))

    assert harness.fitbit.log_calls[0].url.path == "/1/user/-/foods/log.json"
