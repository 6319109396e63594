from __future__ import annotations

import asyncio
from datetime import timedelta

import httpx
import pytest

from mealsync.core.errors import InvalidRequest, NotConnected
from mealsync.models.credentials import TokenGrant
from mealsync.services import CompletionSignal, ConnectState

from conftest import build_harness


def _token_response() -> httpx.Response:
    return httpx.Response(200, json={"access_token": "A1", "refresh_token": "R1", "user_id": "F1"})


@pytest.mark.asyncio
async def test_connect_moves_attempt_to_awaiting_consent(harness) -> None:
    attempt = await harness.connection.connect("u1")

    assert attempt.status is ConnectState.AWAITING_CONSENT
    assert attempt.user_id == "u1"
    assert attempt.state in attempt.auth_url
    assert harness.connection.get_attempt(attempt.state) is attempt
    assert harness.fitbit.requests == []


@pytest.mark.asyncio
async def test_wait_resolves_when_callback_completes(harness) -> None:
    attempt = await harness.connection.connect("u1")
    harness.fitbit.token_responses.append(_token_response())

    waiter = asyncio.create_task(harness.connection.wait_for_completion(attempt))
    await asyncio.sleep(0)
    await harness.completer.complete(code="abc", state=attempt.state)
    result = await asyncio.wait_for(waiter, timeout=2)

    assert result.status is ConnectState.CONNECTED
    assert result.error is None
    assert len(harness.broker) == 0


@pytest.mark.asyncio
async def test_wait_reports_declined_consent(harness) -> None:
    attempt = await harness.connection.connect("u1")
    harness.broker.publish(attempt.state, CompletionSignal(ConnectState.FAILED, "access_denied"))

    result = await harness.connection.wait_for_completion(attempt)

    assert result.status is ConnectState.FAILED
    assert result.error == "access_denied"


@pytest.mark.asyncio
async def test_wait_detects_credentials_written_elsewhere(harness) -> None:
    attempt = await harness.connection.connect("u1")
    # Simulates a callback served by another process: no broker signal.
    harness.credentials.save_authorization(
        user_id="u1",
        grant=TokenGrant(access_token="A1", refresh_token="R1"),
        provider_user_id="F1",
    )

    result = await harness.connection.wait_for_completion(attempt, timeout=2)

    assert result.status is ConnectState.CONNECTED


@pytest.mark.asyncio
async def test_wait_ignores_credentials_from_earlier_connection(harness) -> None:
    harness.credentials.save_authorization(
        user_id="u1",
        grant=TokenGrant(access_token="A0", refresh_token="R0"),
        provider_user_id="F1",
    )
    attempt = await harness.connection.connect("u1")

    result = await harness.connection.wait_for_completion(attempt, timeout=0.05)

    assert result.status is ConnectState.AWAITING_CONSENT


@pytest.mark.asyncio
async def test_wait_times_out_after_connect_bound(app_settings, fake_fitbit) -> None:
    app_settings.oauth.connect_timeout_seconds = 0.05
    harness = build_harness(app_settings, fake_fitbit)
    attempt = await harness.connection.connect("u1")

    result = await harness.connection.wait_for_completion(attempt)

    assert result.status is ConnectState.TIMED_OUT
    assert len(harness.broker) == 0


@pytest.mark.asyncio
async def test_wait_on_expired_attempt_returns_immediately(harness) -> None:
    attempt = await harness.connection.connect("u1")
    attempt.started_at -= timedelta(seconds=harness.settings.oauth.connect_timeout_seconds + 1)

    result = await harness.connection.wait_for_completion(attempt, timeout=10)

    assert result.status is ConnectState.TIMED_OUT


@pytest.mark.asyncio
async def test_finished_attempt_is_returned_unchanged(harness) -> None:
    attempt = await harness.connection.connect("u1")
    harness.broker.publish(attempt.state, CompletionSignal(ConnectState.CONNECTED))
    await harness.connection.wait_for_completion(attempt)

    again = await harness.connection.wait_for_completion(attempt, timeout=0.01)

    assert again.status is ConnectState.CONNECTED


@pytest.mark.asyncio
async def test_status_and_disconnect(harness) -> None:
    assert not (await harness.connection.status("u1")).connected

    harness.credentials.save_authorization(
        user_id="u1",
        grant=TokenGrant(access_token="A1", refresh_token="R1"),
        provider_user_id="F1",
    )
    status = await harness.connection.status("u1")
    assert status.connected
    assert status.provider_user_id == "F1"
    assert status.connected_at is not None

    await harness.connection.disconnect("u1")

    status = await harness.connection.status("u1")
    assert not status.connected
    assert status.connected_at is None


@pytest.mark.asyncio
async def test_disconnect_requires_user_id(harness) -> None:
    with pytest.raises(InvalidRequest):
        await harness.connection.disconnect(" ")


@pytest.mark.asyncio
async def test_test_sync_logs_synthetic_meal(harness) -> None:
    harness.credentials.save_authorization(
        user_id="u1",
        grant=TokenGrant(access_token="A1", refresh_token="R1"),
        provider_user_id="F1",
    )
    harness.fitbit.log_responses.append(httpx.Response(201, json={"foodLog": {"logId": 99}}))

    result = await harness.connection.test_sync("u1")

    assert result.provider_log_id == 99
    form = harness.fitbit.form(harness.fitbit.log_calls[0])
    assert form["foodName"] == "Meal Planner Test Meal"
    assert form["calories"] == "100"


@pytest.mark.asyncio
async def test_test_sync_requires_connection(harness) -> None:
    with pytest.raises(NotConnected):
        await harness.connection.test_sync("u1")
