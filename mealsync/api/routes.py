"""
FastAPI routes for the Fitbit integration.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from mealsync.api.pages import render_callback_page
from mealsync.core.errors import IntegrationError, InvalidRequest
from mealsync.dependencies import (
    get_authorization_completer,
    get_callback_target_origin,
    get_connection_service,
    get_meal_sync_service,
)
from mealsync.schemas import (
    ConnectionStatusResponse,
    ConnectRequest,
    ConnectResponse,
    ConnectWaitResponse,
    MealSyncRequest,
    MealSyncResponse,
    SyncCheckRequest,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/fitbit/connect", response_model=ConnectResponse)
async def start_fitbit_connect(
    payload: ConnectRequest,
    connection: Annotated[Any, Depends(get_connection_service)],
) -> ConnectResponse:
    """Generate the Fitbit consent URL and a state token for the user."""
    attempt = await connection.connect(payload.user_id)
    return ConnectResponse(auth_url=attempt.auth_url, state=attempt.state)


@router.get("/fitbit/authorize", status_code=HTTPStatus.OK)
async def start_fitbit_authorize(
    request: Request,
    connection: Annotated[Any, Depends(get_connection_service)],
    user_id: str = Query(..., description="User identifier initiating authentication."),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Fitbit consent screen.",
    ),
) -> Any:
    """Browser-friendly variant of connect that can redirect straight to Fitbit."""
    attempt = await connection.connect(user_id)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=attempt.auth_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authUrl": attempt.auth_url, "state": attempt.state}


@router.get("/fitbit/callback", response_class=HTMLResponse)
async def handle_fitbit_callback(
    completer: Annotated[Any, Depends(get_authorization_completer)],
    target_origin: Annotated[Optional[str], Depends(get_callback_target_origin)],
    code: str | None = Query(default=None, description="Authorization code from Fitbit."),
    state: str | None = Query(default=None, description="State issued at connect time."),
    error: str | None = Query(default=None, description="Set when consent was declined."),
    error_description: str | None = Query(default=None),
) -> HTMLResponse:
    """Complete the OAuth exchange and render a popup confirmation page."""
    status_code = HTTPStatus.OK
    try:
        result = await completer.complete(
            code=code, state=state, error=error_description or error
        )
        success, reason = result.success, result.error
    except IntegrationError as exc:
        logger.error("Error in Fitbit OAuth callback: %s", exc.message)
        success, reason = False, exc.message
        status_code = exc.status_code

    page = render_callback_page(success=success, error=reason, target_origin=target_origin)
    return HTMLResponse(content=page, status_code=status_code)


@router.get("/fitbit/connect/{state}/wait", response_model=ConnectWaitResponse)
async def wait_for_fitbit_connect(
    state: str,
    connection: Annotated[Any, Depends(get_connection_service)],
    timeout: float = Query(
        default=25.0,
        gt=0,
        le=60,
        description="Seconds to hold the request open before answering.",
    ),
) -> ConnectWaitResponse:
    """Long-poll a pending connect attempt."""
    attempt = connection.get_attempt(state)
    if attempt is None:
        raise InvalidRequest("Unknown connection attempt.")
    attempt = await connection.wait_for_completion(attempt, timeout=timeout)
    return ConnectWaitResponse(
        state=attempt.state, status=attempt.status.value, error=attempt.error
    )


@router.get("/fitbit/status", response_model=ConnectionStatusResponse)
async def get_fitbit_status(
    connection: Annotated[Any, Depends(get_connection_service)],
    user_id: str = Query(...),
) -> ConnectionStatusResponse:
    status = await connection.status(user_id)
    return ConnectionStatusResponse(
        connected=status.connected,
        connected_at=status.connected_at,
        provider_user_id=status.provider_user_id,
    )


@router.delete("/fitbit/connection", response_model=ConnectionStatusResponse)
async def disconnect_fitbit(
    connection: Annotated[Any, Depends(get_connection_service)],
    user_id: str = Query(...),
) -> ConnectionStatusResponse:
    status = await connection.disconnect(user_id)
    return ConnectionStatusResponse(connected=status.connected)


@router.post("/fitbit/log-meal", response_model=MealSyncResponse)
async def log_meal_to_fitbit(
    payload: MealSyncRequest,
    meal_sync: Annotated[Any, Depends(get_meal_sync_service)],
) -> MealSyncResponse:
    """Relay a planner meal to the user's Fitbit food log."""
    result = await meal_sync.log_meal(payload.user_id, payload.meal_data)
    return MealSyncResponse(
        success=result.success,
        provider_log_id=result.provider_log_id,
        message="Meal logged to Fitbit successfully",
    )


@router.post("/fitbit/test-sync", response_model=MealSyncResponse)
async def test_fitbit_sync(
    payload: SyncCheckRequest,
    connection: Annotated[Any, Depends(get_connection_service)],
) -> MealSyncResponse:
    result = await connection.test_sync(payload.user_id)
    return MealSyncResponse(
        success=result.success,
        provider_log_id=result.provider_log_id,
        message="Test meal logged to Fitbit",
    )
