"""Schemas related to the Fitbit connection flow."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectRequest(BaseModel):
    """Body of the connect call issued by the meal planner UI."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="Local account identifier.")


class ConnectResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(..., alias="authUrl")
    state: str = Field(..., description="Opaque state token bound to this attempt.")


class ConnectWaitResponse(BaseModel):
    """Outcome of waiting on a connection attempt."""

    state: str
    status: str = Field(
        ..., description="awaiting_consent, connected, failed or timed_out."
    )
    error: Optional[str] = None


class ConnectionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    connected: bool
    connected_at: Optional[datetime] = Field(None, alias="connectedAt")
    provider_user_id: Optional[str] = Field(None, alias="providerUserId")


__all__ = [
    "ConnectRequest",
    "ConnectResponse",
    "ConnectWaitResponse",
    "ConnectionStatusResponse",
]
