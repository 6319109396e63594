"""
Domain models for Fitbit credential persistence.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class CredentialRecord(BaseModel):
    """Fitbit credentials attached to a local user account."""

    user_id: str = Field(..., description="Identifier of the local account.")
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    provider_user_id: Optional[str] = Field(
        None, description="Fitbit encoded user id used in API paths."
    )
    connected_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _tokens_travel_together(self) -> "CredentialRecord":
        if (self.access_token is None) != (self.refresh_token is None):
            raise ValueError("access_token and refresh_token must both be set or both be empty.")
        return self

    @property
    def is_connected(self) -> bool:
        return bool(self.access_token)


class TokenGrant(BaseModel):
    """Token endpoint response for either grant type."""

    access_token: str
    refresh_token: str
    provider_user_id: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


__all__ = ["CredentialRecord", "TokenGrant"]
