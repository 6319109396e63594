"""HTTP helpers shared by the Fitbit clients."""

from __future__ import annotations

import base64

import httpx

_BODY_PREVIEW_LIMIT = 1000


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """Build the client-credential Basic authorization header value."""
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return f"Basic {base64.b64encode(raw).decode('ascii')}"


def bearer_auth_header(access_token: str) -> str:
    return f"Bearer {access_token}"


def response_body_preview(response: httpx.Response) -> str:
    """Return the response text truncated for error messages."""
    text = response.text
    if len(text) > _BODY_PREVIEW_LIMIT:
        return text[:_BODY_PREVIEW_LIMIT] + "..."
    return text


def is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


__all__ = [
    "basic_auth_header",
    "bearer_auth_header",
    "is_success",
    "response_body_preview",
]
