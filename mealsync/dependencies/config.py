"""
Configuration dependencies for the Fitbit routes.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from mealsync.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_callback_target_origin(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Optional[str]:
    """Origin the callback page may post its result to; ``None`` means any opener."""
    if settings.frontend_base_url is None:
        return None
    url = settings.frontend_base_url
    origin = f"{url.scheme}://{url.host}"
    if url.port and url.port not in (80, 443):
        origin = f"{origin}:{url.port}"
    return origin


__all__ = ["get_app_settings", "get_callback_target_origin"]
