"""
FastAPI application entrypoint for the meal planner Fitbit integration.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mealsync.api.routes import router as api_router
from mealsync.core.config import get_settings
from mealsync.core.errors import ConfigurationError, IntegrationError, InvalidRequest
from mealsync.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def integration_error_handler(request: Request, exc: IntegrationError) -> JSONResponse:
    """Render integration errors as ``{success: false, error, code}``."""
    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error while handling %s: %s", request.url.path, exc.message)
    else:
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=int(exc.status_code), content=exc.to_payload())


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and queries in the integration error shape."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return await integration_error_handler(
        request, InvalidRequest(f"Invalid request: {'; '.join(problems)}")
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Meal Planner Fitbit Integration",
        version="0.1.0",
        description="Fitbit account linking and meal log sync for the meal planner.",
    )
    app.add_exception_handler(IntegrationError, integration_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
