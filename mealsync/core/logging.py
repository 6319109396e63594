"""
Logging utilities for the FastAPI application.

Provides a consistent logging format and keeps OAuth material out of logs.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # httpx logs every request line at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Return a shortened form of an identifier that is safe to log."""
    if not value:
        return "<none>"
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}…"


__all__ = ["configure_logging", "mask_secret"]
