"""Observability module for astrophi.

Provides structured logging for the camera service.

Example:
    from astrophi.observability import get_logger, LogContext

    logger = get_logger(__name__)

    logger.info("Camera detected")

    with LogContext(command="Shoot"):
        logger.info("Captured image", name="IMG_0042.CR2")
"""

from astrophi.observability.logging import (
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
