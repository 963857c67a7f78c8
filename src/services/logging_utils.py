"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across unit conversion, recipe sessions
and production commits.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="commit_production",
        outcome="success",
        batch_number="BATCH-20250101-120000-3",
        recipe_id=12,
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'recipe_costing.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'recipe_costing.services.production_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"recipe_costing.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter, so each key becomes an
    attribute on the emitted LogRecord.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "add_line_item", "commit_production")
        outcome: Outcome description (e.g., "success", "insufficient_stock")
        level: Log level (default: INFO). Use DEBUG for verbose/frequent logs.
        **context: Additional context fields (entity IDs, units, error details).
            Keys must not collide with LogRecord attributes such as
            "name", "message" or "args".
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
