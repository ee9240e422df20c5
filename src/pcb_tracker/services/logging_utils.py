"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across production, stock and
procurement operations.

Usage:
    from pcb_tracker.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="create_production_entry",
        outcome="success",
        production_entry_id=123,
        pcb_id=45,
    )

    log_operation(
        logger,
        operation="create_production_entry",
        outcome="insufficient_stock",
        level=logging.WARNING,
        pcb_id=45,
        shortages=["LED-5MM-R"],
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
        Logger instance with the 'pcb_tracker.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'pcb_tracker.services.production_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"pcb_tracker.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging,
    so handlers can read e.g. ``record.pcb_id``.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "create_production_entry")
        outcome: Outcome description (e.g., "success", "insufficient_stock")
        level: Log level (default: INFO). Use DEBUG for phase transitions.
        **context: Additional context fields (entity IDs, error details, etc.)
            Common fields:
            - production_entry_id: ID of created/reverted entry
            - pcb_id: PCB being produced
            - component_id: Component whose stock changed
            - trigger_id: Procurement trigger created or updated
            - error: Error message if outcome is "error"
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
