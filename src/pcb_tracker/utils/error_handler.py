"""Centralized error handler for the command-line layer.

Maps service exceptions to user-friendly messages while preserving
technical details in logs for debugging.
"""

import logging
from typing import Tuple

from pcb_tracker.services.exceptions import (
    ServiceError,
    ComponentNotFound,
    PCBNotFound,
    BOMLineNotFound,
    ProductionEntryNotFound,
    TriggerNotFound,
    ValidationError,
    EmptyBOMError,
    InsufficientStockError,
    InvalidStatusError,
    DuplicatePartNumber,
    DuplicatePCBCode,
    DuplicateBOMLine,
    DuplicatePendingTrigger,
    ComponentInUse,
    PCBInUse,
    DatabaseError,
)

logger = logging.getLogger(__name__)


def handle_error(exception: Exception, operation: str = "Operation") -> Tuple[str, str]:
    """Handle an exception: log technical details, return the user message.

    Args:
        exception: The caught exception to handle
        operation: Description of what was being attempted (e.g., "Record production")

    Returns:
        Tuple of (title, user_message)

    Example:
        try:
            production_service.create_production_entry(pcb_id, 3, user_id=1)
        except ServiceError as e:
            title, message = handle_error(e, operation="Record production")
            print(f"{title}: {message}")
    """
    title, message = get_user_message(exception, operation)
    _log_error(exception, operation)
    return title, message


def get_user_message(exception: Exception, operation: str = "Operation") -> Tuple[str, str]:
    """Convert exception to user-friendly title and message.

    Args:
        exception: The exception to convert
        operation: Description of what was being attempted

    Returns:
        Tuple of (title, message) suitable for user display
    """
    return _get_user_message(exception, operation)


def _format_dependencies(dependencies: dict) -> str:
    parts = [f"{count} {name}" for name, count in dependencies.items() if count > 0]
    return ", ".join(parts) if parts else "other records"


def _get_user_message(exception: Exception, operation: str) -> Tuple[str, str]:
    """Map exception to user-friendly title and message.

    Specific exception types first, then category fallbacks by
    http_status_code, then a generic message for anything unexpected.
    """
    # === Specific Exception Handlers ===

    # Not Found (404)
    if isinstance(exception, ComponentNotFound):
        return "Not Found", f"Component {exception.component_id} not found."

    if isinstance(exception, PCBNotFound):
        return "Not Found", f"PCB {exception.pcb_id} not found."

    if isinstance(exception, BOMLineNotFound):
        return "Not Found", "That component is not part of this PCB's BOM."

    if isinstance(exception, ProductionEntryNotFound):
        return "Not Found", f"Production entry {exception.entry_id} not found."

    if isinstance(exception, TriggerNotFound):
        return "Not Found", f"Procurement trigger {exception.trigger_id} not found."

    # Invalid input (400)
    if isinstance(exception, ValidationError):
        if exception.errors:
            return "Validation Error", "; ".join(str(e) for e in exception.errors)
        return "Validation Error", exception.message

    if isinstance(exception, InvalidStatusError):
        if exception.current_status is not None:
            return (
                "Invalid Status",
                f"A {exception.current_status} trigger cannot go back to {exception.status}.",
            )
        return "Invalid Status", "Status must be PENDING, ORDERED, or FULFILLED."

    # Business rules (422)
    if isinstance(exception, InsufficientStockError):
        lines = [
            f"{s['component_name']} ({s['part_number']}): "
            f"need {s['required']}, have {s['available']}, short {s['shortage']}"
            for s in exception.shortages
        ]
        return "Insufficient Stock", "Not enough stock. " + "; ".join(lines)

    if isinstance(exception, EmptyBOMError):
        return "Cannot Produce", "This PCB has no components in its BOM."

    # Conflicts (409)
    if isinstance(exception, DuplicatePartNumber):
        return "Duplicate", f"Part number '{exception.part_number}' is already in use."

    if isinstance(exception, DuplicatePCBCode):
        return "Duplicate", f"PCB code '{exception.code}' is already in use."

    if isinstance(exception, DuplicateBOMLine):
        return "Duplicate", "That component is already in this PCB's BOM."

    if isinstance(exception, DuplicatePendingTrigger):
        return (
            "Duplicate",
            f"There is already a pending reorder (trigger {exception.existing_trigger_id}).",
        )

    if isinstance(exception, ComponentInUse):
        deps_msg = _format_dependencies(exception.dependencies)
        return "Cannot Delete", f"This component is referenced by {deps_msg}."

    if isinstance(exception, PCBInUse):
        deps_msg = _format_dependencies(exception.dependencies)
        return "Cannot Delete", f"This PCB is referenced by {deps_msg}."

    # Database errors (500)
    if isinstance(exception, DatabaseError):
        return "Database Error", "A database error occurred. Please try again."

    # === Category-Based Fallbacks ===

    if isinstance(exception, ServiceError):
        status = getattr(exception, "http_status_code", 500)

        if status == 404:
            return "Not Found", f"{operation} failed: the requested item was not found."

        if status == 400:
            return "Validation Error", f"{operation} failed: {exception.message or 'invalid input'}"

        if status == 409:
            return "Conflict", f"{operation} failed: {exception.message or 'resource conflict'}"

        if status == 422:
            return (
                "Cannot Complete",
                f"{operation} failed: {exception.message or 'business rule violation'}",
            )

        return "Error", f"{operation} failed: {exception.message or 'an error occurred'}"

    # === Unexpected Exception (last resort) ===
    return "Unexpected Error", "An unexpected error occurred. Check the log for details."


def _log_error(exception: Exception, operation: str) -> None:
    """Log technical error details.

    ServiceErrors are logged at ERROR with structured data; anything
    else gets a full stack trace.
    """
    if isinstance(exception, ServiceError):
        log_data = {
            "operation": operation,
            "exception_type": exception.__class__.__name__,
            "message": str(exception),
            "http_status_code": getattr(exception, "http_status_code", 500),
        }
        logger.error(
            f"{operation} failed: {exception.__class__.__name__}: {exception}",
            extra={"error_data": log_data},
        )
    else:
        logger.exception(
            f"{operation} failed with unexpected error: {exception.__class__.__name__}"
        )
