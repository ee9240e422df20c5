"""Service layer exception classes for PCB Tracker.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application. Every exception carries an
``http_status_code`` so a controller layer can map it to a response without
inspecting the type.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   ├── ComponentNotFound
    │   ├── PCBNotFound
    │   ├── BOMLineNotFound
    │   ├── ProductionEntryNotFound
    │   └── TriggerNotFound
    ├── EmptyBOMError
    ├── InsufficientStockError
    ├── InvalidStatusError
    ├── ConstraintViolationError
    │   ├── DuplicatePartNumber
    │   ├── DuplicatePCBCode
    │   ├── DuplicateBOMLine
    │   ├── DuplicatePendingTrigger
    │   ├── ComponentInUse
    │   └── PCBInUse
    └── DatabaseError
"""

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions inherit from this class.
    """

    http_status_code = 500

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    http_status_code = 400

    def __init__(self, errors: List[str]):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


# =============================================================================
# Not Found (404)
# =============================================================================


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""

    http_status_code = 404


class ComponentNotFound(NotFoundError):
    """Raised when a component cannot be found by ID.

    Example:
        >>> raise ComponentNotFound(123)
        ComponentNotFound: Component with ID 123 not found
    """

    def __init__(self, component_id: int):
        self.component_id = component_id
        super().__init__(f"Component with ID {component_id} not found")


class PCBNotFound(NotFoundError):
    """Raised when a PCB cannot be found by ID."""

    def __init__(self, pcb_id: int):
        self.pcb_id = pcb_id
        super().__init__(f"PCB with ID {pcb_id} not found")


class BOMLineNotFound(NotFoundError):
    """Raised when a PCB/component BOM mapping does not exist."""

    def __init__(self, pcb_id: int, component_id: int):
        self.pcb_id = pcb_id
        self.component_id = component_id
        super().__init__(f"BOM line for PCB {pcb_id} / component {component_id} not found")


class ProductionEntryNotFound(NotFoundError):
    """Raised when a production entry cannot be found by ID."""

    def __init__(self, entry_id: int):
        self.entry_id = entry_id
        super().__init__(f"Production entry with ID {entry_id} not found")


class TriggerNotFound(NotFoundError):
    """Raised when a procurement trigger cannot be found by ID."""

    def __init__(self, trigger_id: int):
        self.trigger_id = trigger_id
        super().__init__(f"Procurement trigger with ID {trigger_id} not found")


# =============================================================================
# Business Rules (422)
# =============================================================================


class EmptyBOMError(ServiceError):
    """Raised when a PCB has no BOM lines and therefore cannot be produced.

    Example:
        >>> raise EmptyBOMError(7)
        EmptyBOMError: PCB 7 has no components in its BOM
    """

    http_status_code = 422

    def __init__(self, pcb_id: int):
        self.pcb_id = pcb_id
        super().__init__(f"PCB {pcb_id} has no components in its BOM")


class InsufficientStockError(ServiceError):
    """Raised when one or more components lack the stock an operation needs.

    Args:
        shortages: One dict per short component with keys component_id,
            component_name, part_number, required, available, shortage

    Example:
        >>> raise InsufficientStockError([{"component_name": "LED", "required": 25,
        ...                                "available": 20, "shortage": 5}])
        InsufficientStockError: Insufficient stock: LED (required 25, available 20)
    """

    http_status_code = 422

    def __init__(self, shortages: List[Dict[str, Any]]):
        self.shortages = shortages
        details = ", ".join(
            f"{s.get('component_name')} (required {s['required']}, available {s['available']})"
            for s in shortages
        )
        super().__init__(f"Insufficient stock: {details}")


# =============================================================================
# Invalid Input (400)
# =============================================================================


class InvalidStatusError(ServiceError):
    """Raised when a trigger status is unknown or would move backwards."""

    http_status_code = 400

    def __init__(self, status: Any, current_status: Optional[str] = None):
        self.status = status
        self.current_status = current_status
        if current_status is None:
            message = f"Invalid status {status!r}. Must be PENDING, ORDERED, or FULFILLED"
        else:
            message = f"Cannot move trigger from {current_status} back to {status}"
        super().__init__(message)


# =============================================================================
# Conflicts (409)
# =============================================================================


class ConstraintViolationError(ServiceError):
    """Raised when a uniqueness or structural invariant would be violated."""

    http_status_code = 409

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class DuplicatePartNumber(ConstraintViolationError):
    """Raised when creating/updating a component with a part number in use."""

    def __init__(self, part_number: str, original_error: Optional[Exception] = None):
        self.part_number = part_number
        super().__init__(
            f"Component with part number '{part_number}' already exists", original_error
        )


class DuplicatePCBCode(ConstraintViolationError):
    """Raised when creating/updating a PCB with a code in use."""

    def __init__(self, code: str, original_error: Optional[Exception] = None):
        self.code = code
        super().__init__(f"PCB with code '{code}' already exists", original_error)


class DuplicateBOMLine(ConstraintViolationError):
    """Raised when a component is added twice to the same PCB BOM."""

    def __init__(self, pcb_id: int, component_id: int):
        self.pcb_id = pcb_id
        self.component_id = component_id
        super().__init__(f"Component {component_id} is already in the BOM of PCB {pcb_id}")


class DuplicatePendingTrigger(ConstraintViolationError):
    """Raised when a second PENDING trigger would be created for a component."""

    def __init__(self, component_id: int, existing_trigger_id: int):
        self.component_id = component_id
        self.existing_trigger_id = existing_trigger_id
        super().__init__(
            f"Component {component_id} already has pending trigger {existing_trigger_id}"
        )


class ComponentInUse(ConstraintViolationError):
    """Raised when deleting a component that the consumption ledger references.

    Args:
        component_id: The component being deleted
        dependencies: Dictionary of dependency counts {entity_type: count}
    """

    def __init__(self, component_id: int, dependencies: Dict[str, int]):
        self.component_id = component_id
        self.dependencies = dependencies
        details = ", ".join(
            f"{count} {entity_type}" for entity_type, count in dependencies.items() if count > 0
        )
        super().__init__(f"Cannot delete component {component_id}: used in {details}")


class PCBInUse(ConstraintViolationError):
    """Raised when deleting a PCB that has production entries."""

    def __init__(self, pcb_id: int, dependencies: Dict[str, int]):
        self.pcb_id = pcb_id
        self.dependencies = dependencies
        details = ", ".join(
            f"{count} {entity_type}" for entity_type, count in dependencies.items() if count > 0
        )
        super().__init__(f"Cannot delete PCB {pcb_id}: used in {details}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails unexpectedly."""

    http_status_code = 500

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
