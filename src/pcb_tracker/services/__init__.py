"""Services package - Business logic layer for PCB Tracker.

This package contains all service modules that provide business logic
and database operations for the application.

Architecture:
- Services: Stateless functions organized by domain
- Transactions: Managed via session_scope(); every function also accepts
  a caller's session so several calls can share one atomic unit
- Exceptions: Consistent error handling via the ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- stock_ledger_service: The only code path that changes component stock
- bom_service: BOM resolution and BOM line maintenance
- procurement_service: Low-stock triggers and their lifecycle
- production_service: Atomic production entries, reversal and preview
- component_service: Component catalog, low-stock report, restocking
- pcb_service: PCB design catalog
- analytics_service: Consumption rates and anomaly detection

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Engine, session management and database utilities
- dto: Pagination structures
- logging_utils: Structured operation logging
"""

from . import (
    database,
    analytics_service,
    stock_ledger_service,
    bom_service,
    procurement_service,
    production_service,
    component_service,
    pcb_service,
)

from .exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    ComponentNotFound,
    PCBNotFound,
    BOMLineNotFound,
    ProductionEntryNotFound,
    TriggerNotFound,
    EmptyBOMError,
    InsufficientStockError,
    InvalidStatusError,
    ConstraintViolationError,
    DuplicatePartNumber,
    DuplicatePCBCode,
    DuplicateBOMLine,
    DuplicatePendingTrigger,
    ComponentInUse,
    PCBInUse,
    DatabaseError,
)

from .dto import PaginationParams, PaginatedResult

__all__ = [
    # Service modules
    "database",
    "analytics_service",
    "stock_ledger_service",
    "bom_service",
    "procurement_service",
    "production_service",
    "component_service",
    "pcb_service",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "ComponentNotFound",
    "PCBNotFound",
    "BOMLineNotFound",
    "ProductionEntryNotFound",
    "TriggerNotFound",
    "EmptyBOMError",
    "InsufficientStockError",
    "InvalidStatusError",
    "ConstraintViolationError",
    "DuplicatePartNumber",
    "DuplicatePCBCode",
    "DuplicateBOMLine",
    "DuplicatePendingTrigger",
    "ComponentInUse",
    "PCBInUse",
    "DatabaseError",
    # DTOs
    "PaginationParams",
    "PaginatedResult",
]
