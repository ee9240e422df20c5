"""
Production Service - atomic production entries and their reversal.

This module provides functions for:
- Previewing a production run against current stock (dry run)
- Recording a production run: BOM resolution, stock validation, stock
  deduction, consumption ledger rows and procurement evaluation in a
  single transaction
- Reverting a production run (stock restored, ledger rows removed)
- Production history queries

The service integrates with:
- bom_service.resolve_bom() for the ordered BOM lines
- stock_ledger_service for locked reads, deductions and restores
- procurement_service.evaluate() for low-stock triggers

A production call either writes everything (entry, one ledger row per
consumed component, stock changes, triggers) or nothing.
"""

import logging
from contextlib import nullcontext
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from pcb_tracker.models import Component, ConsumptionHistory, ProductionEntry
from pcb_tracker.services import bom_service, procurement_service, stock_ledger_service
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.dto import PaginatedResult, PaginationParams
from pcb_tracker.services.exceptions import (
    ConstraintViolationError,
    EmptyBOMError,
    InsufficientStockError,
    ProductionEntryNotFound,
    ServiceError,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.constants import MAX_NOTES_LENGTH
from pcb_tracker.utils.datetime_utils import utc_now, utc_today
from pcb_tracker.utils.validators import (
    collect_errors,
    validate_positive_integer,
    validate_string_length,
)

logger = get_service_logger(__name__)


class ProductionPhase(str, Enum):
    """Progress of a create_production_entry call."""

    STARTED = "STARTED"
    BOM_RESOLVED = "BOM_RESOLVED"
    STOCK_VALIDATED = "STOCK_VALIDATED"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


def _log_phase(phase: ProductionPhase, **context) -> None:
    log_operation(
        logger,
        operation="create_production_entry",
        outcome=phase.value,
        level=logging.DEBUG,
        **context,
    )


# =============================================================================
# Validation Helpers
# =============================================================================


def _validate_quantity(quantity_produced: Any) -> None:
    is_valid, error = validate_positive_integer(quantity_produced, "quantity_produced")
    if not is_valid:
        raise ValidationError([error])


def _coerce_production_date(production_date: Union[date, str, None]) -> date:
    if production_date is None:
        return utc_today()
    if isinstance(production_date, str):
        try:
            return date.fromisoformat(production_date)
        except ValueError:
            raise ValidationError(
                [f"production_date: '{production_date}' is not a valid YYYY-MM-DD date"]
            )
    return production_date


def _check_requirements(
    lines: List[bom_service.BOMLine],
    stock_by_component: Dict[int, int],
    quantity_produced: int,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Compute per-line requirements and shortages.

    Returns:
        (requirements, shortages); requirements keep BOM order
    """
    requirements = []
    shortages = []
    for line in lines:
        total_required = line.quantity_per_pcb * quantity_produced
        available = stock_by_component[line.component_id]
        sufficient = total_required <= available
        requirements.append(
            {
                "component_id": line.component_id,
                "component_name": line.component_name,
                "part_number": line.part_number,
                "quantity_per_pcb": line.quantity_per_pcb,
                "total_required": total_required,
                "current_stock": available,
                "stock_after": available - total_required,
                "sufficient_stock": sufficient,
            }
        )
        if not sufficient:
            shortages.append(
                {
                    "component_id": line.component_id,
                    "component_name": line.component_name,
                    "part_number": line.part_number,
                    "required": total_required,
                    "available": available,
                    "shortage": total_required - available,
                }
            )
    return requirements, shortages


# =============================================================================
# Preview
# =============================================================================


def preview_production(pcb_id: int, quantity_produced: int, *, session=None) -> Dict[str, Any]:
    """
    Check whether a production run is possible, without writing anything.

    Args:
        pcb_id: PCB to produce
        quantity_produced: Number of boards
        session: Optional database session

    Returns:
        Dict with keys:
            - "pcb_id", "quantity_produced"
            - "can_produce" (bool)
            - "components" (List[Dict]): per BOM line, ordered by component
              name: total_required, current_stock, stock_after, sufficient_stock
            - "insufficient_components" (List[Dict]): shortages
            - "total_components" (int)

    Raises:
        ValidationError: If quantity_produced is not a positive integer
        PCBNotFound: If the PCB doesn't exist
        EmptyBOMError: If the PCB has no BOM lines
    """
    _validate_quantity(quantity_produced)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        lines = bom_service.resolve_bom(pcb_id, session=session)
        components = (
            session.query(Component)
            .filter(Component.id.in_([line.component_id for line in lines]))
            .all()
        )
        stock = {c.id: c.current_stock for c in components}

    requirements, shortages = _check_requirements(lines, stock, quantity_produced)
    return {
        "pcb_id": pcb_id,
        "quantity_produced": quantity_produced,
        "can_produce": not shortages,
        "components": requirements,
        "insufficient_components": shortages,
        "total_components": len(requirements),
    }


# =============================================================================
# Create
# =============================================================================


def create_production_entry(
    pcb_id: int,
    quantity_produced: int,
    user_id: int,
    production_date: Union[date, str, None] = None,
    notes: Optional[str] = None,
    *,
    session=None,
) -> Dict[str, Any]:
    """
    Record a production run and deduct its components from stock.

    All-or-nothing: on any error no entry, ledger row, stock change or
    trigger is persisted. Component rows are locked before the stock
    check, so no other writer can change them until this call commits.

    BOM lines with quantity_per_pcb = 0 are skipped: no deduction, no
    ledger row and no procurement evaluation.

    Args:
        pcb_id: PCB produced
        quantity_produced: Number of boards (> 0)
        user_id: ID of the user logging the run
        production_date: Date of the run (date or ISO string; default today)
        notes: Optional notes
        session: Optional database session (uses session_scope if not provided)

    Returns:
        Dict with keys:
            - "production_entry" (Dict): the entry, with pcb_name and pcb_code
            - "consumption_records" (List[Dict]): one per consumed component
            - "triggers_created" (List[Dict]): procurement triggers raised
            - "total_components_updated" (int)

    Raises:
        ValidationError: If an argument is invalid
        PCBNotFound: If the PCB doesn't exist
        EmptyBOMError: If the PCB has no BOM lines
        InsufficientStockError: If any component is short (``.shortages``)
    """
    errors = collect_errors(
        validate_positive_integer(quantity_produced, "quantity_produced"),
        validate_string_length(notes, MAX_NOTES_LENGTH, "notes"),
    )
    if user_id is None:
        errors.append("user_id: This field is required")
    if errors:
        raise ValidationError(errors)
    production_date = _coerce_production_date(production_date)

    _log_phase(ProductionPhase.STARTED, pcb_id=pcb_id, quantity_produced=quantity_produced)

    try:
        cm = nullcontext(session) if session is not None else session_scope()
        with cm as session:
            result = _create_production_entry_impl(
                pcb_id, quantity_produced, user_id, production_date, notes, session
            )
    except InsufficientStockError as e:
        _log_phase(ProductionPhase.ABORTED, pcb_id=pcb_id)
        log_operation(
            logger,
            operation="create_production_entry",
            outcome="insufficient_stock",
            level=logging.WARNING,
            pcb_id=pcb_id,
            quantity_produced=quantity_produced,
            shortages=[s["part_number"] for s in e.shortages],
        )
        raise
    except EmptyBOMError:
        _log_phase(ProductionPhase.ABORTED, pcb_id=pcb_id)
        log_operation(
            logger,
            operation="create_production_entry",
            outcome="empty_bom",
            level=logging.WARNING,
            pcb_id=pcb_id,
        )
        raise
    except ServiceError as e:
        _log_phase(ProductionPhase.ABORTED, pcb_id=pcb_id)
        log_operation(
            logger,
            operation="create_production_entry",
            outcome="error",
            level=logging.WARNING,
            pcb_id=pcb_id,
            error=str(e),
        )
        raise

    entry_id = result["production_entry"]["id"]
    _log_phase(ProductionPhase.COMMITTED, pcb_id=pcb_id, production_entry_id=entry_id)
    log_operation(
        logger,
        operation="create_production_entry",
        outcome="success",
        production_entry_id=entry_id,
        pcb_id=pcb_id,
        quantity_produced=quantity_produced,
        components_updated=result["total_components_updated"],
        triggers_created=len(result["triggers_created"]),
    )
    return result


def _flush(session, what: str) -> None:
    try:
        session.flush()
    except IntegrityError as e:
        raise ConstraintViolationError(
            f"Could not write {what}: constraint violated", original_error=e
        ) from e


def _create_production_entry_impl(
    pcb_id: int,
    quantity_produced: int,
    user_id: int,
    production_date: date,
    notes: Optional[str],
    session,
) -> Dict[str, Any]:
    lines = bom_service.resolve_bom(pcb_id, session=session)
    _log_phase(ProductionPhase.BOM_RESOLVED, pcb_id=pcb_id, line_count=len(lines))

    components = stock_ledger_service.lock_components(
        [line.component_id for line in lines], session
    )
    stock = {component_id: c.current_stock for component_id, c in components.items()}
    requirements, shortages = _check_requirements(lines, stock, quantity_produced)
    if shortages:
        raise InsufficientStockError(shortages)
    _log_phase(ProductionPhase.STOCK_VALIDATED, pcb_id=pcb_id)

    entry = ProductionEntry(
        pcb_id=pcb_id,
        quantity_produced=quantity_produced,
        production_date=production_date,
        user_id=user_id,
        notes=notes,
    )
    session.add(entry)
    _flush(session, "production entry")

    records = []
    triggers = []
    for line, requirement in zip(lines, requirements):
        total_required = requirement["total_required"]
        if total_required == 0:
            continue

        change = stock_ledger_service.deduct(line.component_id, total_required, session)
        record = ConsumptionHistory(
            component_id=line.component_id,
            production_entry_id=entry.id,
            quantity_consumed=total_required,
            stock_before=change.stock_before,
            stock_after=change.stock_after,
            consumed_at=utc_now(),
        )
        session.add(record)
        records.append(record)

        trigger = procurement_service.evaluate(
            line.component_id,
            change.stock_after,
            components[line.component_id].monthly_required_quantity,
            session,
        )
        if trigger is not None:
            triggers.append(trigger)

    _flush(session, "consumption history")

    return {
        "production_entry": entry.to_dict(include_relationships=True),
        "consumption_records": [r.to_dict(include_relationships=True) for r in records],
        "triggers_created": [t.to_dict(include_relationships=True) for t in triggers],
        "total_components_updated": len(records),
    }


# =============================================================================
# Revert
# =============================================================================


def delete_production_entry(entry_id: int, *, session=None) -> Dict[str, Any]:
    """
    Revert a production run.

    Each ledger row's quantity is added back to the component's current
    stock (not rolled back to stock_before), then the ledger rows and the
    entry are deleted. Procurement triggers raised by the run stay.

    Args:
        entry_id: Production entry to revert
        session: Optional database session

    Returns:
        Dict with keys:
            - "production_entry" (Dict): the deleted entry
            - "restored_components" (List[Dict]): component_id,
              component_name, quantity_restored, stock_before, stock_after

    Raises:
        ProductionEntryNotFound: If the entry doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        # Reverts of the same entry serialize on this row lock
        locked = (
            session.query(ProductionEntry.id)
            .filter(ProductionEntry.id == entry_id)
            .with_for_update()
            .first()
        )
        if locked is None:
            raise ProductionEntryNotFound(entry_id)

        entry = (
            session.query(ProductionEntry)
            .options(
                joinedload(ProductionEntry.pcb),
                selectinload(ProductionEntry.consumption_records),
            )
            .filter(ProductionEntry.id == entry_id)
            .populate_existing()
            .one()
        )

        records = sorted(entry.consumption_records, key=lambda r: r.component_id)
        components = stock_ledger_service.lock_components(
            [r.component_id for r in records], session
        )

        restored = []
        for record in records:
            change = stock_ledger_service.restore(
                record.component_id, record.quantity_consumed, session
            )
            restored.append(
                {
                    "component_id": record.component_id,
                    "component_name": components[record.component_id].name,
                    "quantity_restored": record.quantity_consumed,
                    "stock_before": change.stock_before,
                    "stock_after": change.stock_after,
                }
            )

        entry_data = entry.to_dict(include_relationships=True)

        # History rows go with the entry (delete-orphan cascade)
        session.delete(entry)
        _flush(session, "production entry deletion")

    log_operation(
        logger,
        operation="delete_production_entry",
        outcome="success",
        production_entry_id=entry_id,
        components_restored=len(restored),
    )
    return {"production_entry": entry_data, "restored_components": restored}


# =============================================================================
# History Queries
# =============================================================================


def get_production_entries(
    pcb_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    pagination: Optional[PaginationParams] = None,
    *,
    session=None,
) -> PaginatedResult:
    """
    List production entries, newest first.

    Args:
        pcb_id: Optional PCB filter
        start_date: Optional inclusive lower bound on production_date
        end_date: Optional inclusive upper bound on production_date
        pagination: Optional page; None returns every matching entry
        session: Optional database session

    Returns:
        PaginatedResult of entry dicts (with pcb_name and pcb_code)
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(ProductionEntry).options(joinedload(ProductionEntry.pcb))
        if pcb_id is not None:
            query = query.filter(ProductionEntry.pcb_id == pcb_id)
        if start_date is not None:
            query = query.filter(ProductionEntry.production_date >= start_date)
        if end_date is not None:
            query = query.filter(ProductionEntry.production_date <= end_date)

        total = query.count()
        query = query.order_by(
            ProductionEntry.production_date.desc(), ProductionEntry.id.desc()
        )
        if pagination is not None:
            query = query.offset(pagination.offset()).limit(pagination.per_page)

        items = [entry.to_dict(include_relationships=True) for entry in query.all()]

    if pagination is None:
        return PaginatedResult(items=items, total=total, page=1, per_page=max(total, 1))
    return PaginatedResult(
        items=items, total=total, page=pagination.page, per_page=pagination.per_page
    )


def get_production_entry(entry_id: int, *, session=None) -> Dict[str, Any]:
    """
    Get one production entry with its consumption details.

    Returns:
        Entry dict with a "consumption_records" list (component name,
        part number and category on each row)

    Raises:
        ProductionEntryNotFound: If the entry doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        entry = (
            session.query(ProductionEntry)
            .options(
                joinedload(ProductionEntry.pcb),
                selectinload(ProductionEntry.consumption_records).joinedload(
                    ConsumptionHistory.component
                ),
            )
            .filter(ProductionEntry.id == entry_id)
            .first()
        )
        if entry is None:
            raise ProductionEntryNotFound(entry_id)

        result = entry.to_dict(include_relationships=True)
        result["consumption_records"] = [
            record.to_dict(include_relationships=True)
            for record in sorted(entry.consumption_records, key=lambda r: r.id)
        ]
        return result
