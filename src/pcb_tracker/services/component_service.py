"""
Component Service - component catalog and stock overview.

This module provides functions for:
- Creating, reading, updating and deleting components
- Listing components with search, category and low-stock filters
- Low-stock reporting with consumption-based stockout prediction
- Receiving stock (restocking through the stock ledger)

Stock is never edited directly here: creation sets the opening stock and
every later change goes through stock_ledger_service. Creating or editing
a component re-runs the procurement check on its stock.
"""

from contextlib import nullcontext
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from pcb_tracker.models import Component, ConsumptionHistory, ProductionEntry
from pcb_tracker.services import analytics_service, procurement_service, stock_ledger_service
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.dto import PaginatedResult, PaginationParams
from pcb_tracker.services.exceptions import (
    ComponentInUse,
    ComponentNotFound,
    DuplicatePartNumber,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.constants import (
    ADEQUATE_STOCK_RATIO,
    LOW_STOCK_RATIO,
    MAX_CATEGORY_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PART_NUMBER_LENGTH,
    RECENT_HISTORY_LIMIT,
)
from pcb_tracker.utils.validators import (
    collect_errors,
    validate_non_negative_decimal,
    validate_non_negative_integer,
    validate_positive_integer,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)


# =============================================================================
# Update Payload
# =============================================================================


@dataclass
class ComponentUpdate:
    """
    Editable component fields. A field left as None is not changed.

    current_stock is deliberately absent: stock changes go through the
    stock ledger.
    """

    name: Optional[str] = None
    part_number: Optional[str] = None
    monthly_required_quantity: Optional[int] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    unit_price: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComponentUpdate":
        """
        Build an update from a plain dict.

        Raises:
            ValidationError: If the dict has keys that are not editable
        """
        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationError([f"{key}: Field cannot be updated" for key in unknown])
        return cls(**data)

    def changes(self) -> Dict[str, Any]:
        """Fields that were set, with name and part number stripped."""
        changes = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        for key in ("name", "part_number"):
            if isinstance(changes.get(key), str):
                changes[key] = changes[key].strip()
        return changes


def _validate_fields(data: Dict[str, Any], creating: bool) -> List[str]:
    checks = []
    if creating or "name" in data:
        checks.append(validate_required_string(data.get("name"), "name"))
        checks.append(validate_string_length(data.get("name"), MAX_NAME_LENGTH, "name"))
    if creating or "part_number" in data:
        checks.append(validate_required_string(data.get("part_number"), "part_number"))
        checks.append(
            validate_string_length(data.get("part_number"), MAX_PART_NUMBER_LENGTH, "part_number")
        )
    if creating or "monthly_required_quantity" in data:
        checks.append(
            validate_positive_integer(
                data.get("monthly_required_quantity"), "monthly_required_quantity"
            )
        )
    if "current_stock" in data:
        checks.append(validate_non_negative_integer(data["current_stock"], "current_stock"))
    if "category" in data:
        checks.append(validate_string_length(data["category"], MAX_CATEGORY_LENGTH, "category"))
    if "supplier" in data:
        checks.append(validate_string_length(data["supplier"], MAX_NAME_LENGTH, "supplier"))
    if "unit_price" in data:
        checks.append(validate_non_negative_decimal(data["unit_price"], "unit_price"))
    return collect_errors(*checks)


def _stock_status(component: Component) -> str:
    if component.stock_ratio < LOW_STOCK_RATIO:
        return "CRITICAL"
    if component.stock_ratio < ADEQUATE_STOCK_RATIO:
        return "LOW"
    return "ADEQUATE"


def _part_number_taken(session, part_number: str, exclude_id: Optional[int] = None) -> bool:
    query = session.query(Component.id).filter(Component.part_number == part_number)
    if exclude_id is not None:
        query = query.filter(Component.id != exclude_id)
    return query.first() is not None


def _get_or_raise(session, component_id: int) -> Component:
    component = session.get(Component, component_id)
    if component is None:
        raise ComponentNotFound(component_id)
    return component


# =============================================================================
# CRUD
# =============================================================================


def create_component(
    name: str,
    part_number: str,
    monthly_required_quantity: int,
    current_stock: int = 0,
    category: Optional[str] = None,
    supplier: Optional[str] = None,
    unit_price: Any = Decimal("0"),
    *,
    session=None,
) -> Dict[str, Any]:
    """
    Create a component with its opening stock.

    A procurement trigger is raised right away if the opening stock is low.

    Returns:
        Component dict (with stock_percentage)

    Raises:
        ValidationError: If any field is invalid
        DuplicatePartNumber: If the part number is already used
    """
    data = {
        "name": name,
        "part_number": part_number,
        "monthly_required_quantity": monthly_required_quantity,
        "current_stock": current_stock,
        "category": category,
        "supplier": supplier,
        "unit_price": unit_price,
    }
    errors = _validate_fields(data, creating=True)
    if errors:
        raise ValidationError(errors)
    name, part_number = name.strip(), part_number.strip()

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        if _part_number_taken(session, part_number):
            raise DuplicatePartNumber(part_number)

        component = Component(
            name=name,
            part_number=part_number,
            monthly_required_quantity=monthly_required_quantity,
            current_stock=current_stock,
            category=category,
            supplier=supplier,
            unit_price=Decimal(str(unit_price)),
        )
        session.add(component)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicatePartNumber(part_number, original_error=e) from e

        procurement_service.evaluate(
            component.id, component.current_stock, component.monthly_required_quantity, session
        )

        log_operation(
            logger,
            operation="create_component",
            outcome="success",
            component_id=component.id,
            part_number=component.part_number,
        )
        return component.to_dict()


def get_component(
    component_id: int, include_history: bool = True, *, session=None
) -> Dict[str, Any]:
    """
    Get a component, optionally with its most recent consumption.

    Args:
        component_id: Component ID
        include_history: Add "consumption_history" (10 newest rows, with
            production_date, quantity_produced and pcb_name)
        session: Optional database session

    Raises:
        ComponentNotFound: If the component doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        component = _get_or_raise(session, component_id)
        result = component.to_dict()
        result["stock_status"] = _stock_status(component)

        if include_history:
            records = (
                session.query(ConsumptionHistory)
                .options(
                    joinedload(ConsumptionHistory.production_entry).joinedload(
                        ProductionEntry.pcb
                    )
                )
                .filter(ConsumptionHistory.component_id == component_id)
                .order_by(ConsumptionHistory.consumed_at.desc(), ConsumptionHistory.id.desc())
                .limit(RECENT_HISTORY_LIMIT)
                .all()
            )
            history = []
            for record in records:
                row = record.to_dict()
                entry = record.production_entry
                row["production_date"] = entry.production_date.isoformat()
                row["quantity_produced"] = entry.quantity_produced
                row["pcb_name"] = entry.pcb.name
                history.append(row)
            result["consumption_history"] = history

        return result


def list_components(
    search: Optional[str] = None,
    category: Optional[str] = None,
    low_stock_only: bool = False,
    pagination: Optional[PaginationParams] = None,
    *,
    session=None,
) -> PaginatedResult:
    """
    List components ordered by name.

    Args:
        search: Case-insensitive substring of name or part number
        category: Exact category filter
        low_stock_only: Only components below 20% of monthly requirement
        pagination: Optional page; None returns every match
        session: Optional database session

    Returns:
        PaginatedResult of component dicts with stock_percentage and
        stock_status (CRITICAL < 20%, LOW < 50%, else ADEQUATE)
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(Component)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Component.name.ilike(pattern), Component.part_number.ilike(pattern))
            )
        if category:
            query = query.filter(Component.category == category)
        if low_stock_only:
            query = query.filter(
                Component.current_stock < Component.monthly_required_quantity * LOW_STOCK_RATIO
            )

        total = query.count()
        query = query.order_by(Component.name, Component.id)
        if pagination is not None:
            query = query.offset(pagination.offset()).limit(pagination.per_page)

        items = []
        for component in query.all():
            data = component.to_dict()
            data["stock_status"] = _stock_status(component)
            items.append(data)

    if pagination is None:
        return PaginatedResult(items=items, total=total, page=1, per_page=max(total, 1))
    return PaginatedResult(
        items=items, total=total, page=pagination.page, per_page=pagination.per_page
    )


def update_component(component_id: int, updates, *, session=None) -> Dict[str, Any]:
    """
    Update editable component fields.

    Args:
        component_id: Component to update
        updates: ComponentUpdate, or a dict accepted by ComponentUpdate.from_dict
        session: Optional database session

    Returns:
        Updated component dict

    Raises:
        ValidationError: Unknown field (including current_stock) or bad value
        ComponentNotFound: If the component doesn't exist
        DuplicatePartNumber: If the new part number is already used
    """
    if isinstance(updates, dict):
        updates = ComponentUpdate.from_dict(updates)
    changes = updates.changes()
    errors = _validate_fields(changes, creating=False)
    if errors:
        raise ValidationError(errors)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        component = _get_or_raise(session, component_id)

        new_part_number = changes.get("part_number")
        if new_part_number and _part_number_taken(session, new_part_number, component_id):
            raise DuplicatePartNumber(new_part_number)

        if "unit_price" in changes:
            changes["unit_price"] = Decimal(str(changes["unit_price"]))
        for field_name, value in changes.items():
            setattr(component, field_name, value)

        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicatePartNumber(component.part_number, original_error=e) from e

        procurement_service.evaluate(
            component.id, component.current_stock, component.monthly_required_quantity, session
        )

        log_operation(
            logger,
            operation="update_component",
            outcome="success",
            component_id=component_id,
            fields=sorted(changes),
        )
        return component.to_dict()


def delete_component(component_id: int, *, session=None) -> None:
    """
    Delete a component with its BOM lines and procurement triggers.

    Raises:
        ComponentNotFound: If the component doesn't exist
        ComponentInUse: If consumption history still references it
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        component = _get_or_raise(session, component_id)

        history_count = (
            session.query(func.count(ConsumptionHistory.id))
            .filter(ConsumptionHistory.component_id == component_id)
            .scalar()
        )
        if history_count:
            raise ComponentInUse(component_id, {"consumption records": history_count})

        session.delete(component)
        session.flush()

    log_operation(
        logger,
        operation="delete_component",
        outcome="success",
        component_id=component_id,
    )


# =============================================================================
# Stock
# =============================================================================


def receive_stock(
    component_id: int, quantity: int, notes: Optional[str] = None, *, session=None
) -> Dict[str, Any]:
    """
    Add received goods to a component's stock.

    Args:
        component_id: Component receiving stock
        quantity: Units received (> 0)
        notes: Optional delivery note, logged with the operation
        session: Optional database session

    Returns:
        Updated component dict

    Raises:
        ValidationError: If quantity is not a positive integer
        ComponentNotFound: If the component doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        stock_ledger_service.receive(component_id, quantity, session)
        component = _get_or_raise(session, component_id)
        if notes:
            logger.info(f"Received {quantity} of component {component_id}: {notes}")
        return component.to_dict()


def get_low_stock_components(*, session=None) -> List[Dict[str, Any]]:
    """
    Components below 20% of their monthly requirement, most urgent first.

    Returns:
        List of component dicts with priority, avg_daily_consumption,
        days_until_stockout and recommended_order_quantity added
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        components = (
            session.query(Component)
            .filter(
                Component.current_stock < Component.monthly_required_quantity * LOW_STOCK_RATIO
            )
            .all()
        )
        rates = analytics_service.get_consumption_rates(
            [c.id for c in components], session=session
        )

        components.sort(key=lambda c: (c.stock_ratio, c.name))
        results = []
        for component in components:
            avg_daily = rates[component.id]
            data = component.to_dict()
            data["priority"] = procurement_service.classify_priority(
                component.current_stock, component.monthly_required_quantity
            ).value
            data["avg_daily_consumption"] = round(avg_daily, 2)
            data["days_until_stockout"] = analytics_service.days_until_stockout(
                component.current_stock, avg_daily
            )
            data["recommended_order_quantity"] = procurement_service.recommended_order_quantity(
                component.current_stock, component.monthly_required_quantity
            )
            results.append(data)
        return results
