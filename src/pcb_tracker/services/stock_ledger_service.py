"""Stock Ledger Service - the only code path that changes component stock.

This module holds the increment/decrement primitives for
``Component.current_stock``. They never open their own transaction: the
caller passes the session of its atomic unit, so a deduction and the
ledger row that records it commit or roll back together.

Safety layers against negative stock:
1. The production coordinator checks every BOM line before deducting
2. deduct() refuses any quantity larger than the current stock
3. The ``ck_component_stock_non_negative`` CHECK constraint in the database

Row locking:
    lock_components() and deduct()/restore() read components with
    SELECT ... FOR UPDATE. PostgreSQL holds the row locks until commit;
    SQLite ignores the clause and relies on BEGIN IMMEDIATE instead
    (see services.database).
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pcb_tracker.models import Component
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.exceptions import (
    ComponentNotFound,
    ConstraintViolationError,
    InsufficientStockError,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.validators import validate_positive_integer

logger = get_service_logger(__name__)


@dataclass(frozen=True)
class StockChange:
    """Before/after stock values of one ledger operation."""

    component_id: int
    stock_before: int
    stock_after: int

    @property
    def delta(self) -> int:
        """Signed change (negative for deductions)."""
        return self.stock_after - self.stock_before


def lock_components(component_ids: Iterable[int], session: Session) -> Dict[int, Component]:
    """
    Load and lock a set of components for the rest of the transaction.

    Rows are locked in ascending id order so two transactions touching
    overlapping components cannot deadlock.

    Args:
        component_ids: Component IDs to lock
        session: Session of the enclosing atomic unit

    Returns:
        Dict mapping component id to Component

    Raises:
        ComponentNotFound: If any id does not exist
    """
    ids = sorted(set(component_ids))
    if not ids:
        return {}

    components = (
        session.query(Component)
        .filter(Component.id.in_(ids))
        .order_by(Component.id)
        .with_for_update()
        .all()
    )
    found = {c.id: c for c in components}
    for component_id in ids:
        if component_id not in found:
            raise ComponentNotFound(component_id)
    return found


def _get_locked_component(component_id: int, session: Session) -> Component:
    component = (
        session.query(Component)
        .filter(Component.id == component_id)
        .with_for_update()
        .first()
    )
    if component is None:
        raise ComponentNotFound(component_id)
    return component


def _check_quantity(quantity: int) -> None:
    is_valid, error = validate_positive_integer(quantity, "quantity")
    if not is_valid:
        raise ValidationError([error])


def _flush(session: Session, component: Component) -> None:
    try:
        session.flush()
    except IntegrityError as e:
        raise ConstraintViolationError(
            f"Stock change for component {component.id} violates a database constraint",
            original_error=e,
        ) from e


def get_current_stock(component_id: int, session: Optional[Session] = None) -> int:
    """
    Read a component's current stock.

    Args:
        component_id: Component ID
        session: Optional database session

    Returns:
        Units currently on hand

    Raises:
        ComponentNotFound: If the component doesn't exist
    """
    if session is not None:
        return _get_current_stock_impl(component_id, session)
    with session_scope() as session:
        return _get_current_stock_impl(component_id, session)


def _get_current_stock_impl(component_id: int, session: Session) -> int:
    component = session.get(Component, component_id)
    if component is None:
        raise ComponentNotFound(component_id)
    return component.current_stock


def deduct(component_id: int, quantity: int, session: Session) -> StockChange:
    """
    Decrease a component's stock by ``quantity``.

    Writes no history; the caller records the returned before/after values
    in the same transaction.

    Args:
        component_id: Component to deduct from
        quantity: Units to remove (must be > 0)
        session: Session of the enclosing atomic unit

    Returns:
        StockChange with the stock before and after

    Raises:
        ValidationError: If quantity is not a positive integer
        ComponentNotFound: If the component doesn't exist
        InsufficientStockError: If quantity exceeds current stock
    """
    _check_quantity(quantity)
    component = _get_locked_component(component_id, session)

    stock_before = component.current_stock
    if quantity > stock_before:
        raise InsufficientStockError(
            [
                {
                    "component_id": component.id,
                    "component_name": component.name,
                    "part_number": component.part_number,
                    "required": quantity,
                    "available": stock_before,
                    "shortage": quantity - stock_before,
                }
            ]
        )

    component.current_stock = stock_before - quantity
    _flush(session, component)
    return StockChange(component.id, stock_before, component.current_stock)


def restore(component_id: int, quantity: int, session: Session) -> StockChange:
    """
    Increase a component's stock by ``quantity`` while reverting production.

    The quantity is added to whatever the stock is now, not rolled back to a
    historical value.

    Args:
        component_id: Component to restore
        quantity: Units to add back (must be > 0)
        session: Session of the enclosing atomic unit

    Returns:
        StockChange with the stock before and after

    Raises:
        ValidationError: If quantity is not a positive integer
        ComponentNotFound: If the component doesn't exist
    """
    _check_quantity(quantity)
    component = _get_locked_component(component_id, session)

    stock_before = component.current_stock
    component.current_stock = stock_before + quantity
    _flush(session, component)
    return StockChange(component.id, stock_before, component.current_stock)


def receive(component_id: int, quantity: int, session: Session) -> StockChange:
    """
    Add received goods to a component's stock (restocking).

    Args:
        component_id: Component receiving stock
        quantity: Units received (must be > 0)
        session: Session of the enclosing atomic unit

    Returns:
        StockChange with the stock before and after
    """
    change = restore(component_id, quantity, session)
    log_operation(
        logger,
        operation="receive_stock",
        outcome="success",
        component_id=component_id,
        quantity=quantity,
        stock_before=change.stock_before,
        stock_after=change.stock_after,
    )
    return change
