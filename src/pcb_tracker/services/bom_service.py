"""
BOM Service - bill-of-materials lookup and maintenance.

This module provides functions for:
- Resolving a PCB into its ordered list of BOM lines (read by production)
- Adding, updating and removing BOM lines

A BOM line says how many units of one component a single board consumes.
Lines with quantity_per_pcb = 0 are allowed (placeholder parts).
"""

from contextlib import nullcontext
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from pcb_tracker.models import Component, PCB, PCBComponent
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.exceptions import (
    BOMLineNotFound,
    ComponentNotFound,
    DuplicateBOMLine,
    EmptyBOMError,
    PCBNotFound,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.validators import validate_non_negative_integer

logger = get_service_logger(__name__)


@dataclass(frozen=True)
class BOMLine:
    """One resolved BOM line with the component metadata production needs."""

    component_id: int
    component_name: str
    part_number: str
    quantity_per_pcb: int
    monthly_required_quantity: int
    unit_price: Decimal
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["unit_price"] = str(self.unit_price)
        return result


def _to_bom_line(line: PCBComponent) -> BOMLine:
    component = line.component
    return BOMLine(
        component_id=component.id,
        component_name=component.name,
        part_number=component.part_number,
        quantity_per_pcb=line.quantity_per_pcb,
        monthly_required_quantity=component.monthly_required_quantity,
        unit_price=component.unit_price,
        category=component.category,
    )


# =============================================================================
# Resolution
# =============================================================================


def resolve_bom(pcb_id: int, *, session=None) -> List[BOMLine]:
    """
    Resolve a PCB into its BOM lines, ordered by component name.

    Args:
        pcb_id: PCB to resolve
        session: Optional database session (uses session_scope if not provided)

    Returns:
        List of BOMLine, never empty

    Raises:
        PCBNotFound: If the PCB doesn't exist
        EmptyBOMError: If the PCB has no BOM lines
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        pcb = session.get(PCB, pcb_id)
        if pcb is None:
            raise PCBNotFound(pcb_id)

        lines = (
            session.query(PCBComponent)
            .join(Component, PCBComponent.component_id == Component.id)
            .options(joinedload(PCBComponent.component))
            .filter(PCBComponent.pcb_id == pcb_id)
            .order_by(Component.name, Component.id)
            .all()
        )
        if not lines:
            raise EmptyBOMError(pcb_id)

        return [_to_bom_line(line) for line in lines]


# =============================================================================
# Maintenance
# =============================================================================


def _validate_quantity_per_pcb(quantity_per_pcb: Any) -> None:
    is_valid, error = validate_non_negative_integer(quantity_per_pcb, "quantity_per_pcb")
    if not is_valid:
        raise ValidationError([error])


def _get_line(session, pcb_id: int, component_id: int) -> PCBComponent:
    line = (
        session.query(PCBComponent)
        .options(joinedload(PCBComponent.component))
        .filter(
            PCBComponent.pcb_id == pcb_id,
            PCBComponent.component_id == component_id,
        )
        .first()
    )
    if line is None:
        raise BOMLineNotFound(pcb_id, component_id)
    return line


def add_bom_line(
    pcb_id: int, component_id: int, quantity_per_pcb: int, *, session=None
) -> Dict[str, Any]:
    """
    Add a component to a PCB's BOM.

    Args:
        pcb_id: PCB receiving the line
        component_id: Component to add
        quantity_per_pcb: Units per board (>= 0)
        session: Optional database session

    Returns:
        The new BOM line as a dict

    Raises:
        ValidationError: If quantity_per_pcb is invalid
        PCBNotFound / ComponentNotFound: If either side doesn't exist
        DuplicateBOMLine: If the component is already on this BOM
    """
    _validate_quantity_per_pcb(quantity_per_pcb)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        pcb = session.get(PCB, pcb_id)
        if pcb is None:
            raise PCBNotFound(pcb_id)
        component = session.get(Component, component_id)
        if component is None:
            raise ComponentNotFound(component_id)

        existing = (
            session.query(PCBComponent)
            .filter(
                PCBComponent.pcb_id == pcb_id,
                PCBComponent.component_id == component_id,
            )
            .first()
        )
        if existing is not None:
            raise DuplicateBOMLine(pcb_id, component_id)

        line = PCBComponent(
            pcb_id=pcb_id,
            component_id=component_id,
            quantity_per_pcb=quantity_per_pcb,
        )
        session.add(line)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicateBOMLine(pcb_id, component_id) from e

        line.component = component
        log_operation(
            logger,
            operation="add_bom_line",
            outcome="success",
            pcb_id=pcb_id,
            component_id=component_id,
            quantity_per_pcb=quantity_per_pcb,
        )
        return _to_bom_line(line).to_dict()


def update_bom_line(
    pcb_id: int, component_id: int, quantity_per_pcb: int, *, session=None
) -> Dict[str, Any]:
    """
    Change the per-board quantity of an existing BOM line.

    Raises:
        ValidationError: If quantity_per_pcb is invalid
        BOMLineNotFound: If the PCB has no line for this component
    """
    _validate_quantity_per_pcb(quantity_per_pcb)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        line = _get_line(session, pcb_id, component_id)
        line.quantity_per_pcb = quantity_per_pcb
        session.flush()

        log_operation(
            logger,
            operation="update_bom_line",
            outcome="success",
            pcb_id=pcb_id,
            component_id=component_id,
            quantity_per_pcb=quantity_per_pcb,
        )
        return _to_bom_line(line).to_dict()


def remove_bom_line(pcb_id: int, component_id: int, *, session=None) -> None:
    """
    Remove a component from a PCB's BOM.

    Raises:
        BOMLineNotFound: If the PCB has no line for this component
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        line = _get_line(session, pcb_id, component_id)
        session.delete(line)
        session.flush()

    log_operation(
        logger,
        operation="remove_bom_line",
        outcome="success",
        pcb_id=pcb_id,
        component_id=component_id,
    )
