"""
PCB Service - board design catalog.

This module provides functions for:
- Creating, reading, updating and deleting PCBs
- Reading a PCB together with its BOM and component costs

BOM lines themselves are maintained through bom_service.
"""

from contextlib import nullcontext
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from pcb_tracker.models import PCB, PCBComponent, ProductionEntry
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.exceptions import (
    DuplicatePCBCode,
    PCBInUse,
    PCBNotFound,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.constants import MAX_CODE_LENGTH, MAX_DESCRIPTION_LENGTH, MAX_NAME_LENGTH
from pcb_tracker.utils.validators import (
    collect_errors,
    validate_required_string,
    validate_string_length,
)

logger = get_service_logger(__name__)

_EDITABLE_FIELDS = ("name", "code", "description")
_STRIPPED_FIELDS = ("name", "code")


def _validate(data: Dict[str, Any], creating: bool) -> None:
    checks = []
    if creating or "name" in data:
        checks.append(validate_required_string(data.get("name"), "name"))
        checks.append(validate_string_length(data.get("name"), MAX_NAME_LENGTH, "name"))
    if creating or "code" in data:
        checks.append(validate_required_string(data.get("code"), "code"))
        checks.append(validate_string_length(data.get("code"), MAX_CODE_LENGTH, "code"))
    if "description" in data:
        checks.append(
            validate_string_length(data["description"], MAX_DESCRIPTION_LENGTH, "description")
        )
    errors = collect_errors(*checks)
    if errors:
        raise ValidationError(errors)


def _strip_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value.strip() if key in _STRIPPED_FIELDS and isinstance(value, str) else value
        for key, value in data.items()
    }


def _code_taken(session, code: str, exclude_id: Optional[int] = None) -> bool:
    query = session.query(PCB.id).filter(PCB.code == code)
    if exclude_id is not None:
        query = query.filter(PCB.id != exclude_id)
    return query.first() is not None


def _get_or_raise(session, pcb_id: int) -> PCB:
    pcb = session.get(PCB, pcb_id)
    if pcb is None:
        raise PCBNotFound(pcb_id)
    return pcb


def create_pcb(
    name: str, code: str, description: Optional[str] = None, *, session=None
) -> Dict[str, Any]:
    """
    Create a PCB design.

    Raises:
        ValidationError: If name or code is missing or too long
        DuplicatePCBCode: If the code is already used
    """
    _validate({"name": name, "code": code, "description": description}, creating=True)
    name, code = name.strip(), code.strip()

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        if _code_taken(session, code):
            raise DuplicatePCBCode(code)

        pcb = PCB(name=name, code=code, description=description)
        session.add(pcb)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicatePCBCode(code, original_error=e) from e

        log_operation(logger, operation="create_pcb", outcome="success", pcb_id=pcb.id, code=code)
        return pcb.to_dict()


def get_pcb(pcb_id: int, *, session=None) -> Dict[str, Any]:
    """
    Get a PCB with its BOM and costs.

    Returns:
        PCB dict with:
            - "components": BOM lines ordered by component name, each with
              quantity_per_pcb, current_stock, unit_price and cost_per_pcb
            - "total_cost_per_pcb": sum of the line costs

    Raises:
        PCBNotFound: If the PCB doesn't exist
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        pcb = _get_or_raise(session, pcb_id)
        lines = (
            session.query(PCBComponent)
            .options(joinedload(PCBComponent.component))
            .filter(PCBComponent.pcb_id == pcb_id)
            .all()
        )
        lines.sort(key=lambda line: line.component.name)

        total = Decimal("0")
        components = []
        for line in lines:
            component = line.component
            cost = Decimal(line.quantity_per_pcb) * component.unit_price
            total += cost
            components.append(
                {
                    "component_id": component.id,
                    "component_name": component.name,
                    "part_number": component.part_number,
                    "category": component.category,
                    "quantity_per_pcb": line.quantity_per_pcb,
                    "current_stock": component.current_stock,
                    "unit_price": str(component.unit_price),
                    "cost_per_pcb": str(cost),
                }
            )

        result = pcb.to_dict()
        result["components"] = components
        result["total_cost_per_pcb"] = str(total)
        return result


def list_pcbs(*, session=None) -> List[Dict[str, Any]]:
    """List PCBs ordered by name, each with its BOM component_count."""
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        rows = (
            session.query(PCB, func.count(PCBComponent.id))
            .outerjoin(PCBComponent, PCBComponent.pcb_id == PCB.id)
            .group_by(PCB.id)
            .order_by(PCB.name, PCB.id)
            .all()
        )
        results = []
        for pcb, component_count in rows:
            data = pcb.to_dict()
            data["component_count"] = component_count
            results.append(data)
        return results


def update_pcb(pcb_id: int, updates: Dict[str, Any], *, session=None) -> Dict[str, Any]:
    """
    Update name, code and/or description of a PCB.

    Raises:
        ValidationError: Unknown field or bad value
        PCBNotFound: If the PCB doesn't exist
        DuplicatePCBCode: If the new code is already used
    """
    unknown = sorted(set(updates) - set(_EDITABLE_FIELDS))
    if unknown:
        raise ValidationError([f"{key}: Field cannot be updated" for key in unknown])
    updates = _strip_fields(updates)
    _validate(updates, creating=False)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        pcb = _get_or_raise(session, pcb_id)

        new_code = updates.get("code")
        if new_code and _code_taken(session, new_code, pcb_id):
            raise DuplicatePCBCode(new_code)

        for field_name, value in updates.items():
            setattr(pcb, field_name, value)
        try:
            session.flush()
        except IntegrityError as e:
            raise DuplicatePCBCode(pcb.code, original_error=e) from e

        log_operation(
            logger, operation="update_pcb", outcome="success", pcb_id=pcb_id, fields=sorted(updates)
        )
        return pcb.to_dict()


def delete_pcb(pcb_id: int, *, session=None) -> None:
    """
    Delete a PCB and its BOM lines.

    Raises:
        PCBNotFound: If the PCB doesn't exist
        PCBInUse: If production entries reference it
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        pcb = _get_or_raise(session, pcb_id)

        entry_count = (
            session.query(func.count(ProductionEntry.id))
            .filter(ProductionEntry.pcb_id == pcb_id)
            .scalar()
        )
        if entry_count:
            raise PCBInUse(pcb_id, {"production entries": entry_count})

        session.delete(pcb)
        session.flush()

    log_operation(logger, operation="delete_pcb", outcome="success", pcb_id=pcb_id)
