"""
Procurement Service - reorder alerts for low component stock.

This module provides functions for:
- Classifying a stock level into a trigger priority
- Evaluating a component after a stock change (automatic triggers)
- Manual triggers, status updates, listing and summaries

Trigger rules:
    ratio = current_stock / monthly_required_quantity
    ratio < 0.10 -> CRITICAL, < 0.15 -> HIGH, < 0.20 -> MEDIUM
    ratio >= 0.20 -> no automatic trigger (LOW is reserved for manual ones)
    recommended order = max(2 x monthly_required - current_stock, 0)

A component has at most one PENDING trigger. An existing PENDING trigger
is left untouched by later evaluations, so its snapshot can be stale.
"""

from contextlib import nullcontext
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from pcb_tracker.models import Component, ProcurementTrigger, TriggerPriority, TriggerStatus
from pcb_tracker.services import analytics_service
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.exceptions import (
    ComponentNotFound,
    ConstraintViolationError,
    DuplicatePendingTrigger,
    InvalidStatusError,
    TriggerNotFound,
    ValidationError,
)
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.constants import (
    CRITICAL_STOCK_RATIO,
    HIGH_STOCK_RATIO,
    LOW_STOCK_RATIO,
    REORDER_MONTHS,
)
from pcb_tracker.utils.datetime_utils import utc_now

logger = get_service_logger(__name__)


# =============================================================================
# Rules
# =============================================================================


def classify_priority(
    current_stock: int, monthly_required: int, include_low: bool = False
) -> Optional[TriggerPriority]:
    """
    Map a stock level to a trigger priority.

    Args:
        current_stock: Units on hand
        monthly_required: Monthly requirement (> 0)
        include_low: Return LOW instead of None for ratio >= 0.20

    Returns:
        TriggerPriority, or None when stock is not low
    """
    ratio = current_stock / monthly_required
    if ratio < CRITICAL_STOCK_RATIO:
        return TriggerPriority.CRITICAL
    if ratio < HIGH_STOCK_RATIO:
        return TriggerPriority.HIGH
    if ratio < LOW_STOCK_RATIO:
        return TriggerPriority.MEDIUM
    return TriggerPriority.LOW if include_low else None


def recommended_order_quantity(current_stock: int, monthly_required: int) -> int:
    """Units needed to bring stock up to REORDER_MONTHS months of supply."""
    return max(monthly_required * REORDER_MONTHS - current_stock, 0)


def _find_pending(session: Session, component_id: int) -> Optional[ProcurementTrigger]:
    return (
        session.query(ProcurementTrigger)
        .filter(
            ProcurementTrigger.component_id == component_id,
            ProcurementTrigger.status == TriggerStatus.PENDING.value,
        )
        .first()
    )


def _insert_trigger(
    session: Session,
    component_id: int,
    current_stock: int,
    monthly_required: int,
    priority: TriggerPriority,
    notes: Optional[str] = None,
) -> ProcurementTrigger:
    trigger = ProcurementTrigger(
        component_id=component_id,
        current_stock=current_stock,
        monthly_required=monthly_required,
        recommended_order_quantity=recommended_order_quantity(current_stock, monthly_required),
        priority=priority.value,
        status=TriggerStatus.PENDING.value,
        triggered_at=utc_now(),
        notes=notes,
    )
    session.add(trigger)
    try:
        session.flush()
    except IntegrityError as e:
        raise ConstraintViolationError(
            f"Could not create procurement trigger for component {component_id}",
            original_error=e,
        ) from e
    return trigger


# =============================================================================
# Evaluation
# =============================================================================


def evaluate(
    component_id: int, current_stock: int, monthly_required: int, session: Session
) -> Optional[ProcurementTrigger]:
    """
    Raise a PENDING trigger if the component's stock is low.

    Runs inside the caller's transaction, after the stock change it reacts
    to has been flushed.

    Args:
        component_id: Component whose stock changed
        current_stock: Stock after the change
        monthly_required: Component's monthly requirement
        session: Session of the enclosing atomic unit

    Returns:
        The new ProcurementTrigger, or None if stock is not low or a
        PENDING trigger already exists
    """
    priority = classify_priority(current_stock, monthly_required)
    if priority is None:
        return None

    existing = _find_pending(session, component_id)
    if existing is not None:
        logger.debug(
            f"Component {component_id} already has pending trigger {existing.id}; skipping"
        )
        return None

    trigger = _insert_trigger(session, component_id, current_stock, monthly_required, priority)
    log_operation(
        logger,
        operation="create_trigger",
        outcome="success",
        trigger_id=trigger.id,
        component_id=component_id,
        priority=priority.value,
        recommended_order_quantity=trigger.recommended_order_quantity,
    )
    return trigger


def create_manual_trigger(
    component_id: int, notes: Optional[str] = None, *, session=None
) -> Dict[str, Any]:
    """
    Raise a PENDING trigger on request, whatever the stock ratio.

    Args:
        component_id: Component to reorder
        notes: Optional notes stored on the trigger
        session: Optional database session

    Returns:
        The new trigger as a dict

    Raises:
        ComponentNotFound: If the component doesn't exist
        DuplicatePendingTrigger: If the component already has a PENDING trigger
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        component = (
            session.query(Component)
            .filter(Component.id == component_id)
            .with_for_update()
            .first()
        )
        if component is None:
            raise ComponentNotFound(component_id)

        existing = _find_pending(session, component_id)
        if existing is not None:
            raise DuplicatePendingTrigger(component_id, existing.id)

        priority = classify_priority(
            component.current_stock, component.monthly_required_quantity, include_low=True
        )
        trigger = _insert_trigger(
            session,
            component_id,
            component.current_stock,
            component.monthly_required_quantity,
            priority,
            notes=notes,
        )
        trigger.component = component

        log_operation(
            logger,
            operation="create_manual_trigger",
            outcome="success",
            trigger_id=trigger.id,
            component_id=component_id,
            priority=priority.value,
        )
        return trigger.to_dict(include_relationships=True)


# =============================================================================
# Status Lifecycle
# =============================================================================


def _parse_status(value: Union[str, TriggerStatus]) -> TriggerStatus:
    try:
        return TriggerStatus(value)
    except ValueError:
        raise InvalidStatusError(value)


def _parse_priority(value: Union[str, TriggerPriority]) -> TriggerPriority:
    try:
        return TriggerPriority(value)
    except ValueError:
        raise ValidationError(
            [f"priority: Invalid priority {value!r}. Must be CRITICAL, HIGH, MEDIUM, or LOW"]
        )


def update_status(
    trigger_id: int, new_status: Union[str, TriggerStatus], *, session=None
) -> Dict[str, Any]:
    """
    Move a trigger forward through PENDING -> ORDERED -> FULFILLED.

    Setting the current status again is a no-op. FULFILLED stamps
    resolved_at.

    Args:
        trigger_id: Trigger to update
        new_status: Target status
        session: Optional database session

    Returns:
        The updated trigger as a dict

    Raises:
        InvalidStatusError: Unknown status, or a backwards transition
        TriggerNotFound: If the trigger doesn't exist
    """
    target = _parse_status(new_status)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        trigger = (
            session.query(ProcurementTrigger)
            .options(joinedload(ProcurementTrigger.component))
            .filter(ProcurementTrigger.id == trigger_id)
            .first()
        )
        if trigger is None:
            raise TriggerNotFound(trigger_id)

        current = TriggerStatus(trigger.status)
        if target.step < current.step:
            raise InvalidStatusError(target.value, current.value)

        if target != current:
            trigger.status = target.value
            if target == TriggerStatus.FULFILLED:
                trigger.resolved_at = utc_now()
            try:
                session.flush()
            except IntegrityError as e:
                raise ConstraintViolationError(
                    f"Could not update procurement trigger {trigger_id}", original_error=e
                ) from e

            log_operation(
                logger,
                operation="update_trigger_status",
                outcome="success",
                trigger_id=trigger_id,
                from_status=current.value,
                to_status=target.value,
            )

        return trigger.to_dict(include_relationships=True)


# =============================================================================
# Queries
# =============================================================================


def _estimated_cost(trigger: ProcurementTrigger) -> Decimal:
    unit_price = trigger.component.unit_price or Decimal("0")
    return (Decimal(trigger.recommended_order_quantity) * unit_price).quantize(Decimal("0.01"))


def list_triggers(
    status: Optional[Union[str, TriggerStatus]] = TriggerStatus.PENDING,
    priority: Optional[Union[str, TriggerPriority]] = None,
    *,
    session=None,
) -> List[Dict[str, Any]]:
    """
    List triggers, most urgent first, then newest first.

    Args:
        status: Status filter (default PENDING; None lists every status)
        priority: Optional priority filter
        session: Optional database session

    Returns:
        List of trigger dicts with component_name, part_number,
        unit_price, estimated_cost, avg_daily_consumption,
        days_until_stockout and stock_percentage added

    Raises:
        InvalidStatusError: If status is not a known status
        ValidationError: If priority is not a known priority
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        query = session.query(ProcurementTrigger).options(
            joinedload(ProcurementTrigger.component)
        )
        if status is not None:
            query = query.filter(ProcurementTrigger.status == _parse_status(status).value)
        if priority is not None:
            query = query.filter(ProcurementTrigger.priority == _parse_priority(priority).value)

        triggers = query.all()
        rates = analytics_service.get_consumption_rates(
            [t.component_id for t in triggers], session=session
        )

        triggers.sort(key=lambda t: t.triggered_at.replace(tzinfo=None), reverse=True)
        triggers.sort(key=lambda t: TriggerPriority(t.priority).rank)

        results = []
        for trigger in triggers:
            avg_daily = rates.get(trigger.component_id, 0.0)
            data = trigger.to_dict(include_relationships=True)
            data["unit_price"] = str(trigger.component.unit_price)
            data["estimated_cost"] = str(_estimated_cost(trigger))
            data["avg_daily_consumption"] = round(avg_daily, 2)
            data["days_until_stockout"] = analytics_service.days_until_stockout(
                trigger.current_stock, avg_daily
            )
            data["stock_percentage"] = round(
                trigger.current_stock / trigger.monthly_required * 100, 1
            )
            results.append(data)
        return results


def get_procurement_summary(*, session=None) -> List[Dict[str, Any]]:
    """
    Count triggers and sum their estimated cost per (status, priority).

    Returns:
        List of dicts with status, priority, count and total_estimated_cost,
        ordered by status lifecycle then priority
    """
    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        triggers = (
            session.query(ProcurementTrigger)
            .options(joinedload(ProcurementTrigger.component))
            .all()
        )

        groups: Dict[tuple, Dict[str, Any]] = {}
        for trigger in triggers:
            key = (trigger.status, trigger.priority)
            group = groups.setdefault(
                key,
                {
                    "status": trigger.status,
                    "priority": trigger.priority,
                    "count": 0,
                    "total_estimated_cost": Decimal("0.00"),
                },
            )
            group["count"] += 1
            group["total_estimated_cost"] += _estimated_cost(trigger)

    summary = sorted(
        groups.values(),
        key=lambda g: (TriggerStatus(g["status"]).step, TriggerPriority(g["priority"]).rank),
    )
    for group in summary:
        group["total_estimated_cost"] = str(group["total_estimated_cost"])

    logger.debug(f"Procurement summary: {len(summary)} groups from {len(triggers)} triggers")
    return summary
