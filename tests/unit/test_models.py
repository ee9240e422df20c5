"""Schema-level tests for the ORM models.

These exercise the database constraints directly, bypassing the service
layer, so the guarantees hold even for code that skips validation.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from pcb_tracker.models import (
    PCB,
    Component,
    PCBComponent,
    ProcurementTrigger,
    TriggerPriority,
    TriggerStatus,
)


@pytest.fixture
def session(test_db):
    session = test_db()
    yield session
    session.rollback()


@pytest.fixture
def component(session):
    component = Component(
        name="Diode 1N4148",
        part_number="1N4148",
        monthly_required_quantity=50,
        current_stock=4,
    )
    session.add(component)
    session.flush()
    return component


def _trigger(component, status="PENDING"):
    return ProcurementTrigger(
        component_id=component.id,
        current_stock=component.current_stock,
        monthly_required=component.monthly_required_quantity,
        recommended_order_quantity=96,
        priority="CRITICAL",
        status=status,
    )


class TestComponentModel:
    def test_stock_ratio_and_percentage(self, component):
        assert component.stock_ratio == pytest.approx(0.08)
        assert component.to_dict()["stock_percentage"] == 8.0

    def test_defaults(self, component):
        assert component.unit_price == Decimal("0.0000")
        assert component.created_at is not None

    @pytest.mark.parametrize(
        "field, value",
        [("current_stock", -1), ("monthly_required_quantity", 0), ("unit_price", Decimal("-1"))],
    )
    def test_check_constraints(self, session, component, field, value):
        setattr(component, field, value)
        with pytest.raises(IntegrityError):
            session.flush()

    def test_part_number_unique(self, session, component):
        session.add(Component(name="Dup", part_number="1N4148", monthly_required_quantity=1))
        with pytest.raises(IntegrityError):
            session.flush()


class TestBOMModel:
    def test_component_once_per_pcb(self, session, component):
        pcb = PCB(name="Rectifier", code="RECT-01")
        session.add(pcb)
        session.flush()
        session.add(PCBComponent(pcb_id=pcb.id, component_id=component.id, quantity_per_pcb=4))
        session.flush()

        session.add(PCBComponent(pcb_id=pcb.id, component_id=component.id, quantity_per_pcb=1))
        with pytest.raises(IntegrityError):
            session.flush()


class TestProcurementTriggerModel:
    def test_one_pending_trigger_per_component(self, session, component):
        session.add(_trigger(component))
        session.flush()

        session.add(_trigger(component))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_resolved_triggers_do_not_count(self, session, component):
        session.add(_trigger(component, status="ORDERED"))
        session.add(_trigger(component, status="FULFILLED"))
        session.add(_trigger(component))
        session.flush()

        assert len(component.procurement_triggers) == 3

    def test_unknown_priority_rejected(self, session, component):
        trigger = _trigger(component)
        trigger.priority = "URGENT"
        session.add(trigger)
        with pytest.raises(IntegrityError):
            session.flush()


class TestEnums:
    def test_priority_rank_orders_most_urgent_first(self):
        ordered = sorted(TriggerPriority, key=lambda p: p.rank)
        assert ordered == [
            TriggerPriority.CRITICAL,
            TriggerPriority.HIGH,
            TriggerPriority.MEDIUM,
            TriggerPriority.LOW,
        ]

    def test_status_steps_forward(self):
        assert TriggerStatus.PENDING.step < TriggerStatus.ORDERED.step
        assert TriggerStatus.ORDERED.step < TriggerStatus.FULFILLED.step
