"""
ProcurementTrigger model for component reorder alerts.

A trigger snapshots the component's stock and monthly requirement at the
moment it was raised, with a priority and a recommended order quantity.
At most one PENDING trigger may exist per component; the partial unique
index below enforces that at the database level.
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import TriggerPriority, TriggerStatus
from pcb_tracker.utils.datetime_utils import utc_now


class ProcurementTrigger(BaseModel):
    """
    ProcurementTrigger model for reorder alerts.

    Attributes:
        component_id: Foreign key to the component to reorder
        current_stock: Component stock when the trigger was raised
        monthly_required: Component monthly requirement when raised
        recommended_order_quantity: Units needed to reach two months of supply
        priority: TriggerPriority value
        status: TriggerStatus value (forward-only)
        triggered_at: When the trigger was raised
        resolved_at: Set when status becomes FULFILLED
        notes: Optional notes (manual triggers)
    """

    __tablename__ = "procurement_triggers"

    component_id = Column(
        Integer, ForeignKey("components.id", ondelete="CASCADE"), nullable=False
    )
    current_stock = Column(Integer, nullable=False)
    monthly_required = Column(Integer, nullable=False)
    recommended_order_quantity = Column(Integer, nullable=False)
    priority = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=TriggerStatus.PENDING.value)
    triggered_at = Column(DateTime, nullable=False, default=utc_now)
    resolved_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    component = relationship("Component", back_populates="procurement_triggers")

    __table_args__ = (
        Index("idx_procurement_trigger_component", "component_id"),
        Index("idx_procurement_trigger_status", "status"),
        Index(
            "uq_procurement_trigger_pending",
            "component_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
        CheckConstraint(
            "priority IN ({})".format(", ".join(f"'{p.value}'" for p in TriggerPriority)),
            name="ck_procurement_trigger_priority",
        ),
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s.value}'" for s in TriggerStatus)),
            name="ck_procurement_trigger_status",
        ),
        CheckConstraint(
            "recommended_order_quantity >= 0",
            name="ck_procurement_trigger_quantity_non_negative",
        ),
    )

    def __repr__(self) -> str:
        """String representation of procurement trigger."""
        return (
            f"ProcurementTrigger(id={self.id}, component_id={self.component_id}, "
            f"priority='{self.priority}', status='{self.status}')"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert trigger to dictionary.

        Args:
            include_relationships: If True, add component name and part number

        Returns:
            Dictionary representation
        """
        result = super().to_dict(False)

        if include_relationships and self.component:
            result["component_name"] = self.component.name
            result["part_number"] = self.component.part_number

        return result
