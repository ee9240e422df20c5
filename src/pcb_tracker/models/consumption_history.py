"""
ConsumptionHistory model for the component consumption ledger.

Each row records one stock deduction caused by a production entry:
how much was taken and the stock before and after. Rows are append-only;
they are removed only while reverting their owning production entry.
"""

from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from pcb_tracker.utils.datetime_utils import utc_now


class ConsumptionHistory(BaseModel):
    """
    ConsumptionHistory model for per-component consumption ledger rows.

    Attributes:
        component_id: Foreign key to the component consumed
        production_entry_id: Foreign key to the owning production entry
        quantity_consumed: Units deducted (always > 0)
        stock_before: Component stock before the deduction
        stock_after: Component stock after the deduction
        consumed_at: When the deduction happened
    """

    __tablename__ = "consumption_history"

    component_id = Column(
        Integer, ForeignKey("components.id", ondelete="RESTRICT"), nullable=False
    )
    production_entry_id = Column(
        Integer,
        ForeignKey("production_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity_consumed = Column(Integer, nullable=False)
    stock_before = Column(Integer, nullable=False)
    stock_after = Column(Integer, nullable=False)
    consumed_at = Column(DateTime, nullable=False, default=utc_now)

    component = relationship("Component", back_populates="consumption_records")
    production_entry = relationship("ProductionEntry", back_populates="consumption_records")

    __table_args__ = (
        Index("idx_consumption_component", "component_id"),
        Index("idx_consumption_entry", "production_entry_id"),
        Index("idx_consumption_consumed_at", "consumed_at"),
        CheckConstraint("quantity_consumed > 0", name="ck_consumption_quantity_positive"),
        CheckConstraint("stock_after >= 0", name="ck_consumption_stock_after_non_negative"),
        CheckConstraint(
            "stock_after = stock_before - quantity_consumed",
            name="ck_consumption_balance",
        ),
    )

    def __repr__(self) -> str:
        """String representation of consumption record."""
        return (
            f"ConsumptionHistory(id={self.id}, component_id={self.component_id}, "
            f"production_entry_id={self.production_entry_id}, "
            f"quantity_consumed={self.quantity_consumed})"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert consumption record to dictionary.

        Args:
            include_relationships: If True, add component name, part number
                and category

        Returns:
            Dictionary representation
        """
        result = super().to_dict(False)

        if include_relationships and self.component:
            result["component_name"] = self.component.name
            result["part_number"] = self.component.part_number
            result["category"] = self.component.category

        return result
