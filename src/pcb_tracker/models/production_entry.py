"""
ProductionEntry model for logged production runs.

This module contains the ProductionEntry model which represents a run
where quantity_produced boards of one PCB were built. Creating an entry
deducts component stock; deleting it restores the stock recorded in its
consumption history rows.
"""

from sqlalchemy import (
    Column,
    Integer,
    Text,
    Date,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from pcb_tracker.utils.datetime_utils import utc_today


class ProductionEntry(BaseModel):
    """
    ProductionEntry model for tracking board production.

    Immutable once created; the only change allowed is full deletion,
    which reverses its stock deductions.

    Attributes:
        pcb_id: Foreign key to the PCB produced
        quantity_produced: Number of boards built (must be > 0)
        production_date: Calendar date of the run
        user_id: Identifier of the user who logged the run
        notes: Optional notes
    """

    __tablename__ = "production_entries"

    pcb_id = Column(Integer, ForeignKey("pcbs.id", ondelete="RESTRICT"), nullable=False)
    quantity_produced = Column(Integer, nullable=False)
    production_date = Column(Date, nullable=False, default=utc_today)
    # Users live in the auth layer; no FK here
    user_id = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    pcb = relationship("PCB", back_populates="production_entries")
    consumption_records = relationship(
        "ConsumptionHistory",
        back_populates="production_entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_production_entry_pcb", "pcb_id"),
        Index("idx_production_entry_date", "production_date"),
        CheckConstraint(
            "quantity_produced > 0", name="ck_production_entry_quantity_positive"
        ),
    )

    def __repr__(self) -> str:
        """String representation of production entry."""
        return (
            f"ProductionEntry(id={self.id}, pcb_id={self.pcb_id}, "
            f"quantity_produced={self.quantity_produced})"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert production entry to dictionary.

        Args:
            include_relationships: If True, add PCB name and code

        Returns:
            Dictionary representation with formatted fields
        """
        result = super().to_dict(False)

        if include_relationships and self.pcb:
            result["pcb_name"] = self.pcb.name
            result["pcb_code"] = self.pcb.code

        return result
