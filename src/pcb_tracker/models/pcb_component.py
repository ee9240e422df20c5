"""
PCBComponent model for bill-of-materials lines.

Each row says "one unit of this PCB consumes quantity_per_pcb units of
this component". A (pcb_id, component_id) pair appears at most once.
"""

from sqlalchemy import (
    Column,
    Integer,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class PCBComponent(BaseModel):
    """
    BOM line linking a PCB to a component.

    Attributes:
        pcb_id: Foreign key to PCB
        component_id: Foreign key to Component
        quantity_per_pcb: Units consumed per board produced (may be 0)
    """

    __tablename__ = "pcb_components"

    pcb_id = Column(Integer, ForeignKey("pcbs.id", ondelete="CASCADE"), nullable=False)
    component_id = Column(
        Integer, ForeignKey("components.id", ondelete="CASCADE"), nullable=False
    )
    quantity_per_pcb = Column(Integer, nullable=False)

    pcb = relationship("PCB", back_populates="bom_lines")
    component = relationship("Component", back_populates="bom_lines")

    __table_args__ = (
        UniqueConstraint("pcb_id", "component_id", name="uq_pcb_component"),
        Index("idx_pcb_component_pcb", "pcb_id"),
        Index("idx_pcb_component_component", "component_id"),
        CheckConstraint("quantity_per_pcb >= 0", name="ck_pcb_component_quantity_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of BOM line."""
        return (
            f"PCBComponent(pcb_id={self.pcb_id}, component_id={self.component_id}, "
            f"quantity_per_pcb={self.quantity_per_pcb})"
        )
