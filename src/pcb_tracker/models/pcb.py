"""
PCB model for board designs.

A PCB has no stock of its own; producing it consumes the components
listed in its BOM (see PCBComponent).
"""

from sqlalchemy import Column, String, Text, Index
from sqlalchemy.orm import relationship

from .base import BaseModel


class PCB(BaseModel):
    """
    PCB model representing a board design that can be produced.

    Attributes:
        name: Display name (e.g., "Blinker")
        code: Unique short code (e.g., "BLK-01")
        description: Optional free text

    Relationships:
        bom_lines: BOM lines (components and per-board quantities)
        production_entries: Production runs of this board
    """

    __tablename__ = "pcbs"

    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    bom_lines = relationship(
        "PCBComponent",
        back_populates="pcb",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    production_entries = relationship(
        "ProductionEntry",
        back_populates="pcb",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_pcb_name", "name"),)

    def __repr__(self) -> str:
        """String representation of PCB."""
        return f"PCB(id={self.id}, code='{self.code}', name='{self.name}')"
