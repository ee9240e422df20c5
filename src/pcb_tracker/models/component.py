"""
Component model for electronic component stock.

This module contains the Component model which holds the authoritative
current stock for a part. Stock is only changed through the stock ledger
service; the CHECK constraint below keeps it non-negative regardless of
code path.
"""

from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Component(BaseModel):
    """
    Component model representing a stocked electronic part.

    Attributes:
        name: Display name (e.g., "LED 5mm Red")
        part_number: Manufacturer/internal part number (unique)
        current_stock: Units on hand (never negative)
        monthly_required_quantity: Expected monthly usage (must be > 0)
        category: Optional grouping (e.g., "Passive", "IC")
        supplier: Optional supplier name
        unit_price: Price per unit

    Relationships:
        bom_lines: PCB BOM lines that use this component
        consumption_records: Consumption history rows for this component
        procurement_triggers: Reorder alerts raised for this component
    """

    __tablename__ = "components"

    name = Column(String(200), nullable=False)
    part_number = Column(String(100), nullable=False, unique=True)
    current_stock = Column(Integer, nullable=False, default=0)
    monthly_required_quantity = Column(Integer, nullable=False)
    category = Column(String(100), nullable=True)
    supplier = Column(String(200), nullable=True)
    unit_price = Column(Numeric(10, 4), nullable=False, default=Decimal("0.0000"))

    bom_lines = relationship(
        "PCBComponent",
        back_populates="component",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    consumption_records = relationship(
        "ConsumptionHistory",
        back_populates="component",
        passive_deletes=True,
    )
    procurement_triggers = relationship(
        "ProcurementTrigger",
        back_populates="component",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_component_name", "name"),
        Index("idx_component_category", "category"),
        CheckConstraint("current_stock >= 0", name="ck_component_stock_non_negative"),
        CheckConstraint(
            "monthly_required_quantity > 0", name="ck_component_monthly_required_positive"
        ),
        CheckConstraint("unit_price >= 0", name="ck_component_unit_price_non_negative"),
    )

    @property
    def stock_ratio(self) -> float:
        """current_stock / monthly_required_quantity."""
        return self.current_stock / self.monthly_required_quantity

    @property
    def stock_percentage(self) -> float:
        """Stock ratio expressed as a percentage."""
        return self.stock_ratio * 100

    def __repr__(self) -> str:
        """String representation of component."""
        return (
            f"Component(id={self.id}, part_number='{self.part_number}', "
            f"current_stock={self.current_stock})"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert component to dictionary.

        Args:
            include_relationships: Ignored; history is loaded by the service

        Returns:
            Dictionary representation with stock_percentage added
        """
        result = super().to_dict(False)
        result["stock_percentage"] = round(self.stock_percentage, 2)
        return result
