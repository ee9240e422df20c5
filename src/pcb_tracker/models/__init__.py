"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .enums import TriggerPriority, TriggerStatus
from .component import Component
from .pcb import PCB
from .pcb_component import PCBComponent
from .production_entry import ProductionEntry
from .consumption_history import ConsumptionHistory
from .procurement_trigger import ProcurementTrigger

__all__ = [
    "Base",
    "BaseModel",
    # Enums
    "TriggerPriority",
    "TriggerStatus",
    # Inventory
    "Component",
    "PCB",
    "PCBComponent",
    # Production
    "ProductionEntry",
    "ConsumptionHistory",
    # Procurement
    "ProcurementTrigger",
]
