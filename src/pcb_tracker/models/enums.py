"""
Enumerations for procurement tracking.

This module contains enums used by the procurement trigger model:
- TriggerPriority: Urgency classification from the stock ratio
- TriggerStatus: Lifecycle of a reorder alert
"""

from enum import Enum


class TriggerPriority(str, Enum):
    """
    Procurement trigger priority.

    Derived from the stock ratio (current_stock / monthly_required_quantity)
    at the moment the trigger is raised. Lower ratio means more urgent.

    Values:
        CRITICAL: ratio < 0.10
        HIGH: 0.10 <= ratio < 0.15
        MEDIUM: 0.15 <= ratio < 0.20
        LOW: ratio >= 0.20 (manual triggers only)
    """

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort key, most urgent first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TriggerPriority.CRITICAL: 1,
    TriggerPriority.HIGH: 2,
    TriggerPriority.MEDIUM: 3,
    TriggerPriority.LOW: 4,
}


class TriggerStatus(str, Enum):
    """
    Procurement trigger status.

    Status only moves forward: PENDING -> ORDERED -> FULFILLED.
    A trigger may skip ORDERED and go straight to FULFILLED.

    Values:
        PENDING: Raised, nobody has acted on it yet
        ORDERED: Purchase order placed
        FULFILLED: Stock received; resolved_at is stamped
    """

    PENDING = "PENDING"
    ORDERED = "ORDERED"
    FULFILLED = "FULFILLED"

    @property
    def step(self) -> int:
        """Position in the forward-only lifecycle."""
        return _STATUS_STEP[self]


_STATUS_STEP = {
    TriggerStatus.PENDING: 0,
    TriggerStatus.ORDERED: 1,
    TriggerStatus.FULFILLED: 2,
}
