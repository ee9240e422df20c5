"""
Analytics Service - read-only consumption statistics.

This module provides functions for:
- Average daily consumption per component (used for stockout prediction)
- Days-until-stockout estimates
- Dashboard consumption anomaly detection

All functions are pure reads. Consumption rows are bucketed by calendar
day in Python so SQLite and PostgreSQL return the same numbers.
"""

from collections import defaultdict
from contextlib import nullcontext
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, Optional

from pcb_tracker.models import ConsumptionHistory
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.logging_utils import get_service_logger, log_operation
from pcb_tracker.utils.constants import (
    ANOMALY_FACTOR,
    ANOMALY_WINDOW_DAYS,
    CONSUMPTION_WINDOW_DAYS,
    STOCKOUT_HORIZON_DAYS,
)
from pcb_tracker.utils.datetime_utils import utc_now, utc_today

logger = get_service_logger(__name__)


def _start_of(day: date) -> datetime:
    # consumed_at is stored without tzinfo (UTC)
    return datetime.combine(day, time.min)


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


# =============================================================================
# Consumption Rates
# =============================================================================


def get_consumption_rates(
    component_ids: Iterable[int],
    days: int = CONSUMPTION_WINDOW_DAYS,
    *,
    session=None,
) -> Dict[int, float]:
    """
    Average daily consumption for several components.

    The average is total consumed in the last ``days`` days divided by the
    number of distinct days with any consumption, so idle days do not dilute
    it. Components with no consumption in the window map to 0.0.

    Args:
        component_ids: Components to report on
        days: Window length in days
        session: Optional database session

    Returns:
        Dict mapping component id to average units per active day
    """
    ids = sorted(set(component_ids))
    rates = {component_id: 0.0 for component_id in ids}
    if not ids:
        return rates

    since = utc_now().replace(tzinfo=None) - timedelta(days=days)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        rows = (
            session.query(
                ConsumptionHistory.component_id,
                ConsumptionHistory.quantity_consumed,
                ConsumptionHistory.consumed_at,
            )
            .filter(
                ConsumptionHistory.component_id.in_(ids),
                ConsumptionHistory.consumed_at >= since,
            )
            .all()
        )

    totals: Dict[int, int] = defaultdict(int)
    active_days: Dict[int, set] = defaultdict(set)
    for component_id, quantity, consumed_at in rows:
        totals[component_id] += quantity
        active_days[component_id].add(_as_date(consumed_at))

    for component_id, total in totals.items():
        rates[component_id] = total / len(active_days[component_id])
    return rates


def get_average_daily_consumption(
    component_id: int, days: int = CONSUMPTION_WINDOW_DAYS, *, session=None
) -> float:
    """
    Average daily consumption of one component over the last ``days`` days.

    Args:
        component_id: Component to report on
        days: Window length in days (default 30)
        session: Optional database session

    Returns:
        Units per active day, 0.0 when nothing was consumed
    """
    return get_consumption_rates([component_id], days, session=session)[component_id]


def days_until_stockout(current_stock: int, avg_daily_consumption: float) -> int:
    """
    Whole days the current stock lasts at the given consumption rate.

    Returns STOCKOUT_HORIZON_DAYS (999) when there is no consumption.
    """
    if avg_daily_consumption <= 0:
        return STOCKOUT_HORIZON_DAYS
    return int(current_stock // avg_daily_consumption)


# =============================================================================
# Anomaly Detection
# =============================================================================


def detect_consumption_anomaly(today: Optional[date] = None, *, session=None) -> Dict[str, Any]:
    """
    Compare today's total consumption against the trailing daily average.

    The average covers the ANOMALY_WINDOW_DAYS calendar days before today
    (today excluded) and is divided by the full window length. Today is
    flagged when it exceeds ANOMALY_FACTOR times that average; with a zero
    average any consumption today is flagged.

    Args:
        today: Day to check (defaults to the current UTC date)
        session: Optional database session

    Returns:
        Dict with keys:
            - "date" (str): ISO date checked
            - "today_consumption" (int)
            - "average_daily_consumption" (float)
            - "threshold" (float): ANOMALY_FACTOR x average
            - "is_anomaly" (bool)
            - "window_days" (int)
    """
    if today is None:
        today = utc_today()

    window_start = today - timedelta(days=ANOMALY_WINDOW_DAYS)

    cm = nullcontext(session) if session is not None else session_scope()
    with cm as session:
        rows = (
            session.query(ConsumptionHistory.quantity_consumed, ConsumptionHistory.consumed_at)
            .filter(
                ConsumptionHistory.consumed_at >= _start_of(window_start),
                ConsumptionHistory.consumed_at < _start_of(today + timedelta(days=1)),
            )
            .all()
        )

    today_total = 0
    window_total = 0
    for quantity, consumed_at in rows:
        if _as_date(consumed_at) == today:
            today_total += quantity
        else:
            window_total += quantity

    average = window_total / ANOMALY_WINDOW_DAYS
    threshold = average * ANOMALY_FACTOR
    is_anomaly = today_total > threshold

    result = {
        "date": today.isoformat(),
        "today_consumption": today_total,
        "average_daily_consumption": round(average, 2),
        "threshold": round(threshold, 2),
        "is_anomaly": is_anomaly,
        "window_days": ANOMALY_WINDOW_DAYS,
    }

    if is_anomaly:
        log_operation(
            logger,
            operation="detect_consumption_anomaly",
            outcome="anomaly",
            today_consumption=today_total,
            average_daily_consumption=result["average_daily_consumption"],
        )
    return result
