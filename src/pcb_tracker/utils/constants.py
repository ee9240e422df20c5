"""
Constants for the PCB Tracker application.

This module defines all system-wide constants including:
- Application metadata
- Stock ratio thresholds used by the procurement trigger engine
- Consumption analytics windows
- Validation limits and error messages
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "PCB Tracker"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"

# ============================================================================
# Stock Thresholds
# ============================================================================

# Ratios are current_stock / monthly_required_quantity.
# Anything at or above LOW_STOCK_RATIO never raises an automatic trigger.
CRITICAL_STOCK_RATIO = 0.10
HIGH_STOCK_RATIO = 0.15
LOW_STOCK_RATIO = 0.20

# Component list status bands (display only)
ADEQUATE_STOCK_RATIO = 0.50

# Reorder tops stock up to this many months of supply
REORDER_MONTHS = 2

# ============================================================================
# Consumption Analytics
# ============================================================================

ANOMALY_WINDOW_DAYS = 30
ANOMALY_FACTOR = 1.5

# Window for average daily consumption used by stockout prediction
CONSUMPTION_WINDOW_DAYS = 30

# Reported when a component has no recent consumption
STOCKOUT_HORIZON_DAYS = 999

# Number of consumption rows shown with a single component
RECENT_HISTORY_LIMIT = 10

# ============================================================================
# Validation Constants
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_PART_NUMBER_LENGTH = 100
MAX_CODE_LENGTH = 50
MAX_CATEGORY_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_NOTES_LENGTH = 2000

# ============================================================================
# Database Constants
# ============================================================================

DATABASE_FILENAME = "pcb_tracker.db"

VALID_DB_TYPES: List[str] = ["sqlite", "postgresql"]

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_POSITIVE = "Value must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"
ERROR_INVALID_INTEGER = "Value must be a whole number"
