"""PCB Tracker - component inventory and production tracking."""

from .utils.constants import APP_VERSION

__version__ = APP_VERSION
