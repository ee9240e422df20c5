"""
Configuration management for the PCB Tracker application.

This module handles:
- Database location and type (SQLite file or PostgreSQL URL)
- Database connection tuning (timeout, pool size, pool recycle)
- Environment-specific configuration (development vs. production)
- Logging level

Every setting can be overridden through a ``PCB_TRACKER_*`` environment
variable. Invalid values fall back to the default with a warning.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import (
    APP_NAME,
    APP_VERSION,
    DATABASE_FILENAME,
    DATABASE_VERSION,
    VALID_DB_TYPES,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_TIMEOUT = 30
DEFAULT_DB_POOL_SIZE = 5
DEFAULT_DB_POOL_RECYCLE = 3600
DEFAULT_LOG_LEVEL = "INFO"


def _int_from_env(name: str, default: int) -> int:
    """Read a positive integer environment variable, warning on bad input."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
        if value <= 0:
            raise ValueError(raw)
        return value
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}; using default {default}")
        return default


class Config:
    """
    Application configuration manager.

    Handles all configuration settings including database paths,
    connection settings and environment mode.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_version = DATABASE_VERSION

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_documents_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME

        self._db_timeout = _int_from_env("PCB_TRACKER_DB_TIMEOUT", DEFAULT_DB_TIMEOUT)
        self._db_pool_size = _int_from_env("PCB_TRACKER_DB_POOL_SIZE", DEFAULT_DB_POOL_SIZE)
        self._db_pool_recycle = _int_from_env(
            "PCB_TRACKER_DB_POOL_RECYCLE", DEFAULT_DB_POOL_RECYCLE
        )
        self._database_type = self._read_database_type()
        self._log_level = self._read_log_level()

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def _get_user_documents_dir(self) -> Path:
        """
        Get the user's Documents directory for production.

        Returns:
            Path to user's Documents folder with app subdirectory
        """
        return Path.home() / "Documents" / "PCBTracker"

    def _read_database_type(self) -> str:
        raw = os.environ.get("PCB_TRACKER_DB_TYPE", "sqlite")
        db_type = raw.strip().lower()
        if db_type not in VALID_DB_TYPES:
            logger.warning(f"Invalid PCB_TRACKER_DB_TYPE={raw!r}; using sqlite")
            return "sqlite"
        return db_type

    def _read_log_level(self) -> str:
        raw = os.environ.get("PCB_TRACKER_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        level = raw.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            logger.warning(f"Invalid PCB_TRACKER_LOG_LEVEL={raw!r}; using {DEFAULT_LOG_LEVEL}")
            return DEFAULT_LOG_LEVEL
        return level

    def ensure_directories(self) -> None:
        """Create the SQLite data directory if it doesn't exist."""
        if self._database_type == "sqlite":
            self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def database_version(self) -> str:
        """Database schema version."""
        return self._database_version

    @property
    def database_type(self) -> str:
        """Database backend: 'sqlite' or 'postgresql'."""
        return self._database_type

    @property
    def database_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            Database URL string for SQLAlchemy

        Raises:
            ValueError: If database_type is postgresql and DATABASE_URL is unset
        """
        if self._database_type == "postgresql":
            url = os.environ.get("DATABASE_URL")
            if not url:
                raise ValueError("DATABASE_URL must be set when PCB_TRACKER_DB_TYPE=postgresql")
            return url

        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def db_timeout(self) -> int:
        """Seconds to wait on a locked database before failing."""
        return self._db_timeout

    @property
    def db_pool_size(self) -> int:
        """Connection pool size (PostgreSQL only)."""
        return self._db_pool_size

    @property
    def db_pool_recycle(self) -> int:
        """Seconds before a pooled connection is recycled (PostgreSQL only)."""
        return self._db_pool_recycle

    @property
    def db_connect_args(self) -> Dict[str, Any]:
        """DBAPI connect() keyword arguments for the configured backend."""
        if self._database_type == "sqlite":
            return {"check_same_thread": False, "timeout": self._db_timeout}
        return {}

    @property
    def log_level(self) -> str:
        """Root logging level name."""
        return self._log_level

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if the SQLite database file exists.

        Returns:
            True if database file exists (always True for PostgreSQL)
        """
        if self._database_type == "postgresql":
            return True
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(environment='{self.environment}', "
            f"database_type='{self._database_type}', "
            f"database_path='{self._database_path}')"
        )


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    PCB_TRACKER_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get("PCB_TRACKER_ENV", "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton to prevent database switching."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """
    Get the database URL.

    Returns:
        SQLAlchemy database URL string
    """
    return get_config().database_url
