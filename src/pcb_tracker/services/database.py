"""
Database connection and session management for PCB Tracker.

This module provides:
- Database engine creation and configuration (SQLite or PostgreSQL)
- Session factory for database operations
- Transactional scope (session_scope) used by every service
- Database initialization (create tables)

Transaction isolation:
    Every mutating service call runs inside one session_scope(). On SQLite
    the engine issues ``BEGIN IMMEDIATE`` so write transactions serialize at
    BEGIN; a production's stock check and deduction can never interleave
    with another writer. On PostgreSQL the services lock component rows
    with SELECT ... FOR UPDATE instead.
"""

from typing import Optional
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session, close_all_sessions
from sqlalchemy.pool import StaticPool

from ..utils.config import get_config
from ..models.base import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def _configure_sqlite(engine: Engine) -> None:
    """
    Attach SQLite connection and transaction listeners to an engine.

    - Enables foreign key constraints (required for ON DELETE behavior)
    - Sets WAL journal mode and NORMAL synchronous mode
    - Takes over transaction control from pysqlite so every transaction
      starts with BEGIN IMMEDIATE (write lock acquired up front)
    """

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        # Stop pysqlite from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create and configure the database engine.

    Args:
        database_url: Optional database URL. If None, uses config default.
        echo: If True, log all SQL statements (useful for debugging)

    Returns:
        Configured SQLAlchemy Engine
    """
    config = get_config()
    if database_url is None:
        config.ensure_directories()
        database_url = config.database_url

    backend = make_url(database_url).get_backend_name()
    logger.info(f"Creating database engine: {backend}")

    if backend == "sqlite":
        if ":memory:" in database_url or "mode=memory" in database_url:
            # For in-memory databases (testing), use StaticPool
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args=config.db_connect_args,
            )
        _configure_sqlite(engine)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            pool_size=config.db_pool_size,
            pool_recycle=config.db_pool_recycle,
            pool_pre_ping=True,
        )

    return engine


def init_database(engine: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Safe to call multiple times - existing tables won't be recreated.

    Args:
        engine: Optional engine to use. If None, uses global engine.
    """
    if engine is None:
        engine = get_engine()

    logger.info("Initializing database tables")

    # Import all models so they're registered with Base
    from .. import models  # noqa: F401

    Base.metadata.create_all(engine)

    logger.info("Database tables initialized successfully")


def get_engine(force_recreate: bool = False) -> Engine:
    """
    Get the global database engine.

    Args:
        force_recreate: If True, recreate the engine even if one exists

    Returns:
        Database engine
    """
    global _engine

    if _engine is None or force_recreate:
        _engine = create_database_engine()

    return _engine


def get_session_factory() -> sessionmaker:
    """
    Get the global session factory.

    Returns:
        Session factory (sessionmaker)
    """
    global _SessionFactory

    if _SessionFactory is None:
        engine = get_engine()
        _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    return _SessionFactory


def get_session() -> Session:
    """
    Create a new database session.

    Returns:
        New Session instance
    """
    session_factory = get_session_factory()
    return session_factory()


@contextmanager
def session_scope():
    """
    Provide a transactional scope for database operations.

    - Creates a new session
    - Commits on success
    - Rolls back on exception
    - Always closes the session (discarding anything uncommitted)

    Yields:
        Database session

    Example:
        with session_scope() as session:
            component = Component(name="LED", part_number="LED-5MM-R", ...)
            session.add(component)
            # Commit happens automatically if no exception
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def verify_database() -> bool:
    """
    Verify that the database is accessible and has tables.

    Returns:
        True if database is valid, False otherwise
    """
    try:
        engine = get_engine()
        tables = inspect(engine).get_table_names()
        expected_tables = ["components", "pcbs", "production_entries"]
        return all(table in tables for table in expected_tables)
    except Exception as e:
        logger.error(f"Database verification failed: {e}")
        return False


def reset_database(confirm: bool = False) -> None:
    """
    Drop all tables and recreate the database.

    WARNING: This will delete all data!

    Args:
        confirm: Must be True to actually reset. Safety check.

    Raises:
        ValueError: If confirm is not True
    """
    if not confirm:
        raise ValueError("Must pass confirm=True to reset database. This will delete all data!")

    logger.warning("RESETTING DATABASE - ALL DATA WILL BE LOST")

    engine = get_engine()

    from .. import models  # noqa: F401

    Base.metadata.drop_all(engine)
    logger.info("All tables dropped")

    Base.metadata.create_all(engine)
    logger.info("Tables recreated")


def close_connections() -> None:
    """
    Close all database connections.

    Useful for cleanup or before application exit.
    """
    global _engine, _SessionFactory

    if _SessionFactory is not None:
        close_all_sessions()
        _SessionFactory = None

    if _engine is not None:
        _engine.dispose()
        _engine = None

    logger.info("Database connections closed")


def initialize_app_database() -> None:
    """
    Initialize the application database.

    Creates the database and tables if they don't exist.
    """
    config = get_config()

    if config.database_type == "sqlite":
        if not config.database_exists():
            logger.info(f"Creating new database at: {config.database_path}")
        else:
            logger.info(f"Using existing database at: {config.database_path}")

    engine = get_engine()
    init_database(engine)

    if verify_database():
        logger.info("Database initialized and verified successfully")
    else:
        logger.warning("Database verification failed - tables may not exist")
