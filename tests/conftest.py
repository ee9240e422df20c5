"""Pytest configuration and fixtures for service layer tests."""

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker, scoped_session

from pcb_tracker.models.base import Base
from pcb_tracker.services.database import create_database_engine
from pcb_tracker.utils.config import reset_config


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database with the application's engine
       settings (foreign keys, BEGIN IMMEDIATE)
    2. Creates all tables
    3. Points the service layer's session factory at it
    4. Drops all tables after the test completes
    """
    engine = create_database_engine("sqlite:///:memory:")

    # Import all models so they're registered with Base
    from pcb_tracker import models  # noqa: F401

    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import pcb_tracker.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session
    reset_config()


@pytest.fixture(scope="function")
def led(test_db):
    """LED 5mm Red: stock 20, monthly requirement 100 (ratio 0.20, not low)."""
    from pcb_tracker.services import component_service

    return component_service.create_component(
        name="LED 5mm Red",
        part_number="LED-5MM-R",
        monthly_required_quantity=100,
        current_stock=20,
        category="Optoelectronics",
        unit_price=Decimal("0.0500"),
    )


@pytest.fixture(scope="function")
def resistor(test_db):
    """Resistor 330R: stock 20, monthly requirement 10 (well stocked)."""
    from pcb_tracker.services import component_service

    return component_service.create_component(
        name="Resistor 330R",
        part_number="RES-330R",
        monthly_required_quantity=10,
        current_stock=20,
        category="Passive",
        unit_price=Decimal("0.0100"),
    )


@pytest.fixture(scope="function")
def blinker_pcb(test_db, led, resistor):
    """PCB "Blinker" with BOM {LED x5, Resistor x5}."""
    from pcb_tracker.services import bom_service, pcb_service

    pcb = pcb_service.create_pcb(name="Blinker", code="BLK-01", description="LED blinker")
    bom_service.add_bom_line(pcb["id"], led["id"], 5)
    bom_service.add_bom_line(pcb["id"], resistor["id"], 5)
    return pcb
