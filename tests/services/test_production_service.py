"""Tests for the production service (atomic production entries and reversal)."""

import logging
from datetime import date

import pytest

from pcb_tracker.models import ConsumptionHistory, ProcurementTrigger, ProductionEntry
from pcb_tracker.services import (
    bom_service,
    component_service,
    pcb_service,
    procurement_service,
    production_service,
    stock_ledger_service,
)
from pcb_tracker.services.database import session_scope
from pcb_tracker.services.dto import PaginationParams
from pcb_tracker.services.exceptions import (
    EmptyBOMError,
    InsufficientStockError,
    PCBNotFound,
    ProductionEntryNotFound,
    ValidationError,
)


def _stock(component_id):
    return stock_ledger_service.get_current_stock(component_id)


def _count(model):
    with session_scope() as session:
        return session.query(model).count()


class TestCreateProductionEntry:
    """Tests for create_production_entry."""

    def test_sufficient_stock_deducts_every_component(self, blinker_pcb, led, resistor):
        """Producing 3 Blinkers takes 15 LEDs and 15 resistors."""
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)

        assert _stock(led["id"]) == 5
        assert _stock(resistor["id"]) == 5

        entry = result["production_entry"]
        assert entry["pcb_id"] == blinker_pcb["id"]
        assert entry["quantity_produced"] == 3
        assert entry["pcb_name"] == "Blinker"
        assert entry["user_id"] == 1
        assert result["total_components_updated"] == 2

    def test_consumption_records_hold_before_and_after(self, blinker_pcb, led, resistor):
        """Each consumed component gets one ledger row with stock 20 -> 5."""
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)

        records = result["consumption_records"]
        assert len(records) == 2
        for record in records:
            assert record["quantity_consumed"] == 15
            assert record["stock_before"] == 20
            assert record["stock_after"] == 5
            assert record["production_entry_id"] == result["production_entry"]["id"]
        assert {r["component_id"] for r in records} == {led["id"], resistor["id"]}

    def test_insufficient_stock_aborts_without_writes(self, blinker_pcb, led, resistor):
        """Producing 5 needs 25 LEDs; nothing is written."""
        with pytest.raises(InsufficientStockError) as exc_info:
            production_service.create_production_entry(blinker_pcb["id"], 5, user_id=1)

        shortages = exc_info.value.shortages
        assert len(shortages) == 2
        led_shortage = next(s for s in shortages if s["component_id"] == led["id"])
        assert led_shortage == {
            "component_id": led["id"],
            "component_name": "LED 5mm Red",
            "part_number": "LED-5MM-R",
            "required": 25,
            "available": 20,
            "shortage": 5,
        }

        assert _stock(led["id"]) == 20
        assert _stock(resistor["id"]) == 20
        assert _count(ProductionEntry) == 0
        assert _count(ConsumptionHistory) == 0
        assert _count(ProcurementTrigger) == 0

    def test_shortage_on_one_component_blocks_the_others(self, test_db, led, resistor):
        """A single short line stops deduction of the lines that had enough."""
        pcb = pcb_service.create_pcb(name="Mixed", code="MIX-01")
        bom_service.add_bom_line(pcb["id"], led["id"], 1)
        bom_service.add_bom_line(pcb["id"], resistor["id"], 30)

        with pytest.raises(InsufficientStockError) as exc_info:
            production_service.create_production_entry(pcb["id"], 1, user_id=1)

        assert [s["part_number"] for s in exc_info.value.shortages] == ["RES-330R"]
        assert _stock(led["id"]) == 20
        assert _stock(resistor["id"]) == 20

    def test_exact_stock_is_sufficient(self, test_db, led):
        """Consuming the whole stock leaves zero, never negative."""
        pcb = pcb_service.create_pcb(name="Exact", code="EX-01")
        bom_service.add_bom_line(pcb["id"], led["id"], 10)

        production_service.create_production_entry(pcb["id"], 2, user_id=1)

        assert _stock(led["id"]) == 0

    def test_empty_bom_raises(self, test_db):
        """A PCB without BOM lines cannot be produced."""
        pcb = pcb_service.create_pcb(name="Bare", code="BARE-01")

        with pytest.raises(EmptyBOMError):
            production_service.create_production_entry(pcb["id"], 1, user_id=1)

        assert _count(ProductionEntry) == 0

    def test_unknown_pcb_raises(self, test_db):
        with pytest.raises(PCBNotFound):
            production_service.create_production_entry(999, 1, user_id=1)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "3", True, None])
    def test_invalid_quantity_raises_validation_error(self, blinker_pcb, quantity):
        """quantity_produced must be a positive integer."""
        with pytest.raises(ValidationError):
            production_service.create_production_entry(blinker_pcb["id"], quantity, user_id=1)

        assert _count(ProductionEntry) == 0

    def test_zero_quantity_lines_are_skipped(self, test_db, led, resistor):
        """A BOM line with quantity 0 writes no ledger row and keeps its stock."""
        pcb = pcb_service.create_pcb(name="Optional Part", code="OPT-01")
        bom_service.add_bom_line(pcb["id"], led["id"], 2)
        bom_service.add_bom_line(pcb["id"], resistor["id"], 0)

        result = production_service.create_production_entry(pcb["id"], 1, user_id=1)

        assert result["total_components_updated"] == 1
        assert [r["component_id"] for r in result["consumption_records"]] == [led["id"]]
        assert _stock(resistor["id"]) == 20

    def test_production_date_and_notes_are_stored(self, blinker_pcb):
        result = production_service.create_production_entry(
            blinker_pcb["id"], 1, user_id=7, production_date=date(2026, 3, 14), notes="Batch A"
        )

        entry = result["production_entry"]
        assert entry["production_date"] == "2026-03-14"
        assert entry["notes"] == "Batch A"

    def test_production_date_accepts_iso_string(self, blinker_pcb):
        result = production_service.create_production_entry(
            blinker_pcb["id"], 1, user_id=1, production_date="2026-03-14"
        )

        assert result["production_entry"]["production_date"] == "2026-03-14"

    def test_bad_production_date_raises_validation_error(self, blinker_pcb):
        with pytest.raises(ValidationError):
            production_service.create_production_entry(
                blinker_pcb["id"], 1, user_id=1, production_date="14/03/2026"
            )

    def test_uses_caller_session(self, blinker_pcb, led):
        """With a caller session, the entry is part of the caller's transaction."""
        with session_scope() as session:
            result = production_service.create_production_entry(
                blinker_pcb["id"], 1, user_id=1, session=session
            )
            assert session.get(ProductionEntry, result["production_entry"]["id"]) is not None

        assert _stock(led["id"]) == 15


class TestAtomicity:
    """A failure anywhere in the unit leaves no partial effects."""

    def test_failure_after_first_deduction_rolls_back_everything(
        self, blinker_pcb, led, resistor, monkeypatch
    ):
        """An error during trigger evaluation undoes stock, ledger and entry."""

        def exploding_evaluate(*args, **kwargs):
            raise RuntimeError("simulated crash")

        monkeypatch.setattr(procurement_service, "evaluate", exploding_evaluate)

        with pytest.raises(RuntimeError):
            production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)

        assert _stock(led["id"]) == 20
        assert _stock(resistor["id"]) == 20
        assert _count(ProductionEntry) == 0
        assert _count(ConsumptionHistory) == 0
        assert _count(ProcurementTrigger) == 0

    def test_failed_second_deduction_restores_first(
        self, blinker_pcb, led, resistor, monkeypatch
    ):
        """If the second deduction fails, the first component is untouched."""
        real_deduct = stock_ledger_service.deduct
        calls = []

        def deduct_then_fail(component_id, quantity, session):
            calls.append(component_id)
            if len(calls) == 2:
                raise InsufficientStockError(
                    [
                        {
                            "component_id": component_id,
                            "component_name": "Resistor 330R",
                            "part_number": "RES-330R",
                            "required": quantity,
                            "available": 0,
                            "shortage": quantity,
                        }
                    ]
                )
            return real_deduct(component_id, quantity, session)

        monkeypatch.setattr(stock_ledger_service, "deduct", deduct_then_fail)

        with pytest.raises(InsufficientStockError):
            production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)

        assert len(calls) == 2
        assert _stock(led["id"]) == 20
        assert _stock(resistor["id"]) == 20
        assert _count(ConsumptionHistory) == 0


class TestConservation:
    """Stock + total consumed is invariant across productions."""

    def test_stock_plus_consumed_equals_initial(self, blinker_pcb, led, resistor):
        production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)
        production_service.create_production_entry(blinker_pcb["id"], 2, user_id=1)

        consumed = {}
        with session_scope() as session:
            for component in (led, resistor):
                consumed[component["id"]] = sum(
                    r.quantity_consumed
                    for r in session.query(ConsumptionHistory).filter_by(
                        component_id=component["id"]
                    )
                )

        for component_id, total in consumed.items():
            assert _stock(component_id) + total == 20

    def test_history_chain_is_consistent(self, blinker_pcb, led):
        """Each row's stock_before is the previous row's stock_after."""
        production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)
        production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)

        with session_scope() as session:
            rows = (
                session.query(ConsumptionHistory)
                .filter_by(component_id=led["id"])
                .order_by(ConsumptionHistory.id)
                .all()
            )
            assert [(r.stock_before, r.stock_after) for r in rows] == [(20, 15), (15, 10)]


class TestDeleteProductionEntry:
    """Tests for delete_production_entry (reversal)."""

    def test_revert_restores_stock(self, blinker_pcb, led, resistor):
        """Reverting the 3-board run adds 15 back to each component."""
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)
        entry_id = result["production_entry"]["id"]

        deleted = production_service.delete_production_entry(entry_id)

        assert _stock(led["id"]) == 20
        assert _stock(resistor["id"]) == 20
        assert deleted["production_entry"]["id"] == entry_id
        restored = {r["component_id"]: r for r in deleted["restored_components"]}
        assert restored[led["id"]]["quantity_restored"] == 15
        assert restored[led["id"]]["stock_before"] == 5
        assert restored[led["id"]]["stock_after"] == 20

    def test_revert_removes_entry_and_history(self, blinker_pcb):
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)

        production_service.delete_production_entry(result["production_entry"]["id"])

        assert _count(ProductionEntry) == 0
        assert _count(ConsumptionHistory) == 0

    def test_revert_adds_to_current_stock(self, blinker_pcb, led):
        """Restoration adds to the stock at revert time, not the historical value."""
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)
        component_service.receive_stock(led["id"], 100)

        production_service.delete_production_entry(result["production_entry"]["id"])

        assert _stock(led["id"]) == 120

    def test_revert_only_touches_its_own_entry(self, blinker_pcb, led):
        first = production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)
        production_service.create_production_entry(blinker_pcb["id"], 2, user_id=1)

        production_service.delete_production_entry(first["production_entry"]["id"])

        assert _stock(led["id"]) == 10
        assert _count(ProductionEntry) == 1
        assert _count(ConsumptionHistory) == 2

    def test_revert_keeps_triggers(self, blinker_pcb, led):
        """Triggers raised by a run survive its reversal."""
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)
        assert len(result["triggers_created"]) == 1

        production_service.delete_production_entry(result["production_entry"]["id"])

        assert _count(ProcurementTrigger) == 1

    def test_missing_entry_raises(self, test_db):
        with pytest.raises(ProductionEntryNotFound):
            production_service.delete_production_entry(999)

    def test_second_revert_of_same_entry_raises(self, blinker_pcb, led):
        result = production_service.create_production_entry(blinker_pcb["id"], 3, user_id=1)
        entry_id = result["production_entry"]["id"]
        production_service.delete_production_entry(entry_id)

        with pytest.raises(ProductionEntryNotFound):
            production_service.delete_production_entry(entry_id)

        assert _stock(led["id"]) == 20

    def test_revert_entry_without_history(self, led):
        """An entry whose BOM lines are all zero-quantity owns no ledger rows."""
        pcb = pcb_service.create_pcb(name="Jumper Board", code="JMP-01")
        bom_service.add_bom_line(pcb["id"], led["id"], 0)
        result = production_service.create_production_entry(pcb["id"], 2, user_id=1)
        assert result["consumption_records"] == []

        deleted = production_service.delete_production_entry(result["production_entry"]["id"])

        assert deleted["restored_components"] == []
        assert deleted["production_entry"]["id"] == result["production_entry"]["id"]
        assert _stock(led["id"]) == 20
        assert _count(ProductionEntry) == 0


class TestPreviewProduction:
    """Tests for preview_production (read-only)."""

    def test_preview_reports_requirements(self, blinker_pcb, led):
        preview = production_service.preview_production(blinker_pcb["id"], 3)

        assert preview["can_produce"] is True
        assert preview["total_components"] == 2
        assert preview["insufficient_components"] == []
        led_line = preview["components"][0]
        assert led_line["component_name"] == "LED 5mm Red"
        assert led_line["total_required"] == 15
        assert led_line["current_stock"] == 20
        assert led_line["stock_after"] == 5
        assert led_line["sufficient_stock"] is True

    def test_preview_lists_shortages(self, blinker_pcb):
        preview = production_service.preview_production(blinker_pcb["id"], 5)

        assert preview["can_produce"] is False
        assert {s["shortage"] for s in preview["insufficient_components"]} == {5}

    def test_preview_writes_nothing(self, blinker_pcb, led):
        production_service.preview_production(blinker_pcb["id"], 3)

        assert _stock(led["id"]) == 20
        assert _count(ProductionEntry) == 0
        assert _count(ProcurementTrigger) == 0

    def test_preview_is_ordered_by_component_name(self, blinker_pcb):
        preview = production_service.preview_production(blinker_pcb["id"], 1)

        names = [c["component_name"] for c in preview["components"]]
        assert names == sorted(names)


class TestProductionHistory:
    """Tests for get_production_entries and get_production_entry."""

    def test_entries_newest_first(self, blinker_pcb):
        production_service.create_production_entry(
            blinker_pcb["id"], 1, user_id=1, production_date=date(2026, 1, 1)
        )
        production_service.create_production_entry(
            blinker_pcb["id"], 1, user_id=1, production_date=date(2026, 2, 1)
        )

        result = production_service.get_production_entries()

        assert result.total == 2
        assert [e["production_date"] for e in result.items] == ["2026-02-01", "2026-01-01"]
        assert result.items[0]["pcb_code"] == "BLK-01"

    def test_entries_filter_by_date_range(self, blinker_pcb):
        for month in (1, 2, 3):
            production_service.create_production_entry(
                blinker_pcb["id"], 1, user_id=1, production_date=date(2026, month, 10)
            )

        result = production_service.get_production_entries(
            start_date=date(2026, 2, 1), end_date=date(2026, 2, 28)
        )

        assert [e["production_date"] for e in result.items] == ["2026-02-10"]

    def test_entries_paginate(self, blinker_pcb):
        for _ in range(3):
            production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)

        result = production_service.get_production_entries(
            pagination=PaginationParams(page=2, per_page=2)
        )

        assert result.total == 3
        assert len(result.items) == 1
        assert result.pages == 2
        assert result.to_dict()["pagination"] == {
            "page": 2,
            "limit": 2,
            "total": 3,
            "total_pages": 2,
        }

    def test_get_entry_includes_consumption(self, blinker_pcb):
        created = production_service.create_production_entry(blinker_pcb["id"], 2, user_id=1)

        entry = production_service.get_production_entry(created["production_entry"]["id"])

        assert entry["pcb_name"] == "Blinker"
        assert len(entry["consumption_records"]) == 2
        assert {r["part_number"] for r in entry["consumption_records"]} == {
            "LED-5MM-R",
            "RES-330R",
        }

    def test_get_missing_entry_raises(self, test_db):
        with pytest.raises(ProductionEntryNotFound):
            production_service.get_production_entry(42)


class TestProductionLogging:
    """Production emits structured log entries."""

    def test_success_is_logged(self, blinker_pcb, caplog):
        with caplog.at_level(logging.INFO, logger="pcb_tracker.services"):
            production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)

        assert "create_production_entry: success" in caplog.text

    def test_phases_logged_at_debug(self, blinker_pcb, caplog):
        with caplog.at_level(logging.DEBUG, logger="pcb_tracker.services"):
            production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)

        for phase in ("STARTED", "BOM_RESOLVED", "STOCK_VALIDATED", "COMMITTED"):
            assert f"create_production_entry: {phase}" in caplog.text

    def test_shortage_is_logged_as_warning(self, blinker_pcb, caplog):
        with caplog.at_level(logging.DEBUG, logger="pcb_tracker.services"):
            with pytest.raises(InsufficientStockError):
                production_service.create_production_entry(blinker_pcb["id"], 5, user_id=1)

        assert "create_production_entry: ABORTED" in caplog.text
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any(getattr(r, "outcome", None) == "insufficient_stock" for r in warnings)
