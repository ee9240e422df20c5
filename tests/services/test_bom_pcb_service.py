"""Tests for PCB and BOM management."""

from decimal import Decimal

import pytest

from pcb_tracker.services import bom_service, pcb_service, production_service
from pcb_tracker.services.exceptions import (
    BOMLineNotFound,
    ComponentNotFound,
    DuplicateBOMLine,
    DuplicatePCBCode,
    EmptyBOMError,
    PCBInUse,
    PCBNotFound,
    ValidationError,
)


class TestResolveBOM:
    """Tests for bom_service.resolve_bom."""

    def test_lines_ordered_by_component_name(self, blinker_pcb):
        lines = bom_service.resolve_bom(blinker_pcb["id"])

        assert [line.component_name for line in lines] == ["LED 5mm Red", "Resistor 330R"]
        assert all(line.quantity_per_pcb == 5 for line in lines)
        assert lines[0].monthly_required_quantity == 100

    def test_unknown_pcb(self, test_db):
        with pytest.raises(PCBNotFound):
            bom_service.resolve_bom(123)

    def test_empty_bom(self, test_db):
        pcb = pcb_service.create_pcb(name="Bare", code="BARE-01")

        with pytest.raises(EmptyBOMError):
            bom_service.resolve_bom(pcb["id"])

    def test_line_to_dict(self, blinker_pcb):
        line = bom_service.resolve_bom(blinker_pcb["id"])[0]

        data = line.to_dict()
        assert data["part_number"] == "LED-5MM-R"
        assert data["unit_price"] == "0.0500"


class TestBOMMaintenance:
    """Tests for add/update/remove BOM lines."""

    def test_duplicate_line_rejected(self, blinker_pcb, led):
        with pytest.raises(DuplicateBOMLine):
            bom_service.add_bom_line(blinker_pcb["id"], led["id"], 1)

    def test_add_line_unknown_component(self, test_db):
        pcb = pcb_service.create_pcb(name="Bare", code="BARE-01")

        with pytest.raises(ComponentNotFound):
            bom_service.add_bom_line(pcb["id"], 999, 1)

    def test_add_line_unknown_pcb(self, led):
        with pytest.raises(PCBNotFound):
            bom_service.add_bom_line(999, led["id"], 1)

    @pytest.mark.parametrize("quantity", [-1, 1.5, None])
    def test_add_line_rejects_bad_quantity(self, test_db, led, quantity):
        pcb = pcb_service.create_pcb(name="Bare", code="BARE-01")

        with pytest.raises(ValidationError):
            bom_service.add_bom_line(pcb["id"], led["id"], quantity)

    def test_update_line(self, blinker_pcb, led):
        line = bom_service.update_bom_line(blinker_pcb["id"], led["id"], 2)

        assert line["quantity_per_pcb"] == 2
        preview = production_service.preview_production(blinker_pcb["id"], 1)
        assert preview["components"][0]["total_required"] == 2

    def test_remove_line(self, blinker_pcb, led):
        bom_service.remove_bom_line(blinker_pcb["id"], led["id"])

        lines = bom_service.resolve_bom(blinker_pcb["id"])
        assert [line.part_number for line in lines] == ["RES-330R"]

    def test_remove_missing_line(self, blinker_pcb):
        with pytest.raises(BOMLineNotFound):
            bom_service.remove_bom_line(blinker_pcb["id"], 999)


class TestPCBService:
    """Tests for PCB CRUD."""

    def test_get_pcb_with_costs(self, blinker_pcb):
        pcb = pcb_service.get_pcb(blinker_pcb["id"])

        assert pcb["code"] == "BLK-01"
        assert [c["part_number"] for c in pcb["components"]] == ["LED-5MM-R", "RES-330R"]
        # 5 x 0.05 + 5 x 0.01
        assert Decimal(pcb["total_cost_per_pcb"]) == Decimal("0.30")
        assert Decimal(pcb["components"][0]["cost_per_pcb"]) == Decimal("0.25")

    def test_list_pcbs_counts_components(self, blinker_pcb):
        pcb_service.create_pcb(name="Bare", code="BARE-01")

        pcbs = pcb_service.list_pcbs()

        assert [(p["name"], p["component_count"]) for p in pcbs] == [
            ("Bare", 0),
            ("Blinker", 2),
        ]

    def test_duplicate_code(self, blinker_pcb):
        with pytest.raises(DuplicatePCBCode):
            pcb_service.create_pcb(name="Another", code="BLK-01")

    def test_missing_name_rejected(self, test_db):
        with pytest.raises(ValidationError):
            pcb_service.create_pcb(name="  ", code="X-01")

    def test_update_pcb(self, blinker_pcb):
        pcb = pcb_service.update_pcb(blinker_pcb["id"], {"name": "Blinker v2"})

        assert pcb["name"] == "Blinker v2"
        assert pcb["code"] == "BLK-01"

    def test_update_unknown_field_rejected(self, blinker_pcb):
        with pytest.raises(ValidationError):
            pcb_service.update_pcb(blinker_pcb["id"], {"stock": 5})

    def test_update_to_taken_code(self, blinker_pcb):
        other = pcb_service.create_pcb(name="Other", code="OTH-01")

        with pytest.raises(DuplicatePCBCode):
            pcb_service.update_pcb(other["id"], {"code": "BLK-01"})

    def test_update_strips_name_and_code(self, blinker_pcb):
        other = pcb_service.create_pcb(name="Other", code="OTH-01")

        with pytest.raises(DuplicatePCBCode):
            pcb_service.update_pcb(other["id"], {"code": " BLK-01  "})

        pcb = pcb_service.update_pcb(other["id"], {"name": " Other v2 ", "code": "OTH-02 "})
        assert (pcb["name"], pcb["code"]) == ("Other v2", "OTH-02")

    def test_create_with_padded_taken_code(self, blinker_pcb):
        with pytest.raises(DuplicatePCBCode):
            pcb_service.create_pcb(name="Another", code=" BLK-01")

    def test_delete_pcb_removes_bom(self, blinker_pcb):
        pcb_service.delete_pcb(blinker_pcb["id"])

        with pytest.raises(PCBNotFound):
            pcb_service.get_pcb(blinker_pcb["id"])

    def test_delete_pcb_with_production_refused(self, blinker_pcb):
        production_service.create_production_entry(blinker_pcb["id"], 1, user_id=1)

        with pytest.raises(PCBInUse) as exc_info:
            pcb_service.delete_pcb(blinker_pcb["id"])

        assert exc_info.value.dependencies == {"production entries": 1}
