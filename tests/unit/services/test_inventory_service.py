"""Tests for filament inventory operations and the delete guard."""

import datetime as dt

import pytest

from printstack.core.errors import (
    FieldValidationError,
    NotFoundError,
    ReferentialIntegrityError,
)
from printstack.schemas.filament_schemas import FilamentUpdate
from printstack.schemas.model_schemas import ModelCreate
from printstack.schemas.print_schemas import FilamentUsage, PrintCreate, PrintRecord, UsageInput
from printstack.services.integrity import ReferentialIntegrityGuard, usage_references


def edit_form(**overrides) -> FilamentUpdate:
    """An edit-filament form for the default test spool."""
    values = {
        "brand": "Prusament",
        "material_type": "PLA",
        "color": "Galaxy Black",
        "color_hex": "#1a1a1a",
        "weight": 1000,
        "diameter": 1.75,
    }
    values.update(overrides)
    return FilamentUpdate(**values)


# ============================================================================
# Adding and editing
# ============================================================================


class TestAddFilament:
    """Creating filaments from raw form values."""

    def test_creates_with_stamp_and_remaining_weight(self, inventory, add_filament):
        created = add_filament()
        assert created.id == 1
        assert created.remaining_weight == 1000.0
        assert created.purchase_date == "2024-05-15T12:00:00+00:00"
        assert inventory.store.blob_store.data  # saved

    def test_coerces_strings(self, add_filament):
        created = add_filament(
            weight="750", diameter="2.85", purchase_price="19.5",
            temperature={"min": "200", "max": "230"},
        )
        assert created.weight == 750.0
        assert created.diameter == 2.85
        assert created.purchase_price == 19.5
        assert created.temperature.min == 200
        assert created.temperature.max == 230

    def test_invalid_fields_raise_with_all_errors(self, inventory, filament_form):
        with pytest.raises(FieldValidationError) as exc:
            inventory.add_filament(filament_form(brand="", weight=0, color_hex="red"))
        assert set(exc.value.errors) == {"brand", "weight", "colorHex"}
        assert inventory.store.filaments == []

    def test_custom_material_type_joins_list(self, inventory, add_filament):
        created = add_filament(material_type="Other", custom_material_type=" Nylon ")
        assert created.material_type == "Nylon"
        assert "Nylon" in inventory.store.material_types

    def test_other_without_custom_name(self, inventory, filament_form):
        with pytest.raises(FieldValidationError) as exc:
            inventory.add_filament(filament_form(material_type="Other"))
        assert exc.value.errors == {"materialType": "Please enter the custom material type"}


class TestDuplicates:
    """Same brand, material and colour code."""

    def test_merge_when_confirmed(self, inventory, add_filament, filament_form):
        original = add_filament(notes="first roll")
        prompts = []

        def confirm(prompt):
            prompts.append(prompt)
            return True

        merged = inventory.add_filament(
            filament_form(brand="PRUSAMENT", color_hex="#1A1A1A", weight=500, notes="second roll"),
            confirm_action=confirm,
        )
        assert merged.id == original.id
        assert merged.weight == 1500.0
        assert merged.notes == "first roll; second roll"
        assert len(inventory.store.filaments) == 1
        assert "Duplicate filament detected" in prompts[0]

    def test_declined_merge_creates_separate_unit(self, inventory, add_filament):
        first = add_filament()
        second = add_filament()
        assert first.id != second.id
        assert len(inventory.store.filaments) == 2

    def test_different_color_is_not_duplicate(self, inventory, add_filament):
        add_filament()
        assert inventory.find_duplicate("Prusament", "PLA", "#ffffff") is None


class TestEditFilament:
    def test_edit_replaces_fields(self, inventory, add_filament, filament_form):
        created = add_filament()
        edited = inventory.edit_filament(created.id, filament_form(color="Jet Black", weight=900))
        assert edited.color == "Jet Black"
        assert edited.weight == 900.0
        assert edited.purchase_date == created.purchase_date
        assert edited.last_modified is not None

    def test_edit_missing_filament(self, inventory, filament_form):
        with pytest.raises(NotFoundError):
            inventory.edit_filament(42, filament_form())

    def test_set_in_stock_clears_block(self, inventory, add_filament):
        created = add_filament()
        assert inventory.set_in_stock(created.id, False).in_stock is False
        assert inventory.set_in_stock(created.id, True).deletion_blocked is False

    def test_edit_without_stock_flag_keeps_retired(self, inventory, add_filament, model_service):
        spool = add_filament()
        model_service.add_model(ModelCreate(name="Benchy", filament_ids=[spool.id]))
        inventory.delete_filament(spool.id, confirm_action=lambda prompt: True)

        edited = inventory.edit_filament(spool.id, edit_form(location="Shelf B"))
        assert edited.location == "Shelf B"
        assert edited.in_stock is False
        assert edited.deletion_blocked is True

    def test_edit_back_in_stock_clears_block(self, inventory, add_filament, model_service):
        spool = add_filament()
        model_service.add_model(ModelCreate(name="Benchy", filament_ids=[spool.id]))
        inventory.delete_filament(spool.id, confirm_action=lambda prompt: True)

        edited = inventory.edit_filament(spool.id, edit_form(in_stock=True))
        assert edited.in_stock is True
        assert edited.deletion_blocked is False


# ============================================================================
# Remaining weight
# ============================================================================


class TestRemainingWeight:
    """Remaining weight is derived from the print history."""

    def test_usages_reduce_remaining(self, inventory, add_filament, model_service, print_service):
        filament = add_filament()
        model = model_service.add_model(ModelCreate(name="Benchy", filament_ids=[filament.id]))
        for weight in (12.5, 7.5):
            print_service.record_print(
                PrintCreate(
                    model_id=model.id,
                    date=dt.date(2024, 5, 1),
                    usages=[UsageInput(filament_id=filament.id, actual_weight=weight)],
                )
            )
        assert inventory.remaining_weight(filament.id) == 980.0
        assert inventory.get_filament(filament.id).remaining_weight == 980.0
        # The stored weight is untouched
        assert inventory.store.get_filament(filament.id).weight == 1000.0


# ============================================================================
# Delete guard
# ============================================================================


class TestUsageReferences:
    def test_id_match(self, add_filament):
        filament = add_filament()
        assert usage_references(FilamentUsage(filament_id=filament.id), filament)
        assert not usage_references(FilamentUsage(filament_id=filament.id + 1), filament)

    def test_legacy_colour_fallback(self, add_filament):
        filament = add_filament()
        assert usage_references(FilamentUsage(color="galaxy black", material_type="pla"), filament)
        assert usage_references(FilamentUsage(color="Galaxy Black"), filament)
        assert not usage_references(FilamentUsage(color="Galaxy Black", material_type="PETG"), filament)


class TestDeleteFilament:
    """Hard delete only when nothing references the filament."""

    def test_unreferenced_is_deleted(self, inventory, add_filament):
        created = add_filament()
        outcome = inventory.delete_filament(created.id)
        assert outcome.status == "deleted"
        assert inventory.store.filaments == []

    def test_referenced_by_model_is_blocked(self, inventory, add_filament, model_service):
        created = add_filament()
        model_service.add_model(ModelCreate(name="Benchy", filament_ids=[created.id]))
        with pytest.raises(ReferentialIntegrityError) as exc:
            inventory.delete_filament(created.id)
        assert "Benchy" in exc.value.message
        assert exc.value.message.endswith('Mark it as "Out of Stock" instead?')
        assert exc.value.to_detail()["references"]["models"][0]["modelName"] == "Benchy"
        assert len(inventory.store.filaments) == 1

    def test_referenced_is_retired_when_confirmed(self, inventory, add_filament, model_service):
        created = add_filament()
        model_service.add_model(ModelCreate(name="Benchy", filament_ids=[created.id]))
        outcome = inventory.delete_filament(created.id, confirm_action=lambda prompt: True)
        assert outcome.status == "retired"
        retired = inventory.store.get_filament(created.id)
        assert retired.in_stock is False
        assert retired.deletion_blocked is True

    def test_print_history_counts(self, add_filament, inventory):
        filament = add_filament()
        prints = [
            PrintRecord(id=10, date=dt.date(2024, 1, 1),
                        filament_usages=[FilamentUsage(filament_id=filament.id, actual_weight=5)]),
            PrintRecord(id=11, date=dt.date(2024, 1, 2),
                        filament_usages=[FilamentUsage(color="Galaxy Black", actual_weight=5)]),
            PrintRecord(id=12, date=dt.date(2024, 1, 3),
                        filament_usages=[FilamentUsage(filament_id=99, actual_weight=5)]),
        ]
        decision = ReferentialIntegrityGuard().decide(filament, [], prints)
        assert not decision.allowed
        assert decision.references.print_ids == [10, 11]
        assert "PRINT HISTORY (2 records)" in decision.message


# ============================================================================
# Material types
# ============================================================================


class TestMaterialTypes:
    def test_list_reports_in_use(self, inventory, add_filament):
        add_filament(material_type="PETG")
        listing = inventory.list_material_types()
        assert listing.material_types == sorted(["PLA", "PETG", "ABS", "TPU"])
        assert listing.in_use == ["PETG"]

    def test_add_duplicate_rejected(self, inventory):
        with pytest.raises(FieldValidationError):
            inventory.add_material_type("PLA")
        assert "ASA" in inventory.add_material_type("ASA").material_types

    def test_remove_in_use_rejected(self, inventory, add_filament):
        add_filament()
        with pytest.raises(FieldValidationError):
            inventory.remove_material_type("PLA")
        assert "TPU" not in inventory.remove_material_type("TPU").material_types
