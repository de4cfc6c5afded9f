"""Tests for model CRUD and printability."""

import pytest

from printstack.core.errors import FieldValidationError, NotFoundError
from printstack.schemas.model_schemas import ModelCreate, ModelUpdate


class TestModelService:
    """Creating, editing and deleting print models."""

    def test_add_copies_filament_attributes(self, model_service, add_filament):
        filament = add_filament(material_type="PETG", color="Blue", color_hex="#0000ff")
        model = model_service.add_model(
            ModelCreate(name=" Benchy ", link="https://example.com", filament_ids=[filament.id])
        )
        assert model.name == "Benchy"
        (req,) = model.requirements
        assert (req.filament_id, req.material_type, req.color) == (filament.id, "PETG", "Blue")
        assert model.can_print

    def test_requirements_cannot_be_empty(self, model_service):
        with pytest.raises(FieldValidationError) as exc:
            model_service.add_model(ModelCreate(name="Benchy"))
        assert exc.value.errors["requirements"] == "At least one filament required"

    def test_unknown_filament_rejected(self, model_service):
        with pytest.raises(FieldValidationError) as exc:
            model_service.add_model(ModelCreate(name="Benchy", filament_ids=[12]))
        assert "12" in exc.value.errors["requirements"]

    def test_name_required_and_unique(self, model_service, add_filament):
        filament = add_filament()
        model_service.add_model(ModelCreate(name="Benchy", filament_ids=[filament.id]))
        with pytest.raises(FieldValidationError) as exc:
            model_service.add_model(ModelCreate(name="benchy", filament_ids=[filament.id]))
        assert "already exists" in exc.value.errors["name"]
        with pytest.raises(FieldValidationError) as exc:
            model_service.add_model(ModelCreate(name="  ", filament_ids=[filament.id]))
        assert "name" in exc.value.errors

    def test_edit_keeps_own_name(self, model_service, add_filament):
        first = add_filament()
        second = add_filament(color="White", color_hex="#ffffff")
        model = model_service.add_model(ModelCreate(name="Benchy", filament_ids=[first.id]))
        edited = model_service.edit_model(
            model.id, ModelCreate(name="Benchy", filament_ids=[first.id, second.id])
        )
        assert len(edited.requirements) == 2

    def test_edit_cannot_drop_all_requirements(self, model_service, add_filament):
        filament = add_filament()
        model = model_service.add_model(ModelCreate(name="Benchy", filament_ids=[filament.id]))
        with pytest.raises(FieldValidationError) as exc:
            model_service.edit_model(model.id, ModelUpdate(name="Benchy", filament_ids=[]))
        assert exc.value.errors["requirements"] == "At least one filament required"
        (req,) = model_service.get_model(model.id).requirements
        assert req.filament_id == filament.id

    def test_delete(self, model_service, add_filament):
        filament = add_filament()
        model = model_service.add_model(ModelCreate(name="Benchy", filament_ids=[filament.id]))
        model_service.delete_model(model.id)
        with pytest.raises(NotFoundError):
            model_service.get_model(model.id)


class TestPrintability:
    """A model can print when every requirement has an in-stock filament."""

    def test_out_of_stock_requirement(self, model_service, inventory, add_filament):
        red = add_filament(color="Red", color_hex="#ff0000")
        blue = add_filament(color="Blue", color_hex="#0000ff")
        model = model_service.add_model(ModelCreate(name="Flag", filament_ids=[red.id, blue.id]))
        inventory.set_in_stock(blue.id, False)

        printable, missing = model_service.can_print(model_service.store.get_model(model.id))
        assert not printable
        assert missing == ["Blue (PLA)"]
        assert model_service.printable_models() == []

        inventory.set_in_stock(blue.id, True)
        assert [m.name for m in model_service.printable_models()] == ["Flag"]
