import logging
from typing import Callable, Iterable, List, Optional

from printstack.core.errors import FieldValidationError, ReferentialIntegrityError
from printstack.schemas.filament_schemas import (
    DeleteOutcome,
    Filament,
    FilamentCreate,
    FilamentResponse,
    FilamentUpdate,
    MaterialTypeList,
)
from printstack.schemas.print_schemas import PrintRecord
from printstack.services.entity_store import EntityStore
from printstack.services.integrity import ReferentialIntegrityGuard, usage_references
from printstack.services.validator import CUSTOM_VALUE, Validator, filament_rules

logger = logging.getLogger(__name__)

ConfirmAction = Callable[[str], bool]


def never(prompt: str) -> bool:
    return False


def used_weight(filament: Filament, prints: Iterable[PrintRecord], exclude_print_id=None) -> float:
    return sum(
        usage.actual_weight or 0.0
        for record in prints
        if record.id != exclude_print_id
        for usage in record.filament_usages
        if usage_references(usage, filament)
    )


def remaining_weight(filament: Filament, prints: Iterable[PrintRecord], exclude_print_id=None) -> float:
    """Weight at acquisition minus everything the print history consumed."""
    return filament.weight - used_weight(filament, prints, exclude_print_id)


class InventoryService:
    def __init__(self, store: EntityStore):
        self.store = store
        self.guard = ReferentialIntegrityGuard()
        self.validator = Validator(filament_rules(lambda: self.store.material_types))

    # Queries

    def list_filaments(self) -> List[FilamentResponse]:
        prints = self.store.prints
        return [self._with_remaining(f, prints) for f in self.store.filaments]

    def get_filament(self, filament_id: int) -> FilamentResponse:
        return self._with_remaining(self.store.get_filament(filament_id), self.store.prints)

    def remaining_weight(self, filament_id: int) -> float:
        return remaining_weight(self.store.get_filament(filament_id), self.store.prints)

    def find_duplicate(self, brand: str, material_type: str, color_hex: str) -> Optional[Filament]:
        """Same brand, material and colour code, ignoring case."""
        key = (brand.lower(), material_type.lower(), color_hex.lower())
        for f in self.store.filaments:
            if (f.brand.lower(), f.material_type.lower(), f.color_hex.lower()) == key:
                return f
        return None

    # Commands

    def add_filament(
        self, data: FilamentCreate, confirm_action: ConfirmAction = never
    ) -> FilamentResponse:
        """Create a filament, or merge into a duplicate if the user agrees."""
        fields = self._validated_fields(data)
        duplicate = self.find_duplicate(fields["brand"], fields["material_type"], fields["color_hex"])
        if duplicate is not None:
            prompt = (
                f"Duplicate filament detected: {duplicate.label}. "
                "Merge quantities with the existing entry?"
            )
            if confirm_action(prompt):
                duplicate.weight += fields["weight"]
                if fields.get("notes"):
                    duplicate.notes = (
                        f"{duplicate.notes}; {fields['notes']}" if duplicate.notes else fields["notes"]
                    )
                duplicate.last_modified = self._now()
                self.store.replace_filament(duplicate)
                logger.info(f"Merged new stock into filament {duplicate.id}: {duplicate.weight:.1f}g total")
                self.store.save()
                return self.get_filament(duplicate.id)

        filament = Filament(
            id=self.store.assign_id(),
            purchase_date=self._now(),
            **fields,
        )
        self.store.add_filament(filament)
        logger.info(f"Created new filament {filament.id}: {filament.label}")
        self.store.save()
        return self.get_filament(filament.id)

    def edit_filament(self, filament_id: int, data: FilamentUpdate) -> FilamentResponse:
        current = self.store.get_filament(filament_id)
        fields = self._validated_fields(data)
        if fields["in_stock"] is None:
            fields["in_stock"] = current.in_stock
        if fields["in_stock"]:
            fields["deletion_blocked"] = False
        updated = Filament(**{**current.model_dump(), **fields, "last_modified": self._now()})
        self.store.replace_filament(updated)
        logger.info(f"Updated filament {filament_id}: {updated.label}")
        self.store.save()
        return self.get_filament(filament_id)

    def set_in_stock(self, filament_id: int, in_stock: bool) -> FilamentResponse:
        filament = self.store.get_filament(filament_id)
        filament.in_stock = in_stock
        if in_stock:
            filament.deletion_blocked = False
        filament.last_modified = self._now()
        self.store.replace_filament(filament)
        logger.info(f"Filament {filament_id} marked {'in' if in_stock else 'out of'} stock")
        self.store.save()
        return self.get_filament(filament_id)

    def delete_filament(
        self, filament_id: int, confirm_action: ConfirmAction = never
    ) -> DeleteOutcome:
        """Hard-delete an unreferenced filament.

        A referenced filament is never removed: with confirmation it is
        soft-retired (out of stock, deletion blocked), otherwise
        ReferentialIntegrityError is raised.
        """
        filament = self.store.get_filament(filament_id)
        decision = self.guard.decide(filament, self.store.models, self.store.prints)
        if decision.allowed:
            self.store.remove_filament(filament_id)
            logger.info(f"Deleted filament {filament_id}")
            self.store.save()
            return DeleteOutcome(id=filament_id, status="deleted", message="Filament deleted")

        if not confirm_action(decision.message):
            raise ReferentialIntegrityError(decision.message, decision.references)

        filament.in_stock = False
        filament.deletion_blocked = True
        filament.last_modified = self._now()
        self.store.replace_filament(filament)
        logger.warning(f"Filament {filament_id} is referenced, marked out of stock instead of deleting")
        self.store.save()
        return DeleteOutcome(
            id=filament_id,
            status="retired",
            message='Filament marked as "Out of Stock" instead of deletion',
        )

    # Material types

    def list_material_types(self) -> MaterialTypeList:
        return MaterialTypeList(
            material_types=sorted(self.store.material_types),
            in_use=self.store.material_types_in_use(),
        )

    def add_material_type(self, name: str) -> MaterialTypeList:
        if not (name or "").strip():
            raise FieldValidationError({"materialType": "Please enter a material type"})
        if not self.store.add_material_type(name):
            raise FieldValidationError({"materialType": f'Material type "{name.strip()}" already exists'})
        logger.info(f"Added material type {name.strip()}")
        self.store.save()
        return self.list_material_types()

    def remove_material_type(self, name: str) -> MaterialTypeList:
        if name not in self.store.material_types:
            raise FieldValidationError({"materialType": f'Unknown material type "{name}"'})
        if not self.store.remove_material_type(name):
            raise FieldValidationError(
                {"materialType": f'Cannot remove "{name}" - it is used by existing filaments'}
            )
        logger.info(f"Removed material type {name}")
        self.store.save()
        return self.list_material_types()

    # Internal helpers

    def _validated_fields(self, data: FilamentCreate) -> dict:
        temperature = None
        if data.temperature is not None and (
            data.temperature.min not in (None, "") or data.temperature.max not in (None, "")
        ):
            temperature = data.temperature.model_dump()

        raw = {
            "brand": data.brand.strip() if data.brand else data.brand,
            "materialType": data.material_type.strip() if data.material_type else data.material_type,
            "color": data.color.strip() if data.color else data.color,
            "colorHex": data.color_hex,
            "weight": data.weight,
            "diameter": data.diameter,
            "purchasePrice": data.purchase_price,
            "location": data.location.strip() if data.location else data.location,
            "temperature": temperature,
        }
        result = self.validator.validate_form(raw)
        material = result.values.get("materialType")
        if material == CUSTOM_VALUE:
            material = (data.custom_material_type or "").strip()
            if not material:
                result.valid = False
                result.errors["materialType"] = "Please enter the custom material type"
        if not result.valid:
            raise FieldValidationError(result.errors)

        if material not in self.store.material_types:
            # Custom types join the list so later edits validate
            self.store.add_material_type(material)

        values = result.values
        return {
            "brand": values["brand"],
            "material_type": material,
            "color": values["color"],
            "color_hex": values["colorHex"],
            "weight": float(values["weight"]),
            "diameter": float(values["diameter"]),
            "in_stock": data.in_stock,
            "purchase_price": (
                float(values["purchasePrice"]) if values.get("purchasePrice") is not None else None
            ),
            "location": values.get("location") or None,
            "temperature": (
                {"min": int(float(temperature["min"])), "max": int(float(temperature["max"]))}
                if temperature
                else None
            ),
            "notes": (data.notes or "").strip() or None,
        }

    def _with_remaining(self, filament: Filament, prints: List[PrintRecord]) -> FilamentResponse:
        return FilamentResponse(
            **filament.model_dump(), remaining_weight=remaining_weight(filament, prints)
        )

    def _now(self) -> str:
        return self.store.clock().isoformat()
