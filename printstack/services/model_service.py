import logging
from typing import List, Optional, Tuple

from printstack.core.errors import FieldValidationError
from printstack.schemas.model_schemas import Model, ModelCreate, ModelResponse, Requirement
from printstack.services.entity_store import EntityStore
from printstack.services.validator import Validator, model_rules

logger = logging.getLogger(__name__)


class ModelService:
    def __init__(self, store: EntityStore):
        self.store = store
        self.validator = Validator(model_rules())

    def list_models(self) -> List[ModelResponse]:
        return [self._response(m) for m in self.store.models]

    def get_model(self, model_id: int) -> ModelResponse:
        return self._response(self.store.get_model(model_id))

    def can_print(self, model: Model) -> Tuple[bool, List[str]]:
        """A model is printable when every requirement has an in-stock filament."""
        if not model.requirements:
            return False, ["None defined"]
        in_stock_ids = {f.id for f in self.store.filaments if f.in_stock}
        missing = [
            f"{r.color} ({r.material_type})"
            for r in model.requirements
            if r.filament_id not in in_stock_ids
        ]
        return not missing, missing

    def printable_models(self) -> List[ModelResponse]:
        return [m for m in self.list_models() if m.can_print]

    def add_model(self, data: ModelCreate) -> ModelResponse:
        name, link, requirements = self._validated(data)
        model = Model(
            id=self.store.assign_id(), name=name, link=link, requirements=requirements
        )
        self.store.add_model(model)
        logger.info(f"Created model {model.id}: {model.name}")
        self.store.save()
        return self.get_model(model.id)

    def edit_model(self, model_id: int, data: ModelCreate) -> ModelResponse:
        current = self.store.get_model(model_id)
        name, link, requirements = self._validated(data, model_id=model_id)
        updated = current.model_copy(
            update={"name": name, "link": link, "requirements": requirements}
        )
        self.store.replace_model(updated)
        logger.info(f"Updated model {model_id}: {name}")
        self.store.save()
        return self.get_model(model_id)

    def delete_model(self, model_id: int) -> None:
        self.store.remove_model(model_id)
        logger.info(f"Deleted model {model_id}")
        self.store.save()

    # Internal helpers

    def _validated(
        self, data: ModelCreate, model_id: Optional[int] = None
    ) -> Tuple[str, Optional[str], List[Requirement]]:
        result = self.validator.validate_form({"name": data.name, "link": data.link})
        errors = dict(result.errors)

        name = (data.name or "").strip()
        if name and "name" not in errors:
            existing = self.store.find_model_by_name(name)
            if existing is not None and existing.id != model_id:
                errors["name"] = f'A model named "{existing.name}" already exists'

        requirements = []
        unknown = []
        for filament_id in data.filament_ids:
            filament = self.store.find_filament(filament_id)
            if filament is None:
                unknown.append(str(filament_id))
                continue
            requirements.append(
                Requirement(
                    filament_id=filament.id,
                    material_type=filament.material_type,
                    color=filament.color,
                )
            )
        if unknown:
            errors["requirements"] = f"Unknown filament ids: {', '.join(unknown)}"
        elif not requirements:
            errors["requirements"] = "At least one filament required"

        if errors:
            raise FieldValidationError(errors)
        return name, (data.link or "").strip() or None, requirements

    def _response(self, model: Model) -> ModelResponse:
        printable, missing = self.can_print(model)
        return ModelResponse(
            **model.model_dump(), can_print=printable, missing_requirements=missing
        )
