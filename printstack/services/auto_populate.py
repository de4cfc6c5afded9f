import logging
from typing import Iterable, List, Optional

from printstack.schemas.filament_schemas import Filament
from printstack.schemas.model_schemas import Model, Requirement
from printstack.schemas.print_schemas import PrefilledUsage

logger = logging.getLogger(__name__)


class AutoPopulateEngine:
    """Drafts the filament usages of a new print from a model's requirements."""

    def populate(self, model: Model, filaments: Iterable[Filament]) -> List[PrefilledUsage]:
        in_stock = [f for f in filaments if f.in_stock]
        usages = [self._resolve(req, in_stock) for req in model.requirements]
        unresolved = sum(1 for u in usages if not u.available)
        if unresolved:
            logger.warning(
                f"{unresolved} of {len(usages)} filaments for model '{model.name}' are not available"
            )
        return usages

    def _resolve(self, requirement: Requirement, in_stock: List[Filament]) -> PrefilledUsage:
        match = self._by_id(requirement.filament_id, in_stock)
        resolution = "id"
        if match is None:
            match = self._by_attributes(requirement, in_stock)
            resolution = "attributes"
        if match is None:
            return PrefilledUsage(
                filament_id=requirement.filament_id,
                material_type=requirement.material_type,
                color=requirement.color or None,
                resolution="unavailable",
                available=False,
            )
        return PrefilledUsage(
            filament_id=match.id,
            material_type=match.material_type,
            color=match.color,
            resolution=resolution,
            available=True,
        )

    @staticmethod
    def _by_id(filament_id: Optional[int], in_stock: List[Filament]) -> Optional[Filament]:
        if filament_id is None:
            return None
        for f in in_stock:
            if f.id == filament_id:
                return f
        return None

    @staticmethod
    def _by_attributes(requirement: Requirement, in_stock: List[Filament]) -> Optional[Filament]:
        material = requirement.material_type.strip().lower()
        color = requirement.color.strip().lower()
        if not material or not color:
            return None
        for f in in_stock:
            if f.material_type.strip().lower() == material and f.color.strip().lower() == color:
                return f
        return None
