from dataclasses import dataclass, field
from typing import Iterable, List

from printstack.schemas.filament_schemas import Filament
from printstack.schemas.model_schemas import Model
from printstack.schemas.print_schemas import FilamentUsage, PrintRecord


def _same(a, b) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


def usage_references(usage: FilamentUsage, filament: Filament) -> bool:
    """True when a print usage consumed this filament.

    Matching is by id. Usages recorded before filament ids existed carry no
    id and fall back to colour + material.
    """
    if usage.filament_id is not None:
        return usage.filament_id == filament.id
    if not _same(usage.color, filament.color):
        return False
    return not usage.material_type or _same(usage.material_type, filament.material_type)


@dataclass
class ModelReference:
    model_id: int
    model_name: str
    count: int


@dataclass
class FilamentReferences:
    filament_id: int
    models: List[ModelReference] = field(default_factory=list)
    print_ids: List[int] = field(default_factory=list)

    @property
    def is_referenced(self) -> bool:
        return bool(self.models or self.print_ids)

    def summary(self) -> dict:
        return {
            "filamentId": self.filament_id,
            "models": [
                {"modelId": m.model_id, "modelName": m.model_name, "count": m.count}
                for m in self.models
            ],
            "printIds": list(self.print_ids),
        }


@dataclass
class DeletionDecision:
    allowed: bool
    references: FilamentReferences
    message: str


class ReferentialIntegrityGuard:
    """Decides whether a filament may be hard-deleted (ON DELETE RESTRICT).

    When references exist the only permitted change is soft retirement.
    """

    def find_references(
        self,
        filament: Filament,
        models: Iterable[Model],
        prints: Iterable[PrintRecord],
    ) -> FilamentReferences:
        refs = FilamentReferences(filament_id=filament.id)
        for model in models:
            count = sum(1 for r in model.requirements if r.filament_id == filament.id)
            if count:
                refs.models.append(ModelReference(model.id, model.name, count))
        for record in prints:
            if any(usage_references(u, filament) for u in record.filament_usages):
                refs.print_ids.append(record.id)
        return refs

    def decide(
        self,
        filament: Filament,
        models: Iterable[Model],
        prints: Iterable[PrintRecord],
    ) -> DeletionDecision:
        refs = self.find_references(filament, models, prints)
        if not refs.is_referenced:
            return DeletionDecision(True, refs, f"Delete {filament.label}?")
        return DeletionDecision(False, refs, self._blocked_message(filament, refs))

    @staticmethod
    def _blocked_message(filament: Filament, refs: FilamentReferences) -> str:
        lines = [f"Cannot delete {filament.label} - filament is referenced:"]
        if refs.models:
            lines.append(f"MODELS ({len(refs.models)}):")
            for ref in refs.models:
                plural = "s" if ref.count > 1 else ""
                lines.append(f"  - {ref.model_name} ({ref.count} reference{plural})")
        if refs.print_ids:
            lines.append(f"PRINT HISTORY ({len(refs.print_ids)} records)")
        lines.append('Mark it as "Out of Stock" instead?')
        return "\n".join(lines)
