import json
import logging
from typing import Any, Dict, List, Mapping, Union

from printstack.core.config import settings
from printstack.core.errors import ImportFormatError
from printstack.schemas.porting_schemas import ImportMode, ImportResult
from printstack.services.entity_store import EntityStore, dump_record

logger = logging.getLogger(__name__)

IMPORT_MODES = ("replace", "add")


class PortingService:
    """Export to and import from the JSON backup file."""

    def __init__(self, store: EntityStore):
        self.store = store

    def export(self) -> Dict[str, Any]:
        filaments = self.store.filaments
        return {
            "version": settings.data_version,
            "exportDate": self.store.clock().isoformat(),
            "application": settings.application_name,
            "data": {
                "filaments": [dump_record(f) for f in filaments],
                "models": [dump_record(m) for m in self.store.models],
                "prints": [dump_record(p) for p in self.store.prints],
            },
            "metadata": {
                "totalFilaments": len(filaments),
                "totalModels": len(self.store.models),
                "totalPrints": len(self.store.prints),
                "materialTypes": sorted({f.material_type for f in filaments}),
                "brands": sorted({f.brand for f in filaments}),
            },
        }

    def export_filename(self) -> str:
        return f"printstack-{self.store.clock().date().isoformat()}.json"

    def import_data(
        self, payload: Union[str, bytes, Mapping[str, Any]], mode: ImportMode
    ) -> ImportResult:
        """Import a backup in the enhanced or legacy format.

        Nothing changes if the payload cannot be parsed or holds no known
        collections. Malformed records are defaulted, not rejected.
        """
        if mode not in IMPORT_MODES:
            raise ImportFormatError(f"Unknown import mode '{mode}'")
        document = self._parse(payload)

        if document.get("version") and isinstance(document.get("data"), dict):
            source = document["data"]
            source_format = "enhanced"
            logger.info(
                f"Importing enhanced data from {document.get('application') or settings.application_name} "
                f"v{document['version']}"
            )
        else:
            source = document
            source_format = "legacy"
            logger.info("Importing legacy format data")

        raw = {key: self._collection(source, key) for key in ("filaments", "models", "prints")}
        if not any(raw.values()):
            raise ImportFormatError("No data found in file")

        result = ImportResult(mode=mode, source_format=source_format)
        replace = mode == "replace"
        current_filaments = self.store.filaments

        taken = [] if replace else [f.id for f in current_filaments]
        filaments, renumbered = self.store.build_records("filaments", raw["filaments"], taken)

        taken = [] if replace else [m.id for m in self.store.models]
        models, renumbered_models = self.store.build_records("models", raw["models"], taken)

        taken = [] if replace else [p.id for p in self.store.prints]
        prints, _ = self.store.build_records("prints", raw["prints"], taken)

        # Point imported references at renumbered filaments
        for model in models:
            for req in model.requirements:
                if req.filament_id in renumbered:
                    req.filament_id = renumbered[req.filament_id]
        for record in prints:
            if record.model_id in renumbered_models:
                record.model_id = renumbered_models[record.model_id]
            for usage in record.filament_usages:
                if usage.filament_id in renumbered:
                    usage.filament_id = renumbered[usage.filament_id]

        if filaments:
            new_filaments = filaments if replace else current_filaments + filaments
        else:
            new_filaments = current_filaments
        self._resolve_requirements(models, new_filaments)

        new_models = None
        if models:
            if replace:
                new_models = models
            else:
                new_models = self.store.models
                names = {m.name.lower() for m in new_models}
                for model in models:
                    if model.name.lower() in names:
                        result.models_skipped.append(model.name)
                        continue
                    names.add(model.name.lower())
                    new_models.append(model)

        new_prints = None
        if prints:
            new_prints = prints if replace else self.store.prints + prints

        self.store.replace_collections(
            filaments=new_filaments if filaments else None,
            models=new_models,
            prints=new_prints,
        )
        result.filaments_imported = len(filaments)
        result.models_imported = len(models) - len(result.models_skipped)
        result.prints_imported = len(prints)
        logger.info(
            f"Import ({mode}) applied: {result.filaments_imported} filaments, "
            f"{result.models_imported} models, {result.prints_imported} prints"
        )
        self.store.save()
        return result

    # Internal helpers

    @staticmethod
    def _parse(payload) -> Mapping[str, Any]:
        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ImportFormatError(f"Invalid data format: {str(e)}") from e
        if not isinstance(payload, Mapping):
            raise ImportFormatError("Invalid data format: expected a JSON object")
        return payload

    @staticmethod
    def _collection(source: Mapping[str, Any], key: str) -> List[Any]:
        value = source.get(key)
        return value if isinstance(value, list) else []

    @staticmethod
    def _resolve_requirements(models, filaments) -> None:
        """Fill in filament ids for requirements that only carry colour + material."""
        for model in models:
            for req in model.requirements:
                if req.filament_id is not None or not req.color or not req.material_type:
                    continue
                for f in filaments:
                    if (
                        f.in_stock
                        and f.color.strip().lower() == req.color.strip().lower()
                        and f.material_type.strip().lower() == req.material_type.strip().lower()
                    ):
                        req.filament_id = f.id
                        break
