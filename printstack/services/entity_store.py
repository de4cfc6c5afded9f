import datetime as dt
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from printstack.core.config import settings
from printstack.core.errors import NotFoundError, PersistenceError
from printstack.schemas.filament_schemas import Filament
from printstack.schemas.model_schemas import Model
from printstack.schemas.print_schemas import PrintRecord
from printstack.services.blob_store import BlobStore
from printstack.services.utils.migration import (
    ALLOWED_DIAMETERS,
    HEX_COLOR_RE,
    migrate_filament,
    migrate_model,
    migrate_print,
)

logger = logging.getLogger(__name__)

ENVELOPE_KEY = "printstackData"
FILAMENTS_KEY = "filaments"
MODELS_KEY = "models"
PRINTS_KEY = "prints"
MATERIAL_TYPES_KEY = "printStack_materialTypes"


def dump_record(record) -> dict:
    """JSON-ready dict using the persisted (camelCase) key names."""
    return record.model_dump(by_alias=True, exclude_none=True, mode="json")


def check_filament(filament: Filament) -> List[str]:
    """Return the structural problems of a filament (empty when valid)."""
    problems = []
    if not filament.brand or not filament.brand.strip():
        problems.append("missing brand")
    if not filament.material_type or not filament.material_type.strip():
        problems.append("missing materialType")
    if not filament.color or not filament.color.strip():
        problems.append("missing color")
    if not HEX_COLOR_RE.match(filament.color_hex or ""):
        problems.append("invalid colorHex")
    if filament.weight is None or filament.weight <= 0:
        problems.append("invalid weight")
    if filament.diameter not in ALLOWED_DIAMETERS:
        problems.append("invalid diameter")
    if filament.purchase_price is not None and filament.purchase_price < 0:
        problems.append("invalid purchasePrice")
    temp = filament.temperature
    if temp is not None:
        for bound in (temp.min, temp.max):
            if bound is not None and not 150 <= bound <= 350:
                problems.append("temperature out of range")
                break
        if temp.min is not None and temp.max is not None and temp.min >= temp.max:
            problems.append("temperature range invalid")
    return problems


class EntityStore:
    """Owns the filament, model and print collections.

    All reads hand out copies and all writes go through the mutators below,
    so the invariants live in one place.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ):
        self.blob_store = blob_store
        self.clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))
        self._filaments: List[Filament] = []
        self._models: List[Model] = []
        self._prints: List[PrintRecord] = []
        self._material_types: List[str] = list(settings.default_material_types)
        self._last_id = 0

    # Persistence

    def load(self) -> None:
        envelope = self._read_json(ENVELOPE_KEY)
        if isinstance(envelope, dict) and envelope.get("version"):
            raw_filaments = envelope.get("filaments") or []
            raw_models = envelope.get("models") or []
            raw_prints = envelope.get("prints") or []
            logger.info(f"Loading data envelope v{envelope.get('version')}")
        else:
            raw_filaments = self._read_json(FILAMENTS_KEY) or []
            raw_models = self._read_json(MODELS_KEY) or []
            raw_prints = self._read_json(PRINTS_KEY) or []
            logger.info("No data envelope found, loading legacy collections")

        self._last_id = 0
        self._filaments, _ = self.build_records("filaments", raw_filaments)
        self._models, _ = self.build_records("models", raw_models)
        self._prints, _ = self.build_records("prints", raw_prints)

        material_types = self._read_json(MATERIAL_TYPES_KEY)
        if isinstance(material_types, list) and all(
            isinstance(t, str) for t in material_types
        ):
            self._material_types = list(material_types)
        else:
            self._material_types = list(settings.default_material_types)

        logger.info(
            f"Loaded {len(self._filaments)} filaments, {len(self._models)} models, "
            f"{len(self._prints)} prints"
        )

    def save(self) -> None:
        """Validate filaments and flush everything to the blob store.

        Raises PersistenceError and writes nothing if a filament is invalid or
        the store rejects the write. In-memory state is left as it is.
        """
        invalid = [
            (f, problems)
            for f in self._filaments
            if (problems := check_filament(f))
        ]
        if invalid:
            details = "; ".join(
                f"{f.label} (id {f.id}): {', '.join(problems)}" for f, problems in invalid
            )
            logger.error(f"Filament data validation failed, not saving ({details})")
            raise PersistenceError(f"Invalid filament data: {details}")

        filaments = [dump_record(f) for f in self._filaments]
        models = [dump_record(m) for m in self._models]
        prints = [dump_record(p) for p in self._prints]
        envelope = {
            "filaments": filaments,
            "models": models,
            "prints": prints,
            "version": settings.data_version,
            "lastSaved": self.clock().isoformat(),
        }
        self.blob_store.set_many(
            {
                ENVELOPE_KEY: json.dumps(envelope),
                # Bare keys keep older readers working
                FILAMENTS_KEY: json.dumps(filaments),
                MODELS_KEY: json.dumps(models),
                PRINTS_KEY: json.dumps(prints),
                MATERIAL_TYPES_KEY: json.dumps(self._material_types),
            }
        )
        logger.debug("Saved data to blob store")

    def assign_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def _read_json(self, key: str):
        text = self.blob_store.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable blob '{key}': {str(e)}")
            return None

    def build_records(
        self, kind: str, raw_records: Any, taken_ids: Iterable[int] = ()
    ) -> Tuple[list, Dict[int, int]]:
        """Migrate raw JSON records of one collection into typed records.

        Records without a usable id, or whose id repeats within the batch or
        appears in ``taken_ids``, get a fresh id. Returns the records and a
        map of original id -> new id for the ones that were renumbered.
        """
        migrate, schema = self._migrations[kind]
        if not isinstance(raw_records, list):
            logger.warning(f"Expected a list of {kind}, got {type(raw_records).__name__}")
            return [], {}

        migrated = []
        for raw in raw_records:
            try:
                migrated.append(migrate(raw))
            except ValueError as e:
                logger.warning(f"Skipping malformed {schema.__name__} record: {str(e)}")

        for data in migrated:
            if data["id"] is not None:
                self._last_id = max(self._last_id, data["id"])

        taken = set(taken_ids)
        seen = set(taken)
        renumbered: Dict[int, int] = {}
        records = []
        for data in migrated:
            original = data["id"]
            if original is None or original in seen:
                data["id"] = self.assign_id()
                if original in taken:
                    renumbered.setdefault(original, data["id"])
            try:
                records.append(schema.model_validate(data))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {schema.__name__} record: {str(e)}")
                continue
            seen.add(data["id"])
        return records, renumbered

    @property
    def _migrations(self):
        today = self.clock().date()
        return {
            "filaments": (migrate_filament, Filament),
            "models": (migrate_model, Model),
            "prints": (lambda raw: migrate_print(raw, today), PrintRecord),
        }

    # Accessors

    @property
    def filaments(self) -> List[Filament]:
        return [f.model_copy(deep=True) for f in self._filaments]

    @property
    def models(self) -> List[Model]:
        return [m.model_copy(deep=True) for m in self._models]

    @property
    def prints(self) -> List[PrintRecord]:
        return [p.model_copy(deep=True) for p in self._prints]

    def get_filament(self, filament_id: int) -> Filament:
        return self._find(self._filaments, filament_id, "Filament").model_copy(deep=True)

    def find_filament(self, filament_id: Optional[int]) -> Optional[Filament]:
        for f in self._filaments:
            if f.id == filament_id:
                return f.model_copy(deep=True)
        return None

    def get_model(self, model_id: int) -> Model:
        return self._find(self._models, model_id, "Model").model_copy(deep=True)

    def find_model_by_name(self, name: str) -> Optional[Model]:
        wanted = name.strip().lower()
        for m in self._models:
            if m.name.lower() == wanted:
                return m.model_copy(deep=True)
        return None

    def get_print(self, print_id: int) -> PrintRecord:
        return self._find(self._prints, print_id, "Print").model_copy(deep=True)

    @staticmethod
    def _find(collection, record_id, kind):
        for record in collection:
            if record.id == record_id:
                return record
        raise NotFoundError(f"{kind} {record_id} not found")

    # Mutators

    def add_filament(self, filament: Filament) -> Filament:
        self._append(self._filaments, filament)
        return filament.model_copy(deep=True)

    def replace_filament(self, filament: Filament) -> None:
        self._replace(self._filaments, filament, "Filament")

    def remove_filament(self, filament_id: int) -> None:
        self._remove(self._filaments, filament_id, "Filament")

    def add_model(self, model: Model) -> Model:
        self._append(self._models, model)
        return model.model_copy(deep=True)

    def replace_model(self, model: Model) -> None:
        self._replace(self._models, model, "Model")

    def remove_model(self, model_id: int) -> None:
        self._remove(self._models, model_id, "Model")

    def add_print(self, record: PrintRecord) -> PrintRecord:
        self._append(self._prints, record)
        return record.model_copy(deep=True)

    def replace_print(self, record: PrintRecord) -> None:
        self._replace(self._prints, record, "Print")

    def remove_print(self, print_id: int) -> None:
        self._remove(self._prints, print_id, "Print")

    def replace_collections(
        self,
        filaments: Optional[List[Filament]] = None,
        models: Optional[List[Model]] = None,
        prints: Optional[List[PrintRecord]] = None,
    ) -> None:
        """Swap whole collections (None leaves a collection untouched)."""
        if filaments is not None:
            self._filaments = [f.model_copy(deep=True) for f in filaments]
        if models is not None:
            self._models = [m.model_copy(deep=True) for m in models]
        if prints is not None:
            self._prints = [p.model_copy(deep=True) for p in prints]
        for collection in (self._filaments, self._models, self._prints):
            for record in collection:
                self._last_id = max(self._last_id, record.id)

    def _append(self, collection: list, record) -> None:
        if any(existing.id == record.id for existing in collection):
            raise ValueError(f"Duplicate id {record.id}")
        self._last_id = max(self._last_id, record.id)
        collection.append(record.model_copy(deep=True))

    def _replace(self, collection: list, record, kind: str) -> None:
        for index, existing in enumerate(collection):
            if existing.id == record.id:
                collection[index] = record.model_copy(deep=True)
                return
        raise NotFoundError(f"{kind} {record.id} not found")

    def _remove(self, collection: list, record_id: int, kind: str) -> None:
        for index, existing in enumerate(collection):
            if existing.id == record_id:
                del collection[index]
                return
        raise NotFoundError(f"{kind} {record_id} not found")

    # Material types

    @property
    def material_types(self) -> List[str]:
        return list(self._material_types)

    def material_types_in_use(self) -> List[str]:
        return sorted(
            {f.material_type for f in self._filaments if f.material_type in self._material_types}
        )

    def add_material_type(self, name: str) -> bool:
        trimmed = (name or "").strip()
        if not trimmed or trimmed in self._material_types:
            return False
        self._material_types.append(trimmed)
        return True

    def remove_material_type(self, name: str) -> bool:
        if name not in self._material_types:
            return False
        if any(f.material_type == name for f in self._filaments):
            return False
        self._material_types.remove(name)
        return True
