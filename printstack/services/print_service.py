import datetime as dt
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from printstack.core.errors import FieldValidationError, InsufficientInventoryWarning, NotFoundError
from printstack.schemas.print_schemas import (
    FilamentUsage,
    PrefilledUsage,
    PrintCreate,
    PrintRecord,
    UsageStats,
)
from printstack.services.auto_populate import AutoPopulateEngine
from printstack.services.entity_store import EntityStore
from printstack.services.inventory_service import remaining_weight
from printstack.services.validator import Validator, print_rules

logger = logging.getLogger(__name__)


class PrintService:
    def __init__(self, store: EntityStore):
        self.store = store
        self.auto_populate = AutoPopulateEngine()
        self.validator = Validator(print_rules(self.today))

    def today(self) -> dt.date:
        return self.store.clock().date()

    def list_prints(self) -> List[PrintRecord]:
        """Newest first."""
        return sorted(self.store.prints, key=lambda p: p.date, reverse=True)

    def get_print(self, print_id: int) -> PrintRecord:
        return self.store.get_print(print_id)

    def prefill(self, model_id: int) -> List[PrefilledUsage]:
        """Draft usages for a print of this model; replaces any earlier draft."""
        model = self.store.get_model(model_id)
        usages = self.auto_populate.populate(model, self.store.filaments)
        logger.info(f"Populated {len(usages)} required filaments for {model.name}")
        return usages

    def record_print(self, data: PrintCreate, allow_override: bool = False) -> PrintRecord:
        record = self._build(data, print_id=self.store.assign_id())
        self._check_stock(record, allow_override)
        self.store.add_print(record)
        logger.info(f"Recorded print {record.id} of {record.model_name}: {record.total_weight:.1f}g")
        self.store.save()
        return record

    def edit_print(
        self, print_id: int, data: PrintCreate, allow_override: bool = False
    ) -> PrintRecord:
        self.store.get_print(print_id)
        record = self._build(data, print_id=print_id)
        self._check_stock(record, allow_override)
        self.store.replace_print(record)
        logger.info(f"Updated print {print_id}")
        self.store.save()
        return record

    def delete_print(self, print_id: int) -> None:
        self.store.remove_print(print_id)
        logger.info(f"Deleted print {print_id}")
        self.store.save()

    def shortages(self, record: PrintRecord) -> List[dict]:
        """Filaments this print would drive below zero remaining weight."""
        requested: Dict[int, float] = defaultdict(float)
        for usage in record.filament_usages:
            if usage.filament_id is not None:
                requested[usage.filament_id] += usage.actual_weight or 0.0

        prints = self.store.prints
        result = []
        for filament_id, weight in requested.items():
            filament = self.store.find_filament(filament_id)
            if filament is None:
                continue
            available = remaining_weight(filament, prints, exclude_print_id=record.id)
            if weight > available:
                result.append(
                    {
                        "filamentId": filament_id,
                        "filament": filament.label,
                        "available": round(available, 1),
                        "requested": round(weight, 1),
                        "shortage": round(weight - available, 1),
                    }
                )
        return result

    def usage_stats(self) -> UsageStats:
        by_color: Dict[str, float] = defaultdict(float)
        by_model: Dict[str, Dict[str, float]] = {}
        total = 0.0
        prints = self.store.prints
        for record in prints:
            for usage in record.filament_usages:
                by_color[usage.color or "Unknown"] += usage.actual_weight or 0.0
            name = record.model_name or "Unknown"
            entry = by_model.setdefault(name, {"weight": 0.0, "prints": 0})
            entry["weight"] += record.total_weight
            entry["prints"] += 1
            total += record.total_weight
        return UsageStats(
            total_weight=total,
            total_prints=len(prints),
            by_color=dict(sorted(by_color.items(), key=lambda kv: kv[1], reverse=True)),
            by_model=dict(sorted(by_model.items(), key=lambda kv: kv[1]["weight"], reverse=True)),
        )

    # Internal helpers

    def _check_stock(self, record: PrintRecord, allow_override: bool) -> None:
        shortages = self.shortages(record)
        if not shortages:
            return
        summary = ", ".join(
            f"{s['filament']}: available {s['available']:.1f}g, requested {s['requested']:.1f}g"
            for s in shortages
        )
        if not allow_override:
            raise InsufficientInventoryWarning(f"Insufficient filament. {summary}", shortages)
        logger.warning(f"Recording print {record.id} with negative inventory ({summary})")

    def _build(self, data: PrintCreate, print_id: int) -> PrintRecord:
        errors: Dict[str, str] = {}

        model_name: Optional[str] = None
        if data.model_id is None:
            errors["modelId"] = "Please select a model"
        else:
            try:
                model_name = self.store.get_model(data.model_id).name
            except NotFoundError:
                errors["modelId"] = f"Model {data.model_id} not found"

        day = data.date if data.date not in (None, "") else self.today()
        form = self.validator.validate_form(
            {
                "date": day if isinstance(day, dt.date) else str(day),
                "qualityRating": data.quality_rating,
                "duration": data.duration,
            }
        )
        errors.update(form.errors)

        usages = []
        for index, usage in enumerate(data.usages):
            key = f"usages[{index}]"
            filament = self.store.find_filament(usage.filament_id)
            if filament is None:
                errors[f"{key}.filamentId"] = "Please select a filament"
                continue
            weight = self.validator.validate("actualWeight", usage.actual_weight)
            if not weight.valid:
                errors[f"{key}.actualWeight"] = weight.message
                continue
            usages.append(
                FilamentUsage(
                    filament_id=filament.id,
                    material_type=filament.material_type,
                    color=filament.color,
                    actual_weight=float(weight.value),
                )
            )
        if not data.usages:
            errors["usages"] = "Please select at least one filament and specify weights"

        if errors:
            raise FieldValidationError(errors)

        duration = form.values.get("duration")
        return PrintRecord(
            id=print_id,
            model_id=data.model_id,
            model_name=model_name,
            date=day if isinstance(day, dt.date) else dt.date.fromisoformat(str(day)),
            filament_usages=usages,
            quality_rating=form.values.get("qualityRating"),
            duration=float(duration) if duration is not None else None,
            notes=(data.notes or "").strip() or None,
        )
