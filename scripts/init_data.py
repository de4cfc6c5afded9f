#!/usr/bin/env python3
"""
Initialize the database with sample data
"""
import datetime as dt
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from printstack.core.config import settings
from printstack.db.base import SessionLocal, init_db
from printstack.main import seed_filaments
from printstack.schemas.model_schemas import ModelCreate
from printstack.schemas.print_schemas import PrintCreate, UsageInput
from printstack.services.blob_store import SqlBlobStore
from printstack.services.entity_store import EntityStore
from printstack.services.model_service import ModelService
from printstack.services.print_service import PrintService

SAMPLE_MODELS = [
    ("Benchy", "https://www.printables.com/model/3161", ["PLA"]),
    ("Phone Stand", None, ["PETG"]),
    ("Two-Tone Vase", None, ["PLA", "PETG"]),
]


def main():
    init_db()
    db = SessionLocal()
    try:
        store = EntityStore(SqlBlobStore(db))
        store.load()
        data_dir = os.environ.get("DATA_DIR", settings.data_dir)
        seed_filaments(store, os.path.join(data_dir, settings.seed_filaments_csv))

        by_material = {f.material_type: f.id for f in store.filaments if f.in_stock}
        models = ModelService(store)
        prints = PrintService(store)
        for days_ago, (name, link, materials) in enumerate(SAMPLE_MODELS):
            if store.find_model_by_name(name) is not None:
                continue
            ids = [by_material[m] for m in materials if m in by_material]
            if not ids:
                continue
            model = models.add_model(ModelCreate(name=name, link=link, filament_ids=ids))
            prints.record_print(
                PrintCreate(
                    model_id=model.id,
                    date=prints.today() - dt.timedelta(days=days_ago),
                    usages=[UsageInput(filament_id=i, actual_weight=15.0) for i in ids],
                    quality_rating="good",
                )
            )
        print(
            f"Store holds {len(store.filaments)} filaments, {len(store.models)} models, "
            f"{len(store.prints)} prints"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
