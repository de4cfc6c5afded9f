import csv
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from printstack.api.v1.api import api_router
from printstack.core.config import settings
from printstack.core.errors import FieldValidationError, PersistenceError, PrintStackError
from printstack.db.base import SessionLocal, init_db
from printstack.schemas.filament_schemas import FilamentCreate
from printstack.services.blob_store import SqlBlobStore
from printstack.services.entity_store import EntityStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.project_name, openapi_url=f"{settings.api_v1_str}/openapi.json"
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_str)


@app.exception_handler(PrintStackError)
async def printstack_error_handler(request: Request, exc: PrintStackError):
    if isinstance(exc, PersistenceError):
        logger.error(f"{request.method} {request.url.path} not persisted: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.get("/")
def read_root():
    return {"message": "PrintStack filament inventory", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


def seed_filaments(store: EntityStore, csv_path: str) -> int:
    """Add filaments from a CSV file to an empty store. Returns how many were added."""
    from printstack.services.inventory_service import InventoryService

    if store.filaments or not os.path.exists(csv_path):
        return 0
    service = InventoryService(store)
    added = 0
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            temperature = None
            if row.get("temp_min") or row.get("temp_max"):
                temperature = {"min": row.get("temp_min"), "max": row.get("temp_max")}
            data = FilamentCreate(
                brand=row.get("brand"),
                material_type=row.get("material_type"),
                color=row.get("color"),
                color_hex=row.get("color_hex"),
                diameter=row.get("diameter") or settings.default_diameter,
                weight=row.get("weight"),
                purchase_price=row.get("purchase_price") or None,
                location=row.get("location") or None,
                temperature=temperature,
                notes=row.get("notes") or None,
            )
            try:
                service.add_filament(data)
            except FieldValidationError as e:
                logger.warning(f"Skipping seed row {reader.line_num}: {e.message}")
                continue
            added += 1
    logger.info(f"Seeded {added} filaments from {csv_path}")
    return added


@app.on_event("startup")
def load_store_on_startup():
    """Load the collections from the database and seed filaments on first run.

    Seed CSV location: <data_dir>/seed/filaments.csv
    """
    init_db()
    db = SessionLocal()
    store = EntityStore(SqlBlobStore(db))
    store.load()
    data_dir = os.environ.get("DATA_DIR", settings.data_dir)
    try:
        seed_filaments(store, os.path.join(data_dir, settings.seed_filaments_csv))
    except PersistenceError as e:
        logger.error(f"Seeding failed: {e.message}")
    app.state.db = db
    app.state.store = store


@app.on_event("shutdown")
def close_store_on_shutdown():
    db = getattr(app.state, "db", None)
    if db is not None:
        db.close()
