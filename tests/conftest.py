"""Shared fixtures: an in-memory store with a fixed clock and the services on top of it."""

import datetime as dt

import pytest

from printstack.schemas.filament_schemas import FilamentCreate
from printstack.services.blob_store import MemoryBlobStore
from printstack.services.entity_store import EntityStore
from printstack.services.inventory_service import InventoryService
from printstack.services.model_service import ModelService
from printstack.services.porting_service import PortingService
from printstack.services.print_service import PrintService

NOW = dt.datetime(2024, 5, 15, 12, 0, tzinfo=dt.timezone.utc)


def filament_data(**overrides) -> FilamentCreate:
    """A valid add-filament form, with any field overridden."""
    values = {
        "brand": "Prusament",
        "material_type": "PLA",
        "color": "Galaxy Black",
        "color_hex": "#1a1a1a",
        "weight": 1000,
        "diameter": 1.75,
    }
    values.update(overrides)
    return FilamentCreate(**values)


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def store(blob_store: MemoryBlobStore) -> EntityStore:
    store = EntityStore(blob_store, clock=lambda: NOW)
    store.load()
    return store


@pytest.fixture
def inventory(store: EntityStore) -> InventoryService:
    return InventoryService(store)


@pytest.fixture
def model_service(store: EntityStore) -> ModelService:
    return ModelService(store)


@pytest.fixture
def print_service(store: EntityStore) -> PrintService:
    return PrintService(store)


@pytest.fixture
def porting(store: EntityStore) -> PortingService:
    return PortingService(store)


@pytest.fixture
def filament_form():
    return filament_data


@pytest.fixture
def add_filament(inventory: InventoryService):
    """Add a filament through the service and return it."""

    def _add(**overrides):
        return inventory.add_filament(filament_data(**overrides))

    return _add
