from fastapi import Depends, Request

from printstack.schemas.grid_schemas import GridPage
from printstack.services.entity_store import EntityStore


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_inventory_service(store: EntityStore = Depends(get_store)):
    from printstack.services.inventory_service import InventoryService

    return InventoryService(store)


def get_model_service(store: EntityStore = Depends(get_store)):
    from printstack.services.model_service import ModelService

    return ModelService(store)


def get_print_service(store: EntityStore = Depends(get_store)):
    from printstack.services.print_service import PrintService

    return PrintService(store)


def get_porting_service(store: EntityStore = Depends(get_store)):
    from printstack.services.porting_service import PortingService

    return PortingService(store)


def page_payload(page: GridPage) -> dict:
    """Serialise a grid page with its row records in API (camelCase) form."""
    payload = page.model_dump(by_alias=True, exclude={"rows"})
    payload["rows"] = [row.model_dump(by_alias=True, mode="json") for row in page.rows]
    return payload
