from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from printstack.api.deps import get_inventory_service, page_payload
from printstack.core.config import settings
from printstack.schemas.filament_schemas import (
    DeleteOutcome,
    FilamentCreate,
    FilamentResponse,
    FilamentUpdate,
    MaterialTypeCreate,
    MaterialTypeList,
)
from printstack.services.inventory_service import InventoryService
from printstack.services.query_engine import filament_grid

router = APIRouter()


@router.get("")
async def list_filaments(
    sort: Optional[str] = None,
    ascending: bool = True,
    q: Optional[str] = None,
    page: int = 1,
    page_size: int = settings.default_page_size,
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Filament grid page (sorted, filtered, paginated)"""
    try:
        grid = filament_grid(inventory_service.list_filaments(), page_size=page_size)
        if sort:
            grid.set_sort_direction(sort, ascending)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    grid.set_filter(q)
    grid.set_page(page)
    return page_payload(grid.visible_page())


@router.post("", response_model=FilamentResponse)
async def create_filament(
    filament_data: FilamentCreate,
    merge_duplicates: bool = False,
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Create a new filament (or merge into a duplicate when asked to)"""
    return inventory_service.add_filament(
        filament_data, confirm_action=lambda prompt: merge_duplicates
    )


@router.get("/material-types", response_model=MaterialTypeList)
async def get_material_types(
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    return inventory_service.list_material_types()


@router.post("/material-types", response_model=MaterialTypeList)
async def add_material_type(
    data: MaterialTypeCreate,
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    return inventory_service.add_material_type(data.name)


@router.delete("/material-types/{name}", response_model=MaterialTypeList)
async def remove_material_type(
    name: str, inventory_service: InventoryService = Depends(get_inventory_service)
):
    return inventory_service.remove_material_type(name)


@router.get("/{filament_id}", response_model=FilamentResponse)
async def get_filament(
    filament_id: int, inventory_service: InventoryService = Depends(get_inventory_service)
):
    """Get a specific filament"""
    return inventory_service.get_filament(filament_id)


@router.put("/{filament_id}", response_model=FilamentResponse)
async def update_filament(
    filament_id: int,
    filament_data: FilamentUpdate,
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    return inventory_service.edit_filament(filament_id, filament_data)


@router.delete("/{filament_id}", response_model=DeleteOutcome)
async def delete_filament(
    filament_id: int,
    retire: bool = False,
    inventory_service: InventoryService = Depends(get_inventory_service),
):
    """Delete a filament; referenced filaments can only be retired (retire=true)"""
    return inventory_service.delete_filament(filament_id, confirm_action=lambda prompt: retire)


@router.post("/{filament_id}/activate", response_model=FilamentResponse)
async def activate_filament(
    filament_id: int, inventory_service: InventoryService = Depends(get_inventory_service)
):
    """Mark a filament as in stock again."""
    return inventory_service.set_in_stock(filament_id, True)


@router.post("/{filament_id}/deactivate", response_model=FilamentResponse)
async def deactivate_filament(
    filament_id: int, inventory_service: InventoryService = Depends(get_inventory_service)
):
    """Mark a filament as out of stock."""
    return inventory_service.set_in_stock(filament_id, False)
