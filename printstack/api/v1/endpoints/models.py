from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from printstack.api.deps import get_model_service, page_payload
from printstack.core.config import settings
from printstack.schemas.model_schemas import ModelCreate, ModelResponse, ModelUpdate
from printstack.services.model_service import ModelService
from printstack.services.query_engine import model_grid

router = APIRouter()


@router.get("")
async def list_models(
    sort: Optional[str] = None,
    ascending: bool = True,
    q: Optional[str] = None,
    page: int = 1,
    page_size: int = settings.default_page_size,
    model_service: ModelService = Depends(get_model_service),
):
    """Model grid page (sorted, filtered, paginated)"""
    try:
        grid = model_grid(model_service.list_models(), page_size=page_size)
        if sort:
            grid.set_sort_direction(sort, ascending)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    grid.set_filter(q)
    grid.set_page(page)
    return page_payload(grid.visible_page())


@router.post("", response_model=ModelResponse)
async def create_model(
    model_data: ModelCreate, model_service: ModelService = Depends(get_model_service)
):
    return model_service.add_model(model_data)


@router.get("/printable", response_model=List[ModelResponse])
async def get_printable_models(model_service: ModelService = Depends(get_model_service)):
    """Models whose required filaments are all in stock"""
    return model_service.printable_models()


@router.get("/{model_id}", response_model=ModelResponse)
async def get_model(model_id: int, model_service: ModelService = Depends(get_model_service)):
    return model_service.get_model(model_id)


@router.put("/{model_id}", response_model=ModelResponse)
async def update_model(
    model_id: int,
    model_data: ModelUpdate,
    model_service: ModelService = Depends(get_model_service),
):
    return model_service.edit_model(model_id, model_data)


@router.delete("/{model_id}")
async def delete_model(model_id: int, model_service: ModelService = Depends(get_model_service)):
    model_service.delete_model(model_id)
    return {"message": f"Model {model_id} deleted"}
