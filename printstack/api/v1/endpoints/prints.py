from typing import List

from fastapi import APIRouter, Depends

from printstack.api.deps import get_print_service
from printstack.schemas.print_schemas import (
    PrefilledUsage,
    PrintCreate,
    PrintRecord,
    PrintUpdate,
    UsageStats,
)
from printstack.services.print_service import PrintService

router = APIRouter()


@router.get("", response_model=List[PrintRecord])
async def list_prints(print_service: PrintService = Depends(get_print_service)):
    """Print history, newest first"""
    return print_service.list_prints()


@router.post("", response_model=PrintRecord)
async def record_print(
    print_data: PrintCreate,
    allow_override: bool = False,
    print_service: PrintService = Depends(get_print_service),
):
    """Record a print; allow_override accepts negative remaining inventory"""
    return print_service.record_print(print_data, allow_override=allow_override)


@router.get("/prefill", response_model=List[PrefilledUsage])
async def prefill_usages(
    model_id: int, print_service: PrintService = Depends(get_print_service)
):
    """Filament usages drafted from the selected model's requirements"""
    return print_service.prefill(model_id)


@router.get("/stats", response_model=UsageStats)
async def get_usage_stats(print_service: PrintService = Depends(get_print_service)):
    return print_service.usage_stats()


@router.get("/{print_id}", response_model=PrintRecord)
async def get_print(print_id: int, print_service: PrintService = Depends(get_print_service)):
    return print_service.get_print(print_id)


@router.put("/{print_id}", response_model=PrintRecord)
async def update_print(
    print_id: int,
    print_data: PrintUpdate,
    allow_override: bool = False,
    print_service: PrintService = Depends(get_print_service),
):
    return print_service.edit_print(print_id, print_data, allow_override=allow_override)


@router.delete("/{print_id}")
async def delete_print(print_id: int, print_service: PrintService = Depends(get_print_service)):
    print_service.delete_print(print_id)
    return {"message": f"Print {print_id} deleted"}
