from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from printstack.api.deps import get_porting_service
from printstack.schemas.porting_schemas import ImportMode, ImportResult
from printstack.services.porting_service import PortingService

router = APIRouter()


@router.get("/export")
async def export_data(porting_service: PortingService = Depends(get_porting_service)):
    """Download a full backup"""
    return JSONResponse(
        content=porting_service.export(),
        headers={
            "Content-Disposition": f'attachment; filename="{porting_service.export_filename()}"'
        },
    )


@router.post("/import", response_model=ImportResult)
async def import_data(
    request: Request,
    mode: ImportMode = "add",
    porting_service: PortingService = Depends(get_porting_service),
):
    """Import a backup file sent as the raw request body"""
    body = await request.body()
    return porting_service.import_data(body, mode)
