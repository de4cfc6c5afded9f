from fastapi import APIRouter

from printstack.api.v1.endpoints import data, filaments, models, prints

api_router = APIRouter()

api_router.include_router(filaments.router, prefix="/filaments", tags=["filaments"])
api_router.include_router(models.router, prefix="/models", tags=["models"])
api_router.include_router(prints.router, prefix="/prints", tags=["prints"])
api_router.include_router(data.router, prefix="/data", tags=["data"])
