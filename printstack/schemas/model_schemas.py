from typing import List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class Requirement(BaseModel):
    filament_id: Optional[int] = None
    # Denormalised so the requirement still reads sensibly if the filament goes away
    material_type: str = ""
    color: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Model(BaseModel):
    id: int
    name: str
    link: Optional[str] = None
    requirements: List[Requirement] = []

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ModelCreate(BaseModel):
    name: Optional[str] = None
    link: Optional[str] = None
    filament_ids: List[int] = []

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ModelUpdate(ModelCreate):
    pass


class ModelResponse(Model):
    can_print: bool
    missing_requirements: List[str] = []
