from typing import List, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

Number = Union[float, str]


class Temperature(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None


class Filament(BaseModel):
    """A spool as stored in the blob and written to export files."""

    id: int
    brand: str
    material_type: str
    color: str
    color_hex: str
    diameter: float
    weight: float
    in_stock: bool = True
    purchase_price: Optional[float] = None
    location: Optional[str] = None
    temperature: Optional[Temperature] = None
    notes: Optional[str] = None
    deletion_blocked: bool = False
    purchase_date: Optional[str] = None
    last_modified: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def label(self) -> str:
        return f"{self.brand} {self.material_type} ({self.color})"


class TemperatureInput(BaseModel):
    min: Optional[Number] = None
    max: Optional[Number] = None


class FilamentCreate(BaseModel):
    # Raw form values; the field validator does the coercion
    brand: Optional[str] = None
    material_type: Optional[str] = None
    custom_material_type: Optional[str] = None
    color: Optional[str] = None
    color_hex: Optional[str] = None
    diameter: Optional[Number] = None
    weight: Optional[Number] = None
    in_stock: bool = True
    purchase_price: Optional[Number] = None
    location: Optional[str] = None
    temperature: Optional[TemperatureInput] = None
    notes: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class FilamentUpdate(FilamentCreate):
    # Left out means keep the stored stock status
    in_stock: Optional[bool] = None


class FilamentResponse(Filament):
    remaining_weight: float


class MaterialTypeCreate(BaseModel):
    name: str


class MaterialTypeList(BaseModel):
    material_types: List[str]
    in_use: List[str]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class DeleteOutcome(BaseModel):
    id: int
    status: str  # deleted, retired
    message: str
