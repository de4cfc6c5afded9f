import datetime as dt
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

QualityRating = Literal["excellent", "good", "fair", "poor"]
QUALITY_RATINGS = ("excellent", "good", "fair", "poor")


class FilamentUsage(BaseModel):
    filament_id: Optional[int] = None
    material_type: str = ""
    color: Optional[str] = None
    actual_weight: Optional[float] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PrintRecord(BaseModel):
    id: int
    model_id: Optional[int] = None
    model_name: Optional[str] = None
    date: dt.date
    filament_usages: List[FilamentUsage] = []
    quality_rating: Optional[QualityRating] = None
    duration: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()

    @property
    def total_weight(self) -> float:
        return sum(u.actual_weight or 0.0 for u in self.filament_usages)


class UsageInput(BaseModel):
    filament_id: Optional[int] = None
    actual_weight: Optional[Union[float, str]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PrintCreate(BaseModel):
    model_id: Optional[int] = None
    date: Optional[Union[dt.date, str]] = None
    usages: List[UsageInput] = []
    quality_rating: Optional[str] = None
    duration: Optional[Union[float, str]] = None
    notes: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()


class PrintUpdate(PrintCreate):
    pass


class PrefilledUsage(BaseModel):
    """One usage row drafted from a model requirement."""

    filament_id: Optional[int] = None
    material_type: str = ""
    color: Optional[str] = None
    actual_weight: Optional[float] = None
    resolution: Literal["id", "attributes", "unavailable"]
    available: bool

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UsageStats(BaseModel):
    total_weight: float
    total_prints: int
    by_color: Dict[str, float]
    by_model: Dict[str, Dict[str, float]]

    class Config:
        alias_generator = to_camel
        populate_by_name = True
