from typing import List, Literal

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

ImportMode = Literal["replace", "add"]


class ImportResult(BaseModel):
    mode: ImportMode
    source_format: Literal["enhanced", "legacy"]
    filaments_imported: int = 0
    models_imported: int = 0
    models_skipped: List[str] = []
    prints_imported: int = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True
