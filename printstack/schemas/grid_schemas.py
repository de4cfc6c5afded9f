from typing import Any, List, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class GridPage(BaseModel):
    rows: List[Any]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    # 1-based, inclusive; both 0 when the view is empty
    start_index: int
    end_index: int
    page_numbers: List[int]
    has_previous: bool
    has_next: bool
    is_empty: bool
    sort_column: Optional[str] = None
    ascending: bool = True
    query: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @property
    def info(self) -> str:
        if self.is_empty:
            return "0-0 of 0"
        return f"{self.start_index}-{self.end_index} of {self.total_items}"
