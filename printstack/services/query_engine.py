"""Sort / filter / paginate over an in-memory collection for the data grids."""

from __future__ import annotations

import locale
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from printstack.core.config import settings
from printstack.schemas.grid_schemas import GridPage

PAGE_SIZES = (10, 25, 50, 100)
MIN_QUERY_LENGTH = 2
PAGE_WINDOW = 5


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    sort_type: str = "text"  # text or number


def get_value(row: Any, key: str) -> Any:
    """Read a possibly dotted key from a dict or an object."""
    current = row
    for part in key.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def _text_key(value: Any) -> str:
    if value is None:
        return ""
    return locale.strxfrm(str(value).lower())


def _number_key(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return float(value or 0)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class DataGrid:
    def __init__(
        self,
        columns: Sequence[Column],
        searchable_fields: Sequence[str],
        rows: Sequence[Any] = (),
        page_size: Optional[int] = None,
    ):
        self.columns = list(columns)
        self.searchable_fields = list(searchable_fields)
        self.rows: List[Any] = list(rows)
        self.page_size = page_size or settings.default_page_size
        if self.page_size not in PAGE_SIZES:
            raise ValueError(f"Page size must be one of {PAGE_SIZES}")
        self.page = 1
        self.sort_column: Optional[str] = None
        self.ascending = True
        self.query = ""
        self._view: Optional[List[Any]] = None

    # Commands

    def set_rows(self, rows: Sequence[Any]) -> None:
        """Replace the data; sort, filter and page are kept."""
        self.rows = list(rows)
        self._view = None
        self.page = min(self.page, max(self.total_pages, 1))

    def set_sort(self, column: str) -> None:
        """Sort by column; the same column again flips the direction."""
        if self._column(column) is None:
            raise ValueError(f"Unknown column '{column}'")
        if self.sort_column == column:
            self.ascending = not self.ascending
        else:
            self.sort_column = column
            self.ascending = True
        self._view = None
        self.page = 1

    def set_sort_direction(self, column: str, ascending: bool) -> None:
        if self._column(column) is None:
            raise ValueError(f"Unknown column '{column}'")
        self.sort_column = column
        self.ascending = ascending
        self._view = None
        self.page = 1

    def set_filter(self, query: Optional[str]) -> None:
        self.query = (query or "").strip()
        self._view = None
        self.page = 1

    def set_page(self, page: int) -> None:
        self.page = max(1, min(int(page), max(self.total_pages, 1)))

    def set_page_size(self, page_size: int) -> None:
        page_size = int(page_size)
        if page_size not in PAGE_SIZES:
            raise ValueError(f"Page size must be one of {PAGE_SIZES}")
        self.page_size = page_size
        self.page = 1

    # Queries

    @property
    def view(self) -> List[Any]:
        """Filtered then sorted rows across all pages."""
        if self._view is None:
            self._view = self._sorted(self._filtered(self.rows))
        return self._view

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.view) / self.page_size)

    def visible_page(self) -> GridPage:
        view = self.view
        total = len(view)
        total_pages = self.total_pages
        start = (self.page - 1) * self.page_size
        end = min(start + self.page_size, total)
        return GridPage(
            rows=view[start:end],
            page=self.page,
            page_size=self.page_size,
            total_items=total,
            total_pages=total_pages,
            start_index=start + 1 if total else 0,
            end_index=end,
            page_numbers=self.page_numbers(),
            has_previous=self.page > 1,
            has_next=self.page < total_pages,
            is_empty=total == 0,
            sort_column=self.sort_column,
            ascending=self.ascending,
            query=self.query,
        )

    def page_numbers(self) -> List[int]:
        """At most PAGE_WINDOW page numbers centred on the current page."""
        total_pages = self.total_pages
        if total_pages == 0:
            return []
        first = max(1, self.page - PAGE_WINDOW // 2)
        last = min(total_pages, first + PAGE_WINDOW - 1)
        first = max(1, last - PAGE_WINDOW + 1)
        return list(range(first, last + 1))

    # Internals

    def _column(self, key: str) -> Optional[Column]:
        for column in self.columns:
            if column.key == key:
                return column
        return None

    def _filtered(self, rows: List[Any]) -> List[Any]:
        # One keystroke is not enough to filter on
        if len(self.query) < MIN_QUERY_LENGTH:
            return list(rows)
        needle = self.query.lower()
        return [row for row in rows if needle in self.searchable_text(row)]

    def searchable_text(self, row: Any) -> str:
        parts = (get_value(row, key) for key in self.searchable_fields)
        return " ".join(str(p) for p in parts if p is not None).lower()

    def _sorted(self, rows: List[Any]) -> List[Any]:
        column = self._column(self.sort_column) if self.sort_column else None
        if column is None:
            return rows
        to_key = _number_key if column.sort_type == "number" else _text_key
        # sorted() is stable in both directions
        return sorted(
            rows,
            key=lambda row: to_key(get_value(row, column.key)),
            reverse=not self.ascending,
        )


class Debouncer:
    """Coalesces rapid submissions; only the last one within the delay runs."""

    def __init__(
        self,
        action: Callable[[Any], None],
        delay: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.action = action
        self.delay = settings.search_debounce_ms / 1000.0 if delay is None else delay
        self.clock = clock
        self._pending: Any = None
        self._due: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._due is not None

    def submit(self, value: Any) -> None:
        self._pending = value
        self._due = self.clock() + self.delay

    def cancel(self) -> None:
        self._pending = None
        self._due = None

    def poll(self) -> bool:
        """Run the pending action if its delay has elapsed."""
        if self._due is None or self.clock() < self._due:
            return False
        value = self._pending
        self.cancel()
        self.action(value)
        return True


def filament_grid(rows: Sequence[Any] = (), page_size: Optional[int] = None) -> DataGrid:
    return DataGrid(
        columns=[
            Column("brand", "Brand"),
            Column("material_type", "Material"),
            Column("color", "Color"),
            Column("weight", "Weight (g)", "number"),
            Column("remaining_weight", "Remaining (g)", "number"),
            Column("location", "Location"),
            Column("in_stock", "Status"),
        ],
        searchable_fields=["brand", "material_type", "color", "location"],
        rows=rows,
        page_size=page_size,
    )


def model_grid(rows: Sequence[Any] = (), page_size: Optional[int] = None) -> DataGrid:
    return DataGrid(
        columns=[
            Column("name", "Model Name"),
            Column("link", "Link/Notes"),
        ],
        searchable_fields=["name", "link"],
        rows=rows,
        page_size=page_size,
    )
