"""Tests for the grid sort / filter / paginate engine and the search debouncer."""

import pytest

from printstack.services.query_engine import (
    Column,
    DataGrid,
    Debouncer,
    filament_grid,
    get_value,
)


def rows(count):
    return [
        {"id": i, "name": f"Item {i:03d}", "group": "even" if i % 2 == 0 else "odd", "size": i % 7}
        for i in range(1, count + 1)
    ]


def grid(data, page_size=10):
    return DataGrid(
        columns=[Column("name", "Name"), Column("group", "Group"), Column("size", "Size", "number")],
        searchable_fields=["name", "group"],
        rows=data,
        page_size=page_size,
    )


# ============================================================================
# Sorting
# ============================================================================


class TestSorting:
    """Sort order, direction toggling and stability."""

    def test_unsorted_keeps_base_order(self):
        data = rows(5)
        assert grid(data).view == data

    def test_text_sort_is_case_insensitive(self):
        data = [{"name": "banana"}, {"name": "Apple"}, {"name": "cherry"}]
        g = DataGrid([Column("name", "Name")], ["name"], data)
        g.set_sort("name")
        assert [r["name"] for r in g.view] == ["Apple", "banana", "cherry"]

    def test_number_sort_treats_missing_as_zero(self):
        data = [{"w": 5}, {"w": None}, {"w": "12"}, {"w": 1}]
        g = DataGrid([Column("w", "W", "number")], [], data)
        g.set_sort("w")
        assert [r["w"] for r in g.view] == [None, 1, 5, "12"]

    def test_same_column_toggles_direction(self):
        g = grid(rows(5))
        g.set_sort("name")
        assert g.ascending
        g.set_sort("name")
        assert not g.ascending
        g.set_sort("group")
        assert g.ascending

    def test_sorting_twice_in_same_direction_is_idempotent(self):
        g = grid(rows(30))
        g.set_sort_direction("size", True)
        first = list(g.view)
        g.set_sort_direction("size", True)
        assert g.view == first

    def test_descending_reverses_distinct_keys(self):
        g = grid(rows(12))
        g.set_sort_direction("name", True)
        ascending = list(g.view)
        g.set_sort_direction("name", False)
        assert g.view == list(reversed(ascending))

    def test_ties_keep_base_order_in_both_directions(self):
        data = rows(14)
        g = grid(data)
        for ascending in (True, False):
            g.set_sort_direction("group", ascending)
            evens = [r["id"] for r in g.view if r["group"] == "even"]
            assert evens == [r["id"] for r in data if r["group"] == "even"]

    def test_unknown_column_rejected(self):
        with pytest.raises(ValueError):
            grid(rows(3)).set_sort("colour")

    def test_sort_resets_page(self):
        g = grid(rows(30))
        g.set_page(3)
        g.set_sort("name")
        assert g.page == 1


# ============================================================================
# Filtering
# ============================================================================


class TestFiltering:
    """Substring search over the searchable fields."""

    def test_short_query_matches_everything(self):
        g = grid(rows(5))
        g.set_filter("x")
        assert len(g.view) == 5

    def test_query_is_case_insensitive_substring(self):
        g = grid(rows(20))
        g.set_filter("ITEM 01")
        assert [r["id"] for r in g.view] == list(range(10, 20))

    def test_query_searches_all_fields(self):
        g = grid(rows(6))
        g.set_filter("odd")
        assert [r["id"] for r in g.view] == [1, 3, 5]

    def test_filter_then_sort(self):
        g = grid(rows(10))
        g.set_sort_direction("name", False)
        g.set_filter("even")
        assert [r["id"] for r in g.view] == [10, 8, 6, 4, 2]

    def test_clearing_filter_restores_rows(self):
        g = grid(rows(8))
        g.set_filter("odd")
        g.set_filter("")
        assert len(g.view) == 8

    def test_filter_resets_page(self):
        g = grid(rows(30))
        g.set_page(2)
        g.set_filter("item")
        assert g.page == 1


# ============================================================================
# Pagination
# ============================================================================


class TestPagination:
    """Page slicing, bounds and the page-number window."""

    @pytest.mark.parametrize("count,page_size", [(0, 10), (9, 10), (10, 10), (101, 25), (57, 50)])
    def test_pages_cover_every_row_once(self, count, page_size):
        data = rows(count)
        g = grid(data, page_size=page_size)
        seen = []
        for page in range(1, g.total_pages + 1):
            g.set_page(page)
            seen.extend(r["id"] for r in g.visible_page().rows)
        assert seen == [r["id"] for r in data]

    def test_page_info(self):
        g = grid(rows(23))
        g.set_page(3)
        page = g.visible_page()
        assert (page.start_index, page.end_index, page.total_items) == (21, 23, 23)
        assert page.info == "21-23 of 23"
        assert page.has_previous and not page.has_next

    def test_empty_state(self):
        page = grid([]).visible_page()
        assert page.is_empty
        assert page.total_pages == 0
        assert page.page_numbers == []
        assert page.info == "0-0 of 0"

    def test_page_is_clamped(self):
        g = grid(rows(15))
        g.set_page(99)
        assert g.page == 2
        g.set_page(-4)
        assert g.page == 1

    def test_page_size_change_resets_page(self):
        g = grid(rows(60))
        g.set_page(4)
        g.set_page_size(25)
        assert g.page == 1
        assert g.total_pages == 3

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            grid(rows(5)).set_page_size(7)
        with pytest.raises(ValueError):
            grid(rows(5), page_size=30)

    @pytest.mark.parametrize(
        "page,expected",
        [(1, [1, 2, 3, 4, 5]), (5, [3, 4, 5, 6, 7]), (10, [6, 7, 8, 9, 10])],
    )
    def test_page_window(self, page, expected):
        g = grid(rows(100))
        g.set_page(page)
        assert g.page_numbers() == expected

    def test_set_rows_keeps_state(self):
        g = grid(rows(40))
        g.set_sort_direction("name", False)
        g.set_filter("item")
        g.set_page(3)
        g.set_rows(rows(25))
        assert (g.sort_column, g.ascending, g.query) == ("name", False, "item")
        assert g.page == 3
        g.set_rows(rows(5))
        assert g.page == 1


# ============================================================================
# Helpers
# ============================================================================


class TestHelpers:
    def test_get_value_dotted(self):
        row = {"temperature": {"min": 200}}
        assert get_value(row, "temperature.min") == 200
        assert get_value(row, "temperature.max") is None
        assert get_value({"temperature": None}, "temperature.min") is None

    def test_filament_grid_columns(self):
        g = filament_grid()
        assert [c.key for c in g.columns][:3] == ["brand", "material_type", "color"]
        assert g.page_size == 25


class TestDebouncer:
    """Only the last submission inside the delay fires."""

    def test_coalesces_rapid_input(self):
        now = [0.0]
        fired = []
        debouncer = Debouncer(fired.append, delay=0.3, clock=lambda: now[0])

        for text in ("p", "pl", "pla"):
            debouncer.submit(text)
            now[0] += 0.1
        assert not debouncer.poll()
        now[0] += 0.3
        assert debouncer.poll()
        assert fired == ["pla"]
        assert not debouncer.pending

    def test_cancel(self):
        fired = []
        debouncer = Debouncer(fired.append, delay=0, clock=lambda: 1.0)
        debouncer.submit("x")
        debouncer.cancel()
        assert not debouncer.poll()
        assert fired == []
