"""Tests for the streamlit page bookkeeping."""

from printstack.ui_helpers import (
    blocked_delete,
    current_page,
    fetch_all_rows,
    pagination_targets,
    unavailable_usages,
)


class TestCurrentPage:
    """The requested page resets when the grid controls change."""

    def test_first_run_starts_on_page_one(self):
        state = {}
        assert current_page(state, "filament_page", ("", None, True, 25)) == 1

    def test_page_kept_while_controls_unchanged(self):
        state = {}
        current_page(state, "filament_page", ("", None, True, 25))
        state["filament_page"] = 3
        assert current_page(state, "filament_page", ("", None, True, 25)) == 3

    def test_search_sort_or_page_size_change_resets(self):
        controls = ("", None, True, 25)
        changes = [("pla", None, True, 25), ("", "Brand", True, 25), ("", None, False, 25), ("", None, True, 50)]
        for changed in changes:
            state = {}
            current_page(state, "filament_page", controls)
            state["filament_page"] = 4
            assert current_page(state, "filament_page", changed) == 1

    def test_keys_are_independent(self):
        state = {}
        current_page(state, "filament_page", ("",))
        current_page(state, "model_page", ("",))
        state["model_page"] = 2
        current_page(state, "filament_page", ("abs",))
        assert current_page(state, "model_page", ("",)) == 2


class TestPaginationTargets:
    def test_middle_page(self):
        grid = {"page": 3, "totalPages": 6, "hasPrevious": True, "hasNext": True}
        assert pagination_targets(grid) == {"First": 1, "Prev": 2, "Next": 4, "Last": 6}

    def test_first_page_disables_backwards(self):
        grid = {"page": 1, "totalPages": 4, "hasPrevious": False, "hasNext": True}
        targets = pagination_targets(grid)
        assert targets["First"] is None
        assert targets["Prev"] is None
        assert targets["Last"] == 4

    def test_single_page_disables_all(self):
        grid = {"page": 1, "totalPages": 1, "hasPrevious": False, "hasNext": False}
        assert set(pagination_targets(grid).values()) == {None}


class TestFetchAllRows:
    def test_walks_every_page(self):
        pages = {
            1: {"rows": [{"id": n} for n in range(100)], "hasNext": True},
            2: {"rows": [{"id": 100}, {"id": 101}], "hasNext": False},
        }
        requested = []

        def fetch(number):
            requested.append(number)
            return pages[number]

        assert len(fetch_all_rows(fetch)) == 102
        assert requested == [1, 2]

    def test_failed_request_stops(self):
        assert fetch_all_rows(lambda number: {}) == []


class TestBlockedDelete:
    def test_lists_references_from_conflict_body(self):
        payload = {
            "detail": {
                "message": 'Cannot delete this filament. Mark it as "Out of Stock" instead?',
                "references": {
                    "filamentId": 4,
                    "models": [{"modelId": 7, "modelName": "Benchy", "count": 1}],
                    "printIds": [9, 10],
                },
            }
        }
        pending = blocked_delete({"id": 4}, "Acme PLA (Blue)", payload)
        assert pending["id"] == 4
        assert pending["label"] == "Acme PLA (Blue)"
        assert "Out of Stock" in pending["message"]
        assert pending["model_names"] == ["Benchy"]
        assert pending["print_count"] == 2

    def test_plain_detail(self):
        pending = blocked_delete({"id": 1}, "x", {"detail": "Filament 1 not found"})
        assert pending["message"] == "Filament 1 not found"
        assert pending["model_names"] == []


def test_unavailable_usages_are_reported():
    prefill = [
        {"color": "Red", "materialType": "PLA", "available": True},
        {"color": "Blue", "materialType": "PETG", "available": False},
    ]
    assert unavailable_usages(prefill) == ["Blue (PETG)"]
