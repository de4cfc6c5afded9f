"""Session bookkeeping for the streamlit pages, kept free of streamlit calls."""

from typing import Callable, Dict, List, MutableMapping, Optional


def current_page(state: MutableMapping, state_key: str, controls: tuple) -> int:
    """Page to request; back to 1 whenever search, sort or page size changed."""
    controls_key = f"{state_key}_controls"
    if state.get(controls_key) != controls:
        state[controls_key] = controls
        state[state_key] = 1
    return state.get(state_key, 1)


def pagination_targets(grid: dict) -> Dict[str, Optional[int]]:
    """Page each navigation button leads to, None when the button is disabled."""
    current = grid.get("page", 1)
    last = grid.get("totalPages", 1)
    return {
        "First": 1 if current > 1 else None,
        "Prev": current - 1 if grid.get("hasPrevious") else None,
        "Next": current + 1 if grid.get("hasNext") else None,
        "Last": last if current < last else None,
    }


def fetch_all_rows(fetch: Callable[[int], Optional[dict]]) -> List[dict]:
    """Collect the rows of every grid page; fetch(page) returns one page payload."""
    rows = []
    page_number = 1
    while True:
        result = fetch(page_number)
        if not result:
            break
        rows.extend(result.get("rows", []))
        if not result.get("hasNext"):
            break
        page_number += 1
    return rows


def blocked_delete(filament: dict, label: str, payload: dict) -> dict:
    """Pending confirmation for a referenced filament, from a 409 response body."""
    detail = payload.get("detail")
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}
    references = detail.get("references") or {}
    return {
        "id": filament["id"],
        "label": label,
        "message": detail.get("message"),
        "model_names": [ref.get("modelName") for ref in references.get("models", [])],
        "print_count": len(references.get("printIds", [])),
    }


def unavailable_usages(prefill: List[dict]) -> List[str]:
    """Labels of drafted usages with no in-stock filament behind them."""
    return [
        f"{usage.get('color')} ({usage.get('materialType')})"
        for usage in prefill
        if not usage.get("available")
    ]
