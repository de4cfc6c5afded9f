import datetime as dt
import json
import os
from typing import List, Optional

import requests
import streamlit as st

from printstack.core.config import settings
from printstack.services.query_engine import PAGE_SIZES
from printstack.ui_helpers import (
    blocked_delete,
    current_page,
    fetch_all_rows,
    pagination_targets,
    unavailable_usages,
)

# Configuration
# Default to localhost for local runs; docker-compose overrides to http://app:8000/api/v1
DEFAULT_API_BASE_URL = os.getenv("API_BASE_URL", settings.api_base_url)
if "api_base_url" not in st.session_state:
    st.session_state["api_base_url"] = DEFAULT_API_BASE_URL

FILAMENT_SORT_COLUMNS = {
    "Brand": "brand",
    "Material": "material_type",
    "Color": "color",
    "Weight (g)": "weight",
    "Remaining (g)": "remaining_weight",
    "Location": "location",
    "Status": "in_stock",
}
QUALITY_OPTIONS = ["", "excellent", "good", "fair", "poor"]

st.set_page_config(page_title="PrintStack", layout="wide")

st.title("PrintStack")
st.markdown("Filament inventory, print models and print history")

# Sidebar for navigation
st.sidebar.title("Navigation")
page = st.sidebar.selectbox(
    "Choose a page",
    ["Filaments", "Models", "Prints", "Statistics", "Data"],
)

# Sidebar API settings
with st.sidebar.expander("API Settings", expanded=False):
    base_url_input = st.text_input(
        "API Base URL", value=st.session_state.get("api_base_url", DEFAULT_API_BASE_URL)
    )
    if base_url_input and base_url_input != st.session_state.get("api_base_url"):
        st.session_state["api_base_url"] = base_url_input
        st.success("API base URL updated")


def _base_candidates() -> List[str]:
    return [
        st.session_state.get("api_base_url", DEFAULT_API_BASE_URL),
        "http://localhost:8000/api/v1",
        "http://app:8000/api/v1",
    ]


def _with_bases(call):
    last_err = None
    for base in _base_candidates():
        try:
            result = call(base)
            if result is not None:
                st.session_state["api_base_url"] = base
                return result
        except requests.RequestException as e:
            last_err = str(e)
    if last_err:
        st.error(f"Connection error: {last_err}")
    return None


def _show_api_error(response: requests.Response) -> None:
    try:
        payload = response.json()
    except ValueError:
        payload = {"detail": response.text}
    detail = payload.get("detail") if isinstance(payload, dict) else payload
    if isinstance(detail, dict):
        st.error(f"API Error: {response.status_code} - {detail.get('message')}")
        for field, message in (detail.get("errors") or {}).items():
            st.caption(f"{field}: {message}")
    else:
        st.error(f"API Error: {response.status_code} - {detail}")


def make_api_request(
    endpoint: str,
    method: str = "GET",
    data: Optional[dict] = None,
    params: Optional[dict] = None,
    body: Optional[bytes] = None,
):
    def _do(base: str):
        url = f"{base}{endpoint}"
        if body is not None:
            response = requests.request(method, url, params=params, data=body)
        else:
            response = requests.request(method, url, params=params, json=data)
        if response.status_code == 200:
            return response.json()
        # Surface API errors immediately and stop probing other bases
        _show_api_error(response)
        return {}

    return _with_bases(_do) or {}


def get_all_filaments() -> List[dict]:
    return fetch_all_rows(
        lambda n: make_api_request("/filaments", params={"page_size": max(PAGE_SIZES), "page": n})
    )


def get_models() -> List[dict]:
    return fetch_all_rows(
        lambda n: make_api_request("/models", params={"page_size": max(PAGE_SIZES), "page": n})
    )


def filament_label(f: dict) -> str:
    return f"{f.get('brand')} {f.get('materialType')} ({f.get('color')})"


def render_pagination(state_key: str, grid: dict) -> None:
    st.caption(
        f"{grid.get('startIndex', 0)}-{grid.get('endIndex', 0)} of {grid.get('totalItems', 0)}"
    )
    numbers = grid.get("pageNumbers") or []
    if not numbers:
        return
    targets = pagination_targets(grid)
    cols = st.columns(len(numbers) + 4)
    buttons = [(cols[0], "First"), (cols[1], "Prev"), (cols[-2], "Next"), (cols[-1], "Last")]
    for col, name in buttons:
        target = targets[name]
        if col.button(name, key=f"{state_key}_{name.lower()}", disabled=target is None):
            st.session_state[state_key] = target
            st.rerun()
    for col, number in zip(cols[2:-2], numbers):
        label = f"[{number}]" if number == grid.get("page") else str(number)
        if col.button(label, key=f"{state_key}_{number}"):
            st.session_state[state_key] = number
            st.rerun()


def delete_filament(filament_id: int, retire: bool = False):
    """DELETE a filament; returns (status code, payload) so a blocked delete can be shown."""

    def _do(base: str):
        response = requests.delete(
            f"{base}/filaments/{filament_id}", params={"retire": retire}
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {"detail": response.text}
        return response.status_code, payload

    return _with_bases(_do) or (None, {})


def show_flash() -> None:
    message = st.session_state.pop("flash", None)
    if message:
        st.info(message)


# Filaments Page
if page == "Filaments":
    st.header("Filament Inventory")
    show_flash()

    types = make_api_request("/filaments/material-types")
    material_types = types.get("materialTypes", []) if types else []

    with st.expander("Add New Filament", expanded=False):
        with st.form("add_filament_form"):
            col1, col2 = st.columns(2)
            with col1:
                brand = st.text_input("Brand")
                material_type = st.selectbox("Material Type", material_types + ["Other"])
                custom_material = st.text_input("Custom material (when Other)")
                color = st.text_input("Color")
                color_hex = st.color_picker("Color Code", value=settings.default_color_hex)
            with col2:
                weight = st.number_input("Weight (g)", min_value=0.0, value=1000.0)
                diameter = st.selectbox("Diameter (mm)", [1.75, 2.85])
                price = st.text_input("Price per kg (optional)")
                location = st.text_input("Location (optional)")
                temp_min = st.text_input("Min temperature (optional)")
                temp_max = st.text_input("Max temperature (optional)")
            notes = st.text_area("Notes")
            merge = st.checkbox("Merge into an existing duplicate", value=True)
            submitted = st.form_submit_button("Add Filament")
            if submitted:
                payload = {
                    "brand": brand,
                    "materialType": material_type,
                    "customMaterialType": custom_material,
                    "color": color,
                    "colorHex": color_hex,
                    "weight": weight,
                    "diameter": diameter,
                    "purchasePrice": price or None,
                    "location": location or None,
                    "notes": notes or None,
                }
                if temp_min or temp_max:
                    payload["temperature"] = {"min": temp_min, "max": temp_max}
                result = make_api_request(
                    "/filaments", "POST", payload, params={"merge_duplicates": merge}
                )
                if result:
                    st.success(f"Saved {filament_label(result)}")
                    st.rerun()

    # Grid controls
    col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
    with col1:
        query = st.text_input("Search brand, material, color, location")
    with col2:
        sort_label = st.selectbox("Sort by", ["(none)"] + list(FILAMENT_SORT_COLUMNS))
    with col3:
        ascending = st.radio("Order", ["Asc", "Desc"], horizontal=True) == "Asc"
    with col4:
        page_size = st.selectbox(
            "Rows", PAGE_SIZES, index=PAGE_SIZES.index(settings.default_page_size)
        )

    params = {
        "q": query,
        "ascending": ascending,
        "page_size": page_size,
        "page": current_page(
            st.session_state, "filament_page", (query, sort_label, ascending, page_size)
        ),
    }
    if sort_label != "(none)":
        params["sort"] = FILAMENT_SORT_COLUMNS[sort_label]
    grid = make_api_request("/filaments", params=params)

    if grid and not grid.get("isEmpty"):
        for filament in grid["rows"]:
            col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
            with col1:
                st.write(f"**{filament_label(filament)}** {filament.get('colorHex')}")
                st.caption(filament.get("location") or "")
            with col2:
                remaining = filament.get("remainingWeight", 0)
                total = filament.get("weight") or 1
                st.progress(max(0.0, min(remaining / total, 1.0)))
                st.write(f"{remaining:.1f}g / {filament.get('weight', 0):.1f}g")
            with col3:
                if filament.get("inStock"):
                    if st.button("Out of stock", key=f"off_{filament['id']}"):
                        make_api_request(f"/filaments/{filament['id']}/deactivate", "POST")
                        st.rerun()
                elif st.button("In stock", key=f"on_{filament['id']}"):
                    make_api_request(f"/filaments/{filament['id']}/activate", "POST")
                    st.rerun()
            with col4:
                if st.button("Delete", key=f"del_{filament['id']}"):
                    status, payload = delete_filament(filament["id"])
                    if status == 200:
                        st.session_state["flash"] = payload.get("message")
                        st.rerun()
                    elif status == 409:
                        # Referenced: ask before retiring it instead
                        st.session_state["blocked_delete"] = blocked_delete(
                            filament, filament_label(filament), payload
                        )
                    elif status is not None:
                        st.error(f"API Error: {status} - {payload.get('detail')}")
            blocked = st.session_state.get("blocked_delete")
            if blocked and blocked["id"] == filament["id"]:
                st.warning(blocked["message"])
                for model_name in blocked["model_names"]:
                    st.caption(f"Model: {model_name}")
                if blocked["print_count"]:
                    st.caption(f"Print records: {blocked['print_count']}")
                confirm_col, cancel_col = st.columns(2)
                if confirm_col.button('Mark as "Out of Stock"', key=f"retire_{filament['id']}"):
                    status, payload = delete_filament(filament["id"], retire=True)
                    st.session_state.pop("blocked_delete", None)
                    st.session_state["flash"] = (
                        payload.get("message") if status == 200 else f"Delete failed: {payload.get('detail')}"
                    )
                    st.rerun()
                if cancel_col.button("Cancel", key=f"keep_{filament['id']}"):
                    st.session_state.pop("blocked_delete", None)
                    st.rerun()
            st.divider()
        render_pagination("filament_page", grid)
    elif query:
        st.info("No filaments match your search")
    else:
        st.info("No filaments in inventory")

    with st.expander("Material Types", expanded=False):
        in_use = set(types.get("inUse", [])) if types else set()
        for name in material_types:
            col1, col2 = st.columns([3, 1])
            col1.write(f"{name}{' (in use)' if name in in_use else ''}")
            if col2.button("Remove", key=f"mt_{name}", disabled=name in in_use):
                make_api_request(f"/filaments/material-types/{name}", "DELETE")
                st.rerun()
        new_type = st.text_input("New material type")
        if st.button("Add Material Type") and new_type:
            if make_api_request("/filaments/material-types", "POST", {"name": new_type}):
                st.rerun()

# Models Page
elif page == "Models":
    st.header("Print Models")
    filaments = get_all_filaments()

    with st.expander("Add New Model", expanded=False):
        with st.form("add_model_form"):
            name = st.text_input("Model Name")
            link = st.text_input("Link / Notes")
            selected = st.multiselect(
                "Required filaments",
                [f for f in filaments if f.get("inStock")],
                format_func=filament_label,
            )
            submitted = st.form_submit_button("Add Model")
            if submitted:
                payload = {
                    "name": name,
                    "link": link or None,
                    "filamentIds": [f["id"] for f in selected],
                }
                if make_api_request("/models", "POST", payload):
                    st.success(f"Model added: {name}")
                    st.rerun()

    query = st.text_input("Search models")
    grid = make_api_request(
        "/models",
        params={
            "q": query,
            "sort": "name",
            "page": current_page(st.session_state, "model_page", (query,)),
        },
    )
    if grid and not grid.get("isEmpty"):
        for model in grid["rows"]:
            col1, col2, col3 = st.columns([3, 2, 1])
            with col1:
                st.write(f"**{model.get('name')}**")
                st.caption(model.get("link") or "")
            with col2:
                if model.get("canPrint"):
                    st.success("Ready to print")
                else:
                    st.warning("Missing: " + ", ".join(model.get("missingRequirements", [])))
            with col3:
                if st.button("Delete", key=f"model_del_{model['id']}"):
                    make_api_request(f"/models/{model['id']}", "DELETE")
                    st.rerun()
            st.divider()
        render_pagination("model_page", grid)
    else:
        st.info("No models yet")

# Prints Page
elif page == "Prints":
    st.header("Print History")
    models = get_models()
    filaments = {f["id"]: f for f in get_all_filaments()}

    if models:
        model = st.selectbox("Model", models, format_func=lambda m: m.get("name"))
        prefill = make_api_request("/prints/prefill", params={"model_id": model["id"]})
        prefill = prefill or []
        usages = []
        unavailable = unavailable_usages(prefill)
        with st.form("record_print_form"):
            day = st.date_input("Date", value=dt.date.today(), max_value=dt.date.today())
            for index, usage in enumerate(prefill):
                label = f"{usage.get('color')} ({usage.get('materialType')})"
                # Unavailable rows stay visible but cannot be filled in
                weight = st.number_input(
                    f"{label} used (g)",
                    min_value=0.0,
                    value=0.0,
                    key=f"usage_{index}",
                    disabled=not usage.get("available"),
                )
                if not usage.get("available"):
                    st.warning(f"{label} is not in stock")
                usages.append({"filamentId": usage.get("filamentId"), "actualWeight": weight})
            rating = st.selectbox("Quality", QUALITY_OPTIONS)
            duration = st.text_input("Print time (hours)")
            notes = st.text_area("Notes")
            override = st.checkbox("Record even if inventory goes negative")
            if unavailable:
                st.error("Restock or replace the missing filaments before recording this print")
            submitted = st.form_submit_button("Record Print", disabled=bool(unavailable))
            if submitted:
                payload = {
                    "modelId": model["id"],
                    "date": day.isoformat(),
                    "usages": usages,
                    "qualityRating": rating or None,
                    "duration": duration or None,
                    "notes": notes or None,
                }
                result = make_api_request(
                    "/prints", "POST", payload, params={"allow_override": override}
                )
                if result:
                    st.success(f"Print recorded: {result.get('modelName')}")
                    st.rerun()
    else:
        st.info("Add a model before recording prints")

    prints = make_api_request("/prints") or []
    for record in prints:
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            st.write(f"**{record.get('modelName')}** {record.get('date')}")
            st.caption(record.get("notes") or "")
        with col2:
            for usage in record.get("filamentUsages", []):
                f = filaments.get(usage.get("filamentId"))
                name = filament_label(f) if f else usage.get("color")
                st.write(f"{name}: {usage.get('actualWeight', 0):.1f}g")
        with col3:
            if st.button("Delete", key=f"print_del_{record['id']}"):
                make_api_request(f"/prints/{record['id']}", "DELETE")
                st.rerun()
        st.divider()

# Statistics Page
elif page == "Statistics":
    st.header("Usage Statistics")
    stats = make_api_request("/prints/stats")
    if stats:
        col1, col2 = st.columns(2)
        col1.metric("Total filament used", f"{stats.get('totalWeight', 0):.1f}g")
        col2.metric("Prints recorded", stats.get("totalPrints", 0))
        st.subheader("By color")
        for color, weight in stats.get("byColor", {}).items():
            st.write(f"{color}: {weight:.1f}g")
        st.subheader("By model")
        for name, entry in stats.get("byModel", {}).items():
            st.write(f"{name}: {entry.get('weight', 0):.1f}g over {int(entry.get('prints', 0))} prints")

# Data Page
elif page == "Data":
    st.header("Import / Export")

    export = make_api_request("/data/export")
    if export:
        st.download_button(
            "Download backup",
            data=json.dumps(export, indent=2),
            file_name=f"printstack-{dt.date.today().isoformat()}.json",
            mime="application/json",
        )

    uploaded = st.file_uploader("Import backup", type=["json"])
    mode = st.radio("Import mode", ["add", "replace"], horizontal=True)
    if uploaded is not None and st.button("Import"):
        result = make_api_request(
            "/data/import", "POST", params={"mode": mode}, body=uploaded.getvalue()
        )
        if result:
            st.success(
                f"Imported {result.get('filamentsImported')} filaments, "
                f"{result.get('modelsImported')} models, {result.get('printsImported')} prints"
            )
            for name in result.get("modelsSkipped", []):
                st.warning(f"Skipped existing model: {name}")

# API Health Check quick indicator
st.sidebar.subheader("API Status")
health_ok = False
for base in _base_candidates():
    root = base.replace("/api/v1", "")
    try:
        response = requests.get(f"{root}/health", timeout=2)
    except requests.RequestException:
        continue
    if response.status_code == 200:
        st.session_state["api_base_url"] = base
        st.sidebar.success("API is healthy")
        health_ok = True
        break
if not health_ok:
    st.sidebar.error("Cannot connect to API")
