"""Field-level defaulting for records read from older blobs or import files.

Every function takes one raw JSON object and returns a cleaned copy using the
current key names. Optional fields that are malformed are dropped; missing
required fields get defaults. Only records that cannot be made sense of at
all (not an object, model without a name) raise ``ValueError``.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Optional

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
ALLOWED_DIAMETERS = (1.75, 2.85)
QUALITY_RATINGS = ("excellent", "good", "fair", "poor")

DEFAULT_BRAND = "Unknown"
DEFAULT_MATERIAL = "Unknown"
DEFAULT_COLOR = "Unknown"
DEFAULT_COLOR_HEX = "#cccccc"
DEFAULT_DIAMETER = 1.75


def to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def to_int_id(value: Any) -> Optional[int]:
    """Return an integral id, or None when the value cannot serve as one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _require_object(raw: Any, kind: str) -> dict:
    if not isinstance(raw, dict):
        raise ValueError(f"{kind} record is not an object: {raw!r}")
    return raw


def _temperature(value: Any) -> Optional[dict]:
    if not isinstance(value, dict):
        return None
    result = {}
    for bound in ("min", "max"):
        raw = value.get(bound)
        if raw is None or raw == "":
            result[bound] = None
            continue
        number = to_float(raw)
        if number is None:
            return None
        result[bound] = int(number)
    if result["min"] is None and result["max"] is None:
        return None
    return result


def migrate_filament(raw: Any) -> dict:
    raw = _require_object(raw, "Filament")
    material = _text(raw.get("materialType")) or _text(raw.get("material"))
    color_hex = raw.get("colorHex")
    if not isinstance(color_hex, str) or not HEX_COLOR_RE.match(color_hex):
        color_hex = DEFAULT_COLOR_HEX
    diameter = to_float(raw.get("diameter"))
    if diameter not in ALLOWED_DIAMETERS:
        diameter = DEFAULT_DIAMETER
    in_stock = raw.get("inStock")

    record = {
        "id": to_int_id(raw.get("id")),
        "brand": _text(raw.get("brand")) or DEFAULT_BRAND,
        "materialType": material or DEFAULT_MATERIAL,
        "color": _text(raw.get("color")) or _text(raw.get("colorName")) or DEFAULT_COLOR,
        "colorHex": color_hex,
        "diameter": diameter,
        # Left at 0 when unusable; the save check reports it
        "weight": to_float(raw.get("weight")) or 0.0,
        "inStock": in_stock if isinstance(in_stock, bool) else True,
        "deletionBlocked": raw.get("deletionBlocked") is True,
    }
    price = to_float(raw.get("purchasePrice"))
    if price is not None and price >= 0:
        record["purchasePrice"] = price
    temperature = _temperature(raw.get("temperature"))
    if temperature is not None:
        record["temperature"] = temperature
    for key in ("location", "notes", "purchaseDate", "lastModified"):
        if isinstance(raw.get(key), str):
            record[key] = raw[key]
    return record


def migrate_requirement(raw: Any) -> dict:
    raw = _require_object(raw, "Requirement")
    return {
        "filamentId": to_int_id(raw.get("filamentId")),
        "materialType": _text(raw.get("materialType")) or _text(raw.get("material")) or "",
        "color": _text(raw.get("color")) or _text(raw.get("colorName")) or "",
    }


def migrate_model(raw: Any) -> dict:
    raw = _require_object(raw, "Model")
    name = _text(raw.get("name"))
    if not name:
        raise ValueError(f"Model record has no name: {raw!r}")
    requirements = raw.get("requirements")
    record = {
        "id": to_int_id(raw.get("id")),
        "name": name,
        "requirements": [
            migrate_requirement(req)
            for req in (requirements if isinstance(requirements, list) else [])
            if isinstance(req, dict)
        ],
    }
    if isinstance(raw.get("link"), str):
        record["link"] = raw["link"]
    return record


def migrate_usage(raw: Any) -> dict:
    raw = _require_object(raw, "Filament usage")
    weight = to_float(raw.get("actualWeight"))
    if weight is None:
        weight = to_float(raw.get("weight"))
    usage = {
        "filamentId": to_int_id(raw.get("filamentId")),
        "materialType": _text(raw.get("materialType")) or _text(raw.get("material")) or "",
        "color": _text(raw.get("color")) or _text(raw.get("colorName")),
        "actualWeight": weight if weight is None or weight >= 0 else None,
    }
    return {k: v for k, v in usage.items() if v is not None or k == "filamentId"}


def _print_date(value: Any, today: dt.date) -> str:
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value[:10]).isoformat()
        except ValueError:
            pass
    return today.isoformat()


def migrate_print(raw: Any, today: Optional[dt.date] = None) -> dict:
    raw = _require_object(raw, "Print")
    today = today or dt.date.today()

    usages_raw = raw.get("filamentUsages")
    if not isinstance(usages_raw, list):
        usages_raw = raw.get("filaments")
    if isinstance(usages_raw, list):
        usages = [migrate_usage(u) for u in usages_raw if isinstance(u, dict)]
    elif _text(raw.get("color")):
        # Single-colour history from before multi-filament prints
        usages = [
            migrate_usage(
                {
                    "filamentId": raw.get("filamentId"),
                    "color": raw.get("color"),
                    "material": raw.get("material"),
                    "weight": raw.get("weight"),
                }
            )
        ]
    else:
        usages = []

    record = {
        "id": to_int_id(raw.get("id")),
        "modelId": to_int_id(raw.get("modelId")),
        "date": _print_date(raw.get("date"), today),
        "filamentUsages": usages,
    }
    if _text(raw.get("modelName")):
        record["modelName"] = raw["modelName"].strip()
    rating = raw.get("qualityRating")
    if rating in QUALITY_RATINGS:
        record["qualityRating"] = rating
    duration = to_float(raw.get("duration"))
    if duration is not None and duration >= 0:
        record["duration"] = duration
    if isinstance(raw.get("notes"), str):
        record["notes"] = raw["notes"]
    return record
