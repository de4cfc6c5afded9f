"""Declarative field rules and their evaluation.

A rule is checked in a fixed order and stops at the first failing stage:
presence, type coercion, range, length, pattern, allowed values, custom
predicate.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Pattern, Sequence, Union

from printstack.schemas.print_schemas import QUALITY_RATINGS
from printstack.services.utils.migration import ALLOWED_DIAMETERS

# Value accepted for rules with custom_allowed (the "Other" option of a select)
CUSTOM_VALUE = "Other"


@dataclass
class FieldRule:
    required: bool = False
    optional: bool = False
    type: Optional[str] = None  # only "number" is meaningful
    min: Optional[float] = None
    max: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[Union[str, Pattern]] = None
    allowed: Optional[Union[Sequence[Any], Callable[[], Sequence[Any]]]] = None
    custom_allowed: bool = False
    validate: Optional[Callable[[Any], bool]] = None
    message: Optional[str] = None


@dataclass
class ValidationResult:
    valid: bool
    message: Optional[str] = None
    value: Any = None


@dataclass
class FormValidation:
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class Validator:
    def __init__(self, rules: Mapping[str, FieldRule]):
        self.rules = dict(rules)

    def validate(self, field_name: str, raw_value: Any) -> ValidationResult:
        rule = self.rules.get(field_name)
        if rule is None:
            return ValidationResult(True, value=raw_value)

        # 1. presence
        if _is_blank(raw_value):
            if rule.required and not rule.optional:
                return ValidationResult(False, f"{field_name} is required")
            return ValidationResult(True, value=None)

        # 2. type coercion
        value = raw_value
        if rule.type == "number":
            value = self._to_number(raw_value)
            if value is None:
                return ValidationResult(False, f"{field_name} must be a number")

        # 3. range
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if rule.min is not None and value < rule.min:
                return ValidationResult(
                    False, rule.message or f"{field_name} must be at least {rule.min}"
                )
            if rule.max is not None and value > rule.max:
                return ValidationResult(
                    False, rule.message or f"{field_name} must be at most {rule.max}"
                )

        # 4. length
        if rule.min_length is not None or rule.max_length is not None:
            length = len(value) if isinstance(value, str) else len(str(value))
            if rule.min_length is not None and length < rule.min_length:
                return ValidationResult(
                    False,
                    rule.message
                    or f"{field_name} must be at least {rule.min_length} characters",
                )
            if rule.max_length is not None and length > rule.max_length:
                return ValidationResult(
                    False,
                    rule.message
                    or f"{field_name} must be at most {rule.max_length} characters",
                )

        # 5. pattern
        if rule.pattern is not None:
            pattern = re.compile(rule.pattern) if isinstance(rule.pattern, str) else rule.pattern
            if not pattern.search(str(value)):
                return ValidationResult(
                    False, rule.message or f"{field_name} format is invalid"
                )

        # 6. allowed values
        if rule.allowed is not None:
            allowed = rule.allowed() if callable(rule.allowed) else rule.allowed
            if value not in allowed and not (rule.custom_allowed and value == CUSTOM_VALUE):
                return ValidationResult(
                    False,
                    rule.message
                    or f"{field_name} must be one of: {', '.join(str(a) for a in allowed)}",
                )

        # 7. custom predicate
        if rule.validate is not None and not rule.validate(value):
            return ValidationResult(False, rule.message or f"{field_name} is invalid")

        return ValidationResult(True, value=value)

    def validate_form(
        self, values: Mapping[str, Any], fields: Optional[Iterable[str]] = None
    ) -> FormValidation:
        """Validate every ruled field (or just ``fields``) against ``values``."""
        result = FormValidation(valid=True)
        for field_name in fields if fields is not None else self.rules:
            outcome = self.validate(field_name, values.get(field_name))
            if outcome.valid:
                result.values[field_name] = outcome.value
            else:
                result.valid = False
                result.errors[field_name] = outcome.message
        return result

    @staticmethod
    def _to_number(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value if value == value else None
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
        return number if number == number else None


def _temperature_ok(temp: Any) -> bool:
    if not temp:
        return True
    get = temp.get if isinstance(temp, Mapping) else lambda k: getattr(temp, k, None)
    try:
        low = int(float(get("min")))
        high = int(float(get("max")))
    except (TypeError, ValueError):
        return False
    return low >= 150 and high <= 350 and high > low


def filament_rules(material_types: Callable[[], Sequence[str]]) -> Dict[str, FieldRule]:
    return {
        "brand": FieldRule(
            required=True,
            min_length=2,
            max_length=100,
            pattern=r"^[a-zA-Z0-9\s\-&.,]+$",
            message="Brand must be 2-100 characters (letters, numbers, spaces, -, &, ., ,)",
        ),
        "materialType": FieldRule(
            required=True,
            allowed=material_types,
            custom_allowed=True,
            message="Material type is required",
        ),
        "color": FieldRule(
            required=True,
            min_length=2,
            max_length=50,
            message="Color name must be 2-50 characters",
        ),
        "colorHex": FieldRule(
            required=True,
            pattern=r"^#[0-9A-Fa-f]{6}$",
            message="Color code must be valid HEX format (#RRGGBB)",
        ),
        "weight": FieldRule(
            required=True,
            type="number",
            min=0.1,
            max=10000,
            message="Weight must be between 0.1g and 10,000g",
        ),
        "diameter": FieldRule(
            required=True,
            type="number",
            allowed=ALLOWED_DIAMETERS,
            message="Diameter must be 1.75mm or 2.85mm",
        ),
        "purchasePrice": FieldRule(
            optional=True,
            type="number",
            min=0,
            max=1000,
            message="Price must be between $0 and $1000 per kg",
        ),
        "location": FieldRule(
            optional=True,
            max_length=200,
            message="Location must be 200 characters or less",
        ),
        "temperature": FieldRule(
            optional=True,
            validate=_temperature_ok,
            message="Temperature range must be 150-350°C with max > min",
        ),
    }


def model_rules() -> Dict[str, FieldRule]:
    return {
        "name": FieldRule(required=True, max_length=200, message="Model name required"),
        "link": FieldRule(optional=True, max_length=2000),
    }


def print_rules(today: Callable[[], dt.date]) -> Dict[str, FieldRule]:
    def not_in_future(value: Any) -> bool:
        try:
            day = value if isinstance(value, dt.date) else dt.date.fromisoformat(str(value))
        except ValueError:
            return False
        return day <= today()

    return {
        "date": FieldRule(
            required=True,
            validate=not_in_future,
            message="Print date must be a valid date, not in the future",
        ),
        "actualWeight": FieldRule(
            required=True,
            type="number",
            min=0,
            message="Weight used must be a non-negative number",
        ),
        "qualityRating": FieldRule(optional=True, allowed=QUALITY_RATINGS),
        "duration": FieldRule(
            optional=True,
            type="number",
            min=0,
            message="Print time must be a non-negative number of hours",
        ),
    }
