"""Field-level cleaners for model-extracted values.

Each validator takes a raw value from the model's JSON and returns a cleaned
value, or ``None`` (an empty list for arrays, ``False`` for booleans) when the
value is absent or unusable.
"""

import math
import re
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import Any

FieldValidator = Callable[[Any], Any]

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d")
_TRUE_STRINGS = frozenset({"true", "yes", "sí", "si", "1"})
_CURRENCY = re.compile(r"€|\$|£|eur(?:os?)?", re.IGNORECASE)
_DOT_THOUSANDS = re.compile(r"^-?\d{1,3}(?:\.\d{3})+$")


def validate_string(value: Any, max_length: int | None = None) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if max_length is not None and len(trimmed) > max_length:
        return trimmed[:max_length].strip()
    return trimmed


def validate_number(value: Any, integer: bool = False) -> float | int | None:
    """Accepts numbers and amount strings such as ``1.234,56 €`` or ``€1,234.56``.

    When both separators appear the last one is the decimal mark. Dots that
    group digits in threes (``1.210``, ``2.500.000``) are thousands separators.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        cleaned = _normalize_amount(value)
        if not cleaned:
            return None
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return round(parsed) if integer else parsed


def _normalize_amount(text: str) -> str:
    cleaned = "".join(_CURRENCY.sub("", text).split())
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")
    if "," in cleaned:
        return cleaned.replace(",", ".") if cleaned.count(",") == 1 else cleaned.replace(",", "")
    if _DOT_THOUSANDS.match(cleaned):
        return cleaned.replace(".", "")
    return cleaned


def validate_date(value: Any) -> str | None:
    """Returns the date as ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).date().isoformat()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(trimmed).date().isoformat()
    except ValueError:
        return None


def validate_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def validate_array(
    value: Any,
    max_items: int | None = None,
    item_validator: FieldValidator | None = None,
) -> list[Any]:
    if not isinstance(value, list):
        return []
    items = value
    if item_validator is not None:
        items = [cleaned for cleaned in map(item_validator, value) if cleaned is not None]
    if max_items is not None:
        items = items[:max_items]
    return list(items)


def validate_enum(value: Any, options: Iterable[str], default: str | None = None) -> str | None:
    if not isinstance(value, str):
        return default
    wanted = value.strip().lower()
    for option in options:
        if option.lower() == wanted:
            return option
    return default


def is_missing(value: Any) -> bool:
    return value is None or value == "" or value == []
