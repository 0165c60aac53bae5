"""
Value normalisation and coercion utilities with complete NA handling.

Cells are modelled as a small sum type: None | bool | int | float | str.
Coercions follow the loose rules of the browser app the data comes from
(``Number(x)`` / ``String(x)``), so a column behaves the same whichever
side produced it.
"""

import math
import re
import warnings
from datetime import datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

from ..core import MappingTransform, Value

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")
_ISO_DATE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
)

# Interned kind strings
KIND_NULL = "null"
KIND_BOOL = "boolean"
KIND_NUMBER = "number"
KIND_STRING = "string"


def normalize_value(value: Any) -> Value:
    """
    Convert a raw cell to the Value sum type.

    Handles:
    - None, np.nan, pd.NA, pd.NaT -> None
    - numpy scalars -> Python natives
    - Timestamps / datetimes -> ISO strings
    - anything else -> str
    """
    try:
        if pd.isna(value):
            return None
    except (ValueError, TypeError):
        # pd.isna is ambiguous for list-likes
        pass

    if isinstance(value, (pd.Timestamp, datetime, np.datetime64)):
        return pd.Timestamp(value).isoformat()

    if hasattr(value, "item") and not isinstance(value, (bool, int, float, str)):
        try:
            value = value.item()
        except (ValueError, AttributeError):
            pass

    # Order matters: bool before int
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return float(value)
    if isinstance(value, str):
        return value
    return str(value)


def value_kind(value: Value) -> str:
    if value is None:
        return KIND_NULL
    if isinstance(value, bool):
        return KIND_BOOL
    if isinstance(value, (int, float)):
        return KIND_NUMBER
    return KIND_STRING


def to_number(value: Value, default: float = 0.0) -> float:
    """
    Numeric coercion. ``None`` yields ``default``; unparsable input yields NaN.

    Strings are stripped; an empty string is 0, like ``Number('')``.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if _NUMERIC_RE.match(text):
            return float(text)
        if _HEX_RE.match(text):
            return float(int(text, 16))
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
    return math.nan


def type_csv_cell(text: str) -> Value:
    """
    Type one raw CSV cell on its own.

    Empty text is null, ``true``/``false`` (any case) are booleans and plain
    decimal or exponent notation is a number; everything else stays text.
    Each cell is typed independently, so one column may mix kinds.
    """
    if text == "":
        return None
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    stripped = text.strip()
    if _NUMERIC_RE.match(stripped):
        if stripped.lstrip("+-").isdigit():
            return int(stripped)
        return float(stripped)
    return text


def parses_as_number(value: Value) -> bool:
    """True for numbers and for strings that are a clean numeric literal."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return not math.isnan(value)
    text = str(value).strip()
    return bool(text) and (_NUMERIC_RE.match(text) is not None or _HEX_RE.match(text) is not None)


def looks_like_iso_date(value: Value) -> bool:
    return isinstance(value, str) and _ISO_DATE_RE.match(value.strip()) is not None


def to_text(value: Value) -> str:
    """String coercion; ``None`` becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def apply_transform(text: str, transform: MappingTransform) -> str:
    if transform is MappingTransform.UPPERCASE:
        return text.upper()
    if transform is MappingTransform.LOWERCASE:
        return text.lower()
    if transform is MappingTransform.TRIM:
        return text.strip()
    return text


def is_blank(value: Value) -> bool:
    """Profiling null convention: None and the empty string are missing."""
    return value is None or value == ""


def strict_equals(a: Value, b: Value) -> bool:
    """
    Type-strict equality.

    Booleans never equal numbers, numbers never equal strings, ints and floats
    compare numerically, NaN equals nothing, and None equals None.
    """
    kind_a, kind_b = value_kind(a), value_kind(b)
    if kind_a != kind_b:
        return False
    if kind_a == KIND_NULL:
        return True
    return a == b


def parse_date(value: Value) -> Optional[datetime]:
    """
    Parse a cell into a naive UTC datetime, or None when it cannot be parsed.
    """
    text = to_text(value).strip()
    if not text:
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()
