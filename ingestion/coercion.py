"""
Total conversions from raw source fields to typed values.

None of these raise. A field that cannot be converted becomes None (or
an empty container for JSON fields), so one bad value never costs us the
rest of the row.
"""

import json
import math
import re
import warnings
from typing import Any, Callable, Optional, Union

import pandas as pd

_NUMBER_NOISE = re.compile(r"[$,\s]")


def _clean(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    text = _NUMBER_NOISE.sub("", str(raw))
    return text or None


def to_number(raw: Any) -> Optional[float]:
    """Parse ``"$1,200.50"``-style values into a float"""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = _clean(raw)
        if text is None:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    return value if math.isfinite(value) else None


def to_integer(raw: Any) -> Optional[int]:
    """Base-10 integer; decimal input is truncated toward zero"""
    value = to_number(raw)
    if value is None:
        return None
    return int(value)


def to_timestamp(raw: Any) -> Optional[str]:
    """Parse a calendar date/time into an ISO-8601 UTC string"""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    with warnings.catch_warnings():
        # Format inference warns for every ambiguous string
        warnings.simplefilter("ignore", UserWarning)
        try:
            parsed = pd.to_datetime(text, errors="coerce", utc=True)
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(parsed):
        return None
    return parsed.isoformat()


def to_json(raw: Any, shape: Callable[[], Union[dict, list]] = dict) -> Union[dict, list]:
    """
    Decode a JSON-encoded field.

    ``shape`` is ``dict`` for object-shaped fields and ``list`` for
    array-shaped ones; it is both the expected type and the fallback.
    """
    if isinstance(raw, (dict, list)):
        value = raw
    else:
        if raw is None or not str(raw).strip():
            return shape()
        try:
            value = json.loads(raw)
        except (ValueError, TypeError, RecursionError):
            return shape()
    if not isinstance(value, shape):
        return shape()
    return value
