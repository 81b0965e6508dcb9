"""Type conversion helpers for API payload decoding."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    """Safely convert ``value`` to ``float`` where possible."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        return value
    if isinstance(value, (int, Decimal)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return float(stripped)
        except ValueError:
            return None
    return None


def to_int(value: Any) -> Optional[int]:
    """Convert quantities such as ``"10.0000"`` to ``int``, truncating any fraction."""

    numeric = to_float(value)
    if numeric is None or not math.isfinite(numeric):
        return None
    return int(numeric)


def to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
