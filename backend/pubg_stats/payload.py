from __future__ import annotations

import math
from typing import Any, Dict, Optional


def dig(value: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing or not a dict."""
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def as_dict(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}


def as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def as_number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = as_number(value, default=math.nan)
    if math.isnan(number):
        return None
    return int(number)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
