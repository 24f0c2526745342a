"""Normalization helpers.

Centralizes defensive parsing of vendor values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def safe_bool(value: Any) -> bool | None:
    """Coerce vendor booleans (``True``, ``1``, ``"true"``, ``"on"``...)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return None


def unwrap_data(payload: Any) -> Any:
    """Unwrap the vendor ``{"data": [...]}`` / ``{"data": {...}}`` envelope.

    List envelopes resolve to their first element; anything else is
    returned unchanged.
    """
    if not isinstance(payload, dict) or "data" not in payload:
        return payload
    nested = payload["data"]
    if isinstance(nested, list):
        return nested[0] if nested else {}
    if isinstance(nested, dict):
        return nested
    return payload
