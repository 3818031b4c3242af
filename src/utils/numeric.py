"""Numeric helpers shared by the analytics modules."""

from __future__ import annotations

import math
from typing import Any

import numpy as np


def safe_float(value: Any, default: float | None = None) -> float | None:
    """Convert a value to a finite float, returning *default* on failure."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def round_or_none(value: float | None, digits: int = 2) -> float | None:
    """Round *value*, mapping None / NaN / inf to None."""
    if value is None:
        return None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, digits)


def round_matrix(matrix: np.ndarray, digits: int = 4) -> list[list[float]]:
    """Round a 2-D array into nested plain-float lists."""
    return [[round(float(v), digits) for v in row] for row in np.asarray(matrix)]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
