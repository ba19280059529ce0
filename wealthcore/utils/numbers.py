"""Defensive numeric coercion shared by every engine module."""
from __future__ import annotations
import math

import numpy as np


def safe_float(x, default: float = 0.0) -> float:
    """Coerce `x` to float; None, NaN, bools and unparseable values become `default`.

    Infinity is kept: open-ended fee tiers use it as their ceiling.
    """
    if x is None or isinstance(x, bool):
        return float(default)
    try:
        v = float(x)
    except (TypeError, ValueError):
        return float(default)
    if np.isnan(v):
        return float(default)
    return v


def is_usable_rate(rate) -> bool:
    """True for a finite, strictly positive exchange rate."""
    v = safe_float(rate)
    return v > 0 and math.isfinite(v)


__all__ = ["safe_float", "is_usable_rate"]
