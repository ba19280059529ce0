from __future__ import annotations
from typing import Mapping, Sequence

import numpy as np

from .currency import warn_missing_rates
from .models import Asset, Settings
from .valuation import asset_value, resolve_expected_return

__all__ = ["weighted_return"]


def weighted_return(assets: Sequence[Asset], settings: Settings,
                    expected_returns: Mapping[str, float] | None = None) -> float:
    """Value-weighted expected annual return (%) of the investible assets.

    Each asset contributes its override, else its class default, else 0%.
    Returns 0 for an empty or zero-value portfolio.
    """
    table = settings.expected_returns if expected_returns is None else expected_returns
    investible = [a for a in assets if a.is_investible]
    warn_missing_rates([a.currency for a in investible], settings.reporting_currency, settings.exchange_rates)
    values = np.array([asset_value(a, settings) for a in investible], dtype=float)
    total = values.sum() if values.size else 0.0
    if total == 0:
        return 0.0
    rates = np.array([resolve_expected_return(a, table) for a in investible], dtype=float)
    return float(np.dot(values / total, rates))

