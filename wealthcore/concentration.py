"""Grouping, allocation and concentration-risk detection for investible assets.

Only investible assets with a non-zero value take part. Each dimension
partitions that set completely: assets with no key for a dimension fall into
an "Uncategorized" bucket, so group values always sum to the portfolio total.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .currency import warn_missing_rates
from .models import (
    AllocationGroup,
    Asset,
    ConcentrationRisk,
    Dimension,
    DriftRecord,
    Settings,
    Severity,
)
from .utils.numbers import safe_float
from .valuation import asset_value

_log = logging.getLogger(__name__)

__all__ = [
    "UNCATEGORIZED",
    "THRESHOLD_KEYS",
    "SEVERITY_MULTIPLIERS",
    "group_assets",
    "allocation",
    "herfindahl_index",
    "detect_concentration_risks",
    "allocation_drift",
]

UNCATEGORIZED = "Uncategorized"

# Dimension -> key in Settings.thresholds
THRESHOLD_KEYS: Dict[Dimension, str] = {
    Dimension.SINGLE_ASSET: "single_asset",
    Dimension.ASSET_CLASS: "asset_class",
    Dimension.CURRENCY: "currency",
    Dimension.PLATFORM: "platform",
    Dimension.SECTOR: "sector",
    Dimension.REGION: "region",
    Dimension.PORTFOLIO: "portfolio",
}

# A group is "high" severity above threshold x multiplier
SEVERITY_MULTIPLIERS: Dict[Dimension, float] = {
    Dimension.SINGLE_ASSET: 2.0,
    Dimension.ASSET_CLASS: 1.2,
    Dimension.CURRENCY: 1.1,
    Dimension.PLATFORM: 1.5,
    Dimension.SECTOR: 1.5,
    Dimension.REGION: 1.1,
    Dimension.PORTFOLIO: 1.2,
}

_ATTRS = {
    Dimension.ASSET_CLASS: "asset_class",
    Dimension.CURRENCY: "currency",
    Dimension.PLATFORM: "platform",
    Dimension.SECTOR: "sector",
    Dimension.REGION: "region",
    Dimension.PORTFOLIO: "portfolio",
}

_FRAME_COLS = ["id", "key", "label", "value"]


def _key(value) -> str:
    if value is None:
        return UNCATEGORIZED
    s = str(value).strip()
    return s or UNCATEGORIZED


def _value_frame(assets: Sequence[Asset], settings: Settings, dimension: Dimension) -> pd.DataFrame:
    """id / group key / display label / value, for investible non-zero assets."""
    rows = []
    for a in assets:
        if not a.is_investible:
            continue
        value = asset_value(a, settings)
        if value == 0:
            continue
        if dimension == Dimension.SINGLE_ASSET:
            key, label = a.id, (a.name or a.id)
        else:
            key = _key(getattr(a, _ATTRS[dimension]))
            label = key
            if dimension == Dimension.PLATFORM and key != UNCATEGORIZED:
                platform = settings.platform_by_id(key)
                label = platform.name if platform else key
        rows.append({"id": a.id, "key": key, "label": label, "value": value})
    return pd.DataFrame(rows, columns=_FRAME_COLS)


def group_assets(assets: Sequence[Asset], settings: Settings,
                 dimension: Dimension) -> List[AllocationGroup]:
    """Groups ordered by value (largest first), ties broken by name."""
    df = _value_frame(assets, settings, dimension)
    if df.empty:
        return []
    total = float(df["value"].sum())
    grouped = (
        df.groupby("key", sort=False)
        .agg(label=("label", "first"), value=("value", "sum"), count=("id", "size"))
        .sort_values(["value", "label"], ascending=[False, True])
    )
    ids: Dict[str, List[str]] = {}
    for key, asset_id in zip(df["key"], df["id"]):
        ids.setdefault(key, []).append(asset_id)
    out = []
    for key, row in grouped.iterrows():
        value = float(row["value"])
        out.append(AllocationGroup(
            name=str(row["label"]),
            value=value,
            count=int(row["count"]),
            percentage=value / total * 100 if total else 0.0,
            asset_ids=tuple(ids[key]),
        ))
    return out


def allocation(assets: Sequence[Asset], settings: Settings, dimension: Dimension) -> pd.DataFrame:
    """Allocation table (name, value, count, percentage) for charts."""
    groups = group_assets(assets, settings, dimension)
    return pd.DataFrame(
        [{"name": g.name, "value": g.value, "count": g.count, "percentage": g.percentage} for g in groups],
        columns=["name", "value", "count", "percentage"],
    )


def herfindahl_index(assets: Sequence[Asset], settings: Settings, dimension: Dimension) -> float:
    """Sum of squared group shares: 1/N (even spread) .. 1.0 (one group). Empty -> 1.0."""
    groups = group_assets(assets, settings, dimension)
    if not groups:
        return 1.0
    shares = np.array([g.percentage / 100 for g in groups], dtype=float)
    return float((shares ** 2).sum())


def detect_concentration_risks(assets: Sequence[Asset], settings: Settings,
                               thresholds: Optional[Mapping[str, float]] = None) -> List[ConcentrationRisk]:
    """Flag every group whose share exceeds its dimension threshold.

    Records come in dimension order (see `Dimension`), then by group value.
    Dimensions without a configured threshold are not checked.
    """
    thresholds = settings.thresholds if thresholds is None else thresholds
    warn_missing_rates([a.currency for a in assets if a.is_investible],
                       settings.reporting_currency, settings.exchange_rates)
    risks: List[ConcentrationRisk] = []
    for dimension in Dimension:
        key = THRESHOLD_KEYS[dimension]
        if thresholds.get(key) is None:
            _log.debug(f"No threshold for {key}; skipping")
            continue
        threshold = safe_float(thresholds.get(key))
        high_above = threshold * SEVERITY_MULTIPLIERS[dimension]
        for group in group_assets(assets, settings, dimension):
            if group.percentage <= threshold:
                continue
            risks.append(ConcentrationRisk(
                dimension=dimension,
                name=group.name,
                percentage=group.percentage,
                threshold=threshold,
                severity=Severity.HIGH if group.percentage > high_above else Severity.MEDIUM,
            ))
    return risks


def allocation_drift(assets: Sequence[Asset], settings: Settings,
                     drift_threshold: Optional[float] = None) -> List[DriftRecord]:
    """Asset classes whose share drifts from the target allocation by more than the threshold.

    Advisory only: no trade sizing beyond the value gap per class.
    """
    if drift_threshold is None:
        drift_threshold = safe_float(settings.thresholds.get("rebalancing_drift", 5))
    groups = {g.name: g.value for g in group_assets(assets, settings, Dimension.ASSET_CLASS)}
    total = sum(groups.values())
    if total == 0:
        return []

    classes = list(settings.target_allocation) + [c for c in groups if c not in settings.target_allocation]
    out = []
    for cls in classes:
        target_pct = safe_float(settings.target_allocation.get(cls))
        current_value = groups.get(cls, 0.0)
        current_pct = current_value / total * 100
        drift = current_pct - target_pct
        if abs(drift) <= drift_threshold:
            continue
        out.append(DriftRecord(
            asset_class=cls,
            current_pct=current_pct,
            target_pct=target_pct,
            drift_pct=drift,
            current_value=current_value,
            target_value=target_pct / 100 * total,
            action="sell" if drift > 0 else "buy",
            severity=Severity.HIGH if abs(drift) > drift_threshold * 2 else Severity.MEDIUM,
        ))
    out.sort(key=lambda r: (r.severity != Severity.HIGH, -abs(r.drift_pct), r.asset_class))
    return out
