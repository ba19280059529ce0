"""Multi-decade fee projection.

Two trajectories grow at the same nominal rate: one pays fees every year, the
other never does. Each year's fee re-applies the year-0 blended rates
(platform, advisor and TER, each as a share of the year-0 portfolio) to the
current fee-paying balance. This blends all holdings into one aggregate
rather than simulating fees per asset; it is an approximation of what the
fees screen shows, kept on purpose.

Reduced-rate "what if" runs are independent single-rate simulations against
the explicit fee rate (platform + advisor, no TER).
"""
from __future__ import annotations
import logging
from typing import List, Sequence, Tuple

from .fees import total_annual_fees
from .models import (
    Asset,
    FeeBreakdown,
    LifetimeProjection,
    ProjectionSummary,
    ProjectionYear,
    Settings,
    WhatIfScenario,
)
from .utils.numbers import safe_float
from .valuation import investible_assets

_log = logging.getLogger(__name__)

__all__ = [
    "RATE_REDUCTIONS",
    "DEFAULT_YEARS",
    "DEFAULT_INFLATION_RATE",
    "DEFAULT_GROWTH_RATE",
    "project_fees",
    "simulate_flat_rate",
    "calculate_lifetime_fees",
]

# Percentage-point cuts to the explicit fee rate explored by the what-if runs
RATE_REDUCTIONS: Tuple[float, ...] = (0.25, 0.50, 0.75, 1.00)

# Horizon (years) and nominal rates (%) used when the caller passes nothing
DEFAULT_YEARS = 30
DEFAULT_INFLATION_RATE = 5.0
DEFAULT_GROWTH_RATE = 9.0


def simulate_flat_rate(start_value: float, fee_rate: float, years: int,
                       growth_rate: float) -> Tuple[float, float]:
    """Grow then deduct a flat `fee_rate` (%) each year. Returns (final value, cumulative fees)."""
    value = safe_float(start_value)
    fees = 0.0
    for _ in range(max(0, int(years))):
        value *= 1 + growth_rate / 100
        fee = value * (fee_rate / 100)
        value -= fee
        fees += fee
    return value, fees


def project_fees(current_portfolio_value: float, current_fees: FeeBreakdown, years: int = DEFAULT_YEARS,
                 inflation_rate: float = DEFAULT_INFLATION_RATE, growth_rate: float = DEFAULT_GROWTH_RATE,
                 rate_reductions: Sequence[float] = RATE_REDUCTIONS) -> LifetimeProjection:
    start = safe_float(current_portfolio_value)
    years = max(0, int(safe_float(years)))
    inflation_rate = safe_float(inflation_rate)
    growth_rate = safe_float(growth_rate)
    growth = 1 + growth_rate / 100

    if start > 0:
        platform_rate = current_fees.platform_fees.total / start
        advisor_rate = current_fees.advisor_fees.total / start
        ter_rate = current_fees.ter_impact.annual_impact / start
        explicit_rate = current_fees.total_explicit_fees / start * 100
    else:
        _log.debug("Empty portfolio; fee rates set to zero")
        platform_rate = advisor_rate = ter_rate = explicit_rate = 0.0

    with_fees = start
    without_fees = start
    cumulative = 0.0
    cumulative_pv = 0.0
    yearly: List[ProjectionYear] = []
    for year in range(1, years + 1):
        with_fees *= growth
        without_fees *= growth
        fee = with_fees * platform_rate + with_fees * advisor_rate + with_fees * ter_rate
        with_fees -= fee
        pv = fee * (1 + inflation_rate / 100) ** (-year)
        cumulative += fee
        cumulative_pv += pv
        yearly.append(ProjectionYear(
            year=year,
            portfolio_value=with_fees,
            portfolio_without_fees=without_fees,
            annual_fee=fee,
            annual_fee_present_value=pv,
            cumulative_fees=cumulative,
            cumulative_fees_present_value=cumulative_pv,
        ))

    what_if: List[WhatIfScenario] = []
    for reduction in rate_reductions:
        new_rate = explicit_rate - reduction
        if new_rate < 0:
            _log.debug(f"Skipping {reduction}pp reduction: rate would go negative")
            continue
        alt_value, alt_fees = simulate_flat_rate(start, new_rate, years, growth_rate)
        what_if.append(WhatIfScenario(
            rate_reduction=reduction,
            current_rate=explicit_rate,
            new_rate=new_rate,
            final_portfolio_value=alt_value,
            cumulative_fees=alt_fees,
            savings_vs_baseline=cumulative - alt_fees,
            extra_portfolio_value=alt_value - with_fees,
        ))

    summary = ProjectionSummary(
        average_annual_fee=cumulative / years if years else 0.0,
        average_annual_fee_present_value=cumulative_pv / years if years else 0.0,
        fees_as_percent_of_final_portfolio=cumulative / with_fees * 100 if with_fees > 0 else 0.0,
    )
    return LifetimeProjection(
        current_portfolio_value=start,
        current_annual_fees=current_fees.total_with_ter,
        current_explicit_fees=current_fees.total_explicit_fees,
        current_explicit_fee_rate=explicit_rate,
        projection_years=years,
        inflation_rate=inflation_rate,
        growth_rate=growth_rate,
        cumulative_fees_nominal=cumulative,
        cumulative_fees_present_value=cumulative_pv,
        final_portfolio_value=with_fees,
        final_portfolio_without_fees=without_fees,
        fee_drag=without_fees - with_fees,
        yearly=tuple(yearly),
        what_if=tuple(what_if),
        summary=summary,
    )


def calculate_lifetime_fees(assets: Sequence[Asset], settings: Settings, years: int = DEFAULT_YEARS,
                            inflation_rate: float = DEFAULT_INFLATION_RATE,
                            growth_rate: float = DEFAULT_GROWTH_RATE) -> LifetimeProjection:
    """Value the investible portfolio, price this year's fees and project them.

    Configured horizon and rates come from `wealthcore.settings.projection_options`.
    """
    return project_fees(
        investible_assets(assets, settings),
        total_annual_fees(assets, settings),
        years=years,
        inflation_rate=inflation_rate,
        growth_rate=growth_rate,
    )
