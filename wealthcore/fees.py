"""Current-year platform, advisor and TER costs.

Platform fees dispatch on the platform's fee structure (percentage, tiered
percentage, fixed periodic amount, or percentage plus fixed). Advisor fees are
either a percentage of eligible value or a fixed amount. TER is informational
only: it is already inside unit prices and never charged on top.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .currency import to_reporting, warn_missing_rates
from .models import (
    AdvisorFees,
    Asset,
    AssetPlatformFee,
    CombinedFee,
    FeeBreakdown,
    FeeRecommendation,
    FeeStructure,
    FeeTier,
    FixedFee,
    LifetimeProjection,
    PercentageFee,
    Platform,
    PlatformFees,
    PlatformFeeSummary,
    Settings,
    TerImpact,
    TieredPercentageFee,
)
from .utils.numbers import safe_float
from .valuation import asset_value

_log = logging.getLogger(__name__)

__all__ = [
    "tiered_fee",
    "annualised_fixed_fee",
    "structure_fee",
    "asset_platform_fee",
    "platform_fees",
    "advisor_fees",
    "ter_impact",
    "total_annual_fees",
    "RECOMMENDATION_LIMITS",
    "fee_optimization_recommendations",
]

# Trigger levels for fee_optimization_recommendations (reporting currency, %)
RECOMMENDATION_LIMITS: Mapping[str, float] = {
    "high_total_fees": 100000,
    "advisor_rate_ceiling": 1.0,
    "ter_ceiling": 1.0,
    "reduction_savings_floor": 500000,
}


def tiered_fee(value: float, tiers: Sequence[FeeTier]) -> float:
    """Marginal tiered fee: each band consumes min(remaining, band ceiling) at its own rate.

    Value left over once every band is used is not charged.
    """
    fee = 0.0
    remaining = safe_float(value)
    for tier in tiers:
        if remaining <= 0:
            break
        amount = min(remaining, safe_float(tier.up_to))
        fee += amount * (safe_float(tier.rate) / 100)
        remaining -= amount
    return fee


def annualised_fixed_fee(fee: FixedFee, settings: Settings) -> float:
    """Periodic amount x periods per year, converted to the reporting currency."""
    annual = safe_float(fee.amount) * fee.frequency.periods_per_year
    currency = fee.currency or settings.reporting_currency
    return to_reporting(annual, currency, settings.reporting_currency, settings.exchange_rates)


def structure_fee(structure: FeeStructure, value: float, settings: Settings) -> float:
    """Annual fee in reporting currency charged by `structure` on a holding worth `value`."""
    if isinstance(structure, PercentageFee):
        return safe_float(value) * (safe_float(structure.rate) / 100)
    if isinstance(structure, TieredPercentageFee):
        return tiered_fee(value, structure.tiers)
    if isinstance(structure, FixedFee):
        return annualised_fixed_fee(structure, settings)
    if isinstance(structure, CombinedFee):
        return (structure_fee(structure.percentage, value, settings)
                + structure_fee(structure.fixed, value, settings))
    raise TypeError(f"Unsupported fee structure: {type(structure).__name__}")


def asset_platform_fee(asset: Asset, platform: Optional[Platform], settings: Settings) -> float:
    if platform is None or platform.fee_structure is None:
        return 0.0
    return structure_fee(platform.fee_structure, asset_value(asset, settings), settings)


def platform_fees(assets: Sequence[Asset], settings: Settings) -> PlatformFees:
    """Platform fees per platform and in total.

    Only investible assets whose platform id matches a configured platform are
    charged; anything else is skipped.
    """
    fees: Dict[str, float] = {}
    lines: Dict[str, List[AssetPlatformFee]] = {}
    names: Dict[str, str] = {}
    total = 0.0
    for asset in assets:
        if not asset.is_investible or not asset.platform:
            continue
        platform = settings.platform_by_id(asset.platform)
        if platform is None:
            _log.debug(f"Asset {asset.id} references unknown platform {asset.platform}; skipped")
            continue
        fee = asset_platform_fee(asset, platform, settings)
        names.setdefault(platform.id, platform.name)
        fees[platform.id] = fees.get(platform.id, 0.0) + fee
        lines.setdefault(platform.id, []).append(AssetPlatformFee(asset.id, asset.name, fee))
        total += fee

    by_platform = tuple(
        PlatformFeeSummary(
            platform_id=pid,
            platform_name=names[pid],
            fee=fees[pid],
            asset_count=len(lines[pid]),
            assets=tuple(lines[pid]),
        )
        for pid in fees
    )
    return PlatformFees(by_platform=by_platform, total=total)


def advisor_fees(assets: Sequence[Asset], settings: Settings) -> AdvisorFees:
    config = settings.advisor_fee
    if not config.enabled or config.fee is None:
        return AdvisorFees(total=0.0, rate=0.0, applied_to_value=0.0, asset_count=0)

    eligible = [a for a in assets if a.is_investible and not a.exclude_from_advisor_fee]
    value = sum((asset_value(a, settings) for a in eligible), 0.0)

    if isinstance(config.fee, PercentageFee):
        rate = safe_float(config.fee.rate)
        return AdvisorFees(total=value * rate / 100, rate=rate,
                           applied_to_value=value, asset_count=len(eligible))
    if isinstance(config.fee, FixedFee):
        return AdvisorFees(total=annualised_fixed_fee(config.fee, settings), rate=None,
                           applied_to_value=value, asset_count=len(eligible))
    raise TypeError(f"Unsupported advisor fee: {type(config.fee).__name__}")


def ter_impact(assets: Sequence[Asset], settings: Settings) -> TerImpact:
    total_value = 0.0
    drag = 0.0
    for asset in assets:
        if not asset.is_investible:
            continue
        value = asset_value(asset, settings)
        total_value += value
        drag += value * (safe_float(asset.ter) / 100)
    average = drag / total_value * 100 if total_value > 0 else 0.0
    return TerImpact(average_ter=average, annual_impact=drag, total_value=total_value)


def total_annual_fees(assets: Sequence[Asset], settings: Settings) -> FeeBreakdown:
    warn_missing_rates([a.currency for a in assets if a.is_investible],
                       settings.reporting_currency, settings.exchange_rates)
    platform = platform_fees(assets, settings)
    advisor = advisor_fees(assets, settings)
    ter = ter_impact(assets, settings)
    explicit = platform.total + advisor.total
    return FeeBreakdown(
        platform_fees=platform,
        advisor_fees=advisor,
        ter_impact=ter,
        total_explicit_fees=explicit,
        total_with_ter=explicit + ter.annual_impact,
    )


def fee_optimization_recommendations(fees: FeeBreakdown, projection: LifetimeProjection,
                                     limits: Optional[Mapping[str, float]] = None) -> List[FeeRecommendation]:
    """Advisory notes for the fees screen, highest priority first."""
    limits = {**RECOMMENDATION_LIMITS, **(limits or {})}
    years = projection.projection_years
    out: List[FeeRecommendation] = []

    if fees.total_with_ter > safe_float(limits.get("high_total_fees")):
        out.append(FeeRecommendation(
            priority="high",
            title="High total fees detected",
            description=(f"Your annual fees are {fees.total_with_ter:.0f}. Over {years} years, "
                         f"this amounts to {projection.cumulative_fees_nominal:.0f} in fees."),
            action="Review platform and advisor fees for potential savings.",
        ))

    advisor_rate = fees.advisor_fees.rate
    if advisor_rate and advisor_rate > safe_float(limits.get("advisor_rate_ceiling")):
        out.append(FeeRecommendation(
            priority="medium",
            title="Advisor fee above 1%",
            description=f"Your advisor charges {advisor_rate}% annually. Industry average is 0.5-1.0%.",
            action="Consider negotiating a lower rate or exploring robo-advisors.",
        ))

    if fees.ter_impact.average_ter > safe_float(limits.get("ter_ceiling")):
        out.append(FeeRecommendation(
            priority="medium",
            title="High average TER",
            description=(f"Your average TER is {fees.ter_impact.average_ter:.2f}%. "
                         "Passive index funds typically have TERs below 0.5%."),
            action="Consider switching to lower-cost index funds or ETFs.",
        ))

    half = projection.scenario(0.5)
    if half is not None and half.savings_vs_baseline > safe_float(limits.get("reduction_savings_floor")):
        out.append(FeeRecommendation(
            priority="high",
            title="Significant savings opportunity",
            description=(f"Reducing fees by just 0.5% could save you {half.savings_vs_baseline:.0f} "
                         f"over {years} years."),
            action="Explore lower-cost alternatives for high-fee holdings.",
        ))

    out.sort(key=lambda r: r.priority != "high")
    return out
