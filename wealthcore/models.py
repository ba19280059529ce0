"""Immutable snapshot types consumed and produced by the engine.

Input records (Asset, Platform, Settings, ...) are built by the surrounding
application, usually through `wealthcore.settings`. Output records are plain
frozen dataclasses; call `dataclasses.asdict` (or `to_dict`) to serialise.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple, Union

import pandas as pd

__all__ = [
    "AssetType",
    "AccountType",
    "FeeFrequency",
    "Dimension",
    "Severity",
    "Asset",
    "Liability",
    "FeeTier",
    "PercentageFee",
    "FixedFee",
    "CombinedFee",
    "TieredPercentageFee",
    "FeeStructure",
    "Platform",
    "AdvisorFeeConfig",
    "Settings",
    "AllocationGroup",
    "ConcentrationRisk",
    "DriftRecord",
    "AssetPlatformFee",
    "PlatformFeeSummary",
    "PlatformFees",
    "AdvisorFees",
    "TerImpact",
    "FeeBreakdown",
    "ProjectionYear",
    "WhatIfScenario",
    "ProjectionSummary",
    "LifetimeProjection",
    "FeeRecommendation",
]


class AssetType(str, Enum):
    INVESTIBLE = "Investible"
    NON_INVESTIBLE = "Non-Investible"


class AccountType(str, Enum):
    TAX_FREE = "TFSA"
    RETIREMENT = "RA"
    TAXABLE = "Taxable"


class FeeFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @property
    def periods_per_year(self) -> int:
        return {"monthly": 12, "quarterly": 4, "annual": 1}[self.value]


class Dimension(str, Enum):
    """Concentration dimensions, in reporting order."""
    SINGLE_ASSET = "Single Asset"
    ASSET_CLASS = "Asset Class"
    CURRENCY = "Currency"
    PLATFORM = "Platform"
    SECTOR = "Sector"
    REGION = "Region"
    PORTFOLIO = "Portfolio"


class Severity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================================
# Inputs
# ============================================================================

@dataclass(frozen=True)
class Asset:
    id: str
    name: str
    asset_class: str
    currency: str
    units: float = 0.0
    current_price: float = 0.0
    cost_price: float = 0.0
    asset_type: AssetType = AssetType.INVESTIBLE
    account_type: AccountType = AccountType.TAXABLE
    platform: Optional[str] = None
    sector: Optional[str] = None
    region: Optional[str] = None
    portfolio: Optional[str] = None
    ter: float = 0.0
    dividend_yield: float = 0.0
    interest_yield: float = 0.0
    expected_return: Optional[float] = None
    exclude_from_advisor_fee: bool = False

    @property
    def is_investible(self) -> bool:
        return self.asset_type == AssetType.INVESTIBLE


@dataclass(frozen=True)
class Liability:
    id: str
    name: str
    principal: float
    currency: str
    interest_rate: float = 0.0


@dataclass(frozen=True)
class FeeTier:
    up_to: float
    rate: float


@dataclass(frozen=True)
class PercentageFee:
    rate: float


@dataclass(frozen=True)
class FixedFee:
    amount: float
    currency: Optional[str] = None  # None = reporting currency
    frequency: FeeFrequency = FeeFrequency.MONTHLY

    def __post_init__(self):
        # accept "monthly" / "Quarterly" as well as the enum
        if not isinstance(self.frequency, FeeFrequency):
            object.__setattr__(self, "frequency", FeeFrequency(str(self.frequency).strip().lower()))


@dataclass(frozen=True)
class CombinedFee:
    percentage: PercentageFee
    fixed: FixedFee


@dataclass(frozen=True)
class TieredPercentageFee:
    tiers: Tuple[FeeTier, ...] = ()


FeeStructure = Union[PercentageFee, FixedFee, CombinedFee, TieredPercentageFee]


@dataclass(frozen=True)
class Platform:
    id: str
    name: str
    fee_structure: Optional[FeeStructure] = None


@dataclass(frozen=True)
class AdvisorFeeConfig:
    enabled: bool = False
    fee: Optional[Union[PercentageFee, FixedFee]] = None


@dataclass(frozen=True)
class Settings:
    reporting_currency: str = "ZAR"
    exchange_rates: Mapping[str, float] = field(default_factory=dict)
    expected_returns: Mapping[str, float] = field(default_factory=dict)
    thresholds: Mapping[str, float] = field(default_factory=dict)
    platforms: Tuple[Platform, ...] = ()
    advisor_fee: AdvisorFeeConfig = field(default_factory=AdvisorFeeConfig)
    target_allocation: Mapping[str, float] = field(default_factory=dict)
    marginal_tax_rate: float = 39.0

    def platform_by_id(self, platform_id: Optional[str]) -> Optional[Platform]:
        if not platform_id:
            return None
        for p in self.platforms:
            if p.id == platform_id:
                return p
        return None


# ============================================================================
# Outputs
# ============================================================================

class _Record:
    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AllocationGroup(_Record):
    name: str
    value: float
    count: int
    percentage: float
    asset_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConcentrationRisk(_Record):
    dimension: Dimension
    name: str
    percentage: float
    threshold: float
    severity: Severity


@dataclass(frozen=True)
class DriftRecord(_Record):
    asset_class: str
    current_pct: float
    target_pct: float
    drift_pct: float
    current_value: float
    target_value: float
    action: str
    severity: Severity


@dataclass(frozen=True)
class AssetPlatformFee(_Record):
    asset_id: str
    asset_name: str
    fee: float


@dataclass(frozen=True)
class PlatformFeeSummary(_Record):
    platform_id: str
    platform_name: str
    fee: float
    asset_count: int
    assets: Tuple[AssetPlatformFee, ...] = ()


@dataclass(frozen=True)
class PlatformFees(_Record):
    by_platform: Tuple[PlatformFeeSummary, ...]
    total: float


@dataclass(frozen=True)
class AdvisorFees(_Record):
    total: float
    rate: Optional[float]
    applied_to_value: float
    asset_count: int


@dataclass(frozen=True)
class TerImpact(_Record):
    average_ter: float
    annual_impact: float
    total_value: float
    note: str = "TER is already reflected in unit prices. This is an estimate of the annual drag on returns."


@dataclass(frozen=True)
class FeeBreakdown(_Record):
    platform_fees: PlatformFees
    advisor_fees: AdvisorFees
    ter_impact: TerImpact
    total_explicit_fees: float
    total_with_ter: float


@dataclass(frozen=True)
class ProjectionYear(_Record):
    year: int
    portfolio_value: float
    portfolio_without_fees: float
    annual_fee: float
    annual_fee_present_value: float
    cumulative_fees: float
    cumulative_fees_present_value: float


@dataclass(frozen=True)
class WhatIfScenario(_Record):
    rate_reduction: float
    current_rate: float
    new_rate: float
    final_portfolio_value: float
    cumulative_fees: float
    savings_vs_baseline: float
    extra_portfolio_value: float


@dataclass(frozen=True)
class ProjectionSummary(_Record):
    average_annual_fee: float
    average_annual_fee_present_value: float
    fees_as_percent_of_final_portfolio: float


@dataclass(frozen=True)
class LifetimeProjection(_Record):
    current_portfolio_value: float
    current_annual_fees: float
    current_explicit_fees: float
    current_explicit_fee_rate: float
    projection_years: int
    inflation_rate: float
    growth_rate: float
    cumulative_fees_nominal: float
    cumulative_fees_present_value: float
    final_portfolio_value: float
    final_portfolio_without_fees: float
    fee_drag: float
    yearly: Tuple[ProjectionYear, ...]
    what_if: Tuple[WhatIfScenario, ...]
    summary: ProjectionSummary

    def scenario(self, rate_reduction: float) -> Optional[WhatIfScenario]:
        for s in self.what_if:
            if abs(s.rate_reduction - rate_reduction) < 1e-9:
                return s
        return None

    def yearly_frame(self) -> pd.DataFrame:
        """Yearly trajectory as a DataFrame indexed by year (empty for a 0-year horizon)."""
        cols = [f for f in ProjectionYear.__dataclass_fields__]
        if not self.yearly:
            return pd.DataFrame(columns=cols).set_index("year")
        return pd.DataFrame([y.to_dict() for y in self.yearly], columns=cols).set_index("year")


@dataclass(frozen=True)
class FeeRecommendation(_Record):
    priority: str
    title: str
    description: str
    action: str
