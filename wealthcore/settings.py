"""Boundary adapter: raw application records -> immutable engine snapshots.

The surrounding application stores camelCase dicts and, in older profiles,
exchange rates keyed by "FROM/TO" pair strings. Both quirks are resolved here
so engine modules only ever see `Settings` with a currency-code keyed rate map.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Mapping, Optional

from .models import (
    AccountType,
    AdvisorFeeConfig,
    Asset,
    AssetType,
    CombinedFee,
    FeeFrequency,
    FeeStructure,
    FeeTier,
    FixedFee,
    Liability,
    PercentageFee,
    Platform,
    Settings,
    TieredPercentageFee,
)
from .utils.env_tools import load_config, load_env_once
from .utils.numbers import is_usable_rate, safe_float

_log = logging.getLogger(__name__)

__all__ = [
    "migrate_legacy_exchange_rates",
    "resolve_exchange_rates",
    "fee_structure_from_dict",
    "platform_from_dict",
    "advisor_fee_from_dict",
    "asset_from_dict",
    "liability_from_dict",
    "settings_from_dict",
    "default_settings",
    "projection_options",
    "recommendation_limits",
]

# camelCase threshold names used by stored profiles
_THRESHOLD_ALIASES = {
    "singleAsset": "single_asset",
    "assetClass": "asset_class",
    "rebalancingDrift": "rebalancing_drift",
    "portfolioTier": "portfolio",
}

_ACCOUNT_TYPES = {
    "tfsa": AccountType.TAX_FREE,
    "tax-free": AccountType.TAX_FREE,
    "tax_free": AccountType.TAX_FREE,
    "ra": AccountType.RETIREMENT,
    "retirement": AccountType.RETIREMENT,
    "taxable": AccountType.TAXABLE,
}


def _get(d: Mapping[str, Any], *keys, default=None):
    """First present key wins: lets records use either camelCase or snake_case."""
    for k in keys:
        if k in d and d[k] is not None:
            return d[k]
    return default


def _opt_str(x) -> Optional[str]:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def migrate_legacy_exchange_rates(legacy: Mapping[str, float], reporting_currency: str) -> Dict[str, float]:
    """{"USD/ZAR": 18.5} -> {"USD": 18.5}; pairs not quoted in the reporting currency are dropped."""
    out: Dict[str, float] = {}
    for pair, rate in (legacy or {}).items():
        base, _, quote = str(pair).partition("/")
        if quote == reporting_currency and base:
            out[base] = safe_float(rate)
    return out


def _load(config: Optional[dict]) -> dict:
    """Explicit config wins; otherwise read `.env` (which may set WEALTHCORE_CONFIG) and the YAML."""
    if config is not None:
        return config
    load_env_once()
    return load_config()


def _is_legacy(rates: Mapping[str, Any]) -> bool:
    return any("/" in str(k) for k in rates)


def resolve_exchange_rates(raw: Mapping[str, Any], fallback: Optional[Mapping[str, float]] = None) -> Dict[str, float]:
    """Canonical rates if present, else migrated legacy pair rates, else `fallback`."""
    legacy_block = raw.get("currency") if isinstance(raw.get("currency"), Mapping) else {}
    reporting = _get(raw, "reportingCurrency", "reporting_currency",
                     default=legacy_block.get("reporting", "ZAR"))
    rates = _get(raw, "exchangeRates", "exchange_rates")
    if rates and not _is_legacy(rates):
        return {str(k): safe_float(v) for k, v in rates.items()}
    if rates:
        return migrate_legacy_exchange_rates(rates, reporting)
    legacy = legacy_block.get("exchangeRates")
    if legacy:
        return migrate_legacy_exchange_rates(legacy, reporting)
    if fallback is None:
        fallback = _load(None)["settings"]["exchange_rates"]
    _log.info("No exchange rates configured; using defaults")
    return {k: float(v) for k, v in fallback.items() if is_usable_rate(v)}


def _fixed_from_dict(d: Mapping[str, Any], default_frequency: FeeFrequency) -> FixedFee:
    freq = str(_get(d, "frequency", default=default_frequency.value)).lower()
    try:
        frequency = FeeFrequency(freq)
    except ValueError:
        frequency = default_frequency
    return FixedFee(amount=safe_float(_get(d, "amount", "fixedAmount", "fixed_amount")),
                    currency=_opt_str(_get(d, "currency")),
                    frequency=frequency)


def fee_structure_from_dict(d: Optional[Mapping[str, Any]]) -> Optional[FeeStructure]:
    if not d:
        return None
    kind = str(d.get("type", "")).lower()
    if kind == "percentage":
        return PercentageFee(rate=safe_float(_get(d, "rate")))
    if kind == "fixed":
        return _fixed_from_dict(d, FeeFrequency.MONTHLY)
    if kind in ("tiered-percentage", "tiered_percentage", "tiered"):
        tiers = tuple(
            FeeTier(up_to=safe_float(_get(t, "upTo", "up_to"), float("inf")), rate=safe_float(_get(t, "rate")))
            for t in d.get("tiers") or ()
        )
        return TieredPercentageFee(tiers=tiers)
    if kind in ("combined", "percentage-plus-fixed"):
        return CombinedFee(percentage=PercentageFee(rate=safe_float(_get(d, "rate", "percentage"))),
                           fixed=_fixed_from_dict(d, FeeFrequency.MONTHLY))
    raise ValueError(f"Unknown fee structure type: {d.get('type')!r}")


def platform_from_dict(d: Mapping[str, Any]) -> Platform:
    pid = str(_get(d, "id", default=""))
    return Platform(id=pid, name=str(_get(d, "name", default=pid)),
                    fee_structure=fee_structure_from_dict(_get(d, "feeStructure", "fee_structure")))


def advisor_fee_from_dict(d: Optional[Mapping[str, Any]]) -> AdvisorFeeConfig:
    if not d:
        return AdvisorFeeConfig()
    kind = str(d.get("type", "percentage")).lower()
    if kind == "fixed":
        fee = _fixed_from_dict(d, FeeFrequency.ANNUAL)
    elif kind == "percentage":
        fee = PercentageFee(rate=safe_float(_get(d, "amount", "rate")))
    else:
        raise ValueError(f"Unknown advisor fee type: {d.get('type')!r}")
    return AdvisorFeeConfig(enabled=bool(d.get("enabled", False)), fee=fee)


def asset_from_dict(d: Mapping[str, Any]) -> Asset:
    asset_type = str(_get(d, "assetType", "asset_type", default="Investible")).strip().lower()
    account = str(_get(d, "accountType", "account_type", default="Taxable")).strip().lower()
    override = _get(d, "expectedReturn", "expected_return")
    return Asset(
        id=str(_get(d, "id", default="")),
        name=str(_get(d, "name", default="")),
        asset_class=str(_get(d, "assetClass", "asset_class", default="")),
        currency=str(_get(d, "currency", default="")),
        units=safe_float(_get(d, "units")),
        current_price=safe_float(_get(d, "currentPrice", "current_price")),
        cost_price=safe_float(_get(d, "costPrice", "cost_price")),
        asset_type=AssetType.NON_INVESTIBLE if asset_type in ("non-investible", "non_investible", "lifestyle")
        else AssetType.INVESTIBLE,
        account_type=_ACCOUNT_TYPES.get(account, AccountType.TAXABLE),
        platform=_opt_str(_get(d, "platform")),
        sector=_opt_str(_get(d, "sector")),
        region=_opt_str(_get(d, "region")),
        portfolio=_opt_str(_get(d, "portfolio", "portfolioTier", "portfolio_tier")),
        ter=safe_float(_get(d, "ter")),
        dividend_yield=safe_float(_get(d, "dividendYield", "dividend_yield")),
        interest_yield=safe_float(_get(d, "interestYield", "interest_yield")),
        expected_return=None if override is None else safe_float(override),
        exclude_from_advisor_fee=bool(_get(d, "excludeFromAdvisorFee", "exclude_from_advisor_fee", default=False)),
    )


def liability_from_dict(d: Mapping[str, Any]) -> Liability:
    return Liability(
        id=str(_get(d, "id", default="")),
        name=str(_get(d, "name", default="")),
        principal=safe_float(_get(d, "principal")),
        currency=str(_get(d, "currency", default="")),
        interest_rate=safe_float(_get(d, "interestRate", "interest_rate")),
    )


def _thresholds(raw: Mapping[str, Any], defaults: Mapping[str, float]) -> Dict[str, float]:
    out = dict(defaults)
    for k, v in (raw or {}).items():
        if v is None:
            continue
        out[_THRESHOLD_ALIASES.get(k, k)] = safe_float(v)
    return out


def settings_from_dict(raw: Mapping[str, Any], config: Optional[dict] = None) -> Settings:
    """Build a Settings snapshot, filling gaps from configuration defaults."""
    base = _load(config)["settings"]
    profile = raw.get("profile") if isinstance(raw.get("profile"), Mapping) else {}
    platforms_raw = _get(raw, "platforms", default=base.get("platforms") or [])
    return Settings(
        reporting_currency=str(_get(raw, "reportingCurrency", "reporting_currency",
                                    default=base["reporting_currency"])),
        exchange_rates=resolve_exchange_rates(raw, fallback=base["exchange_rates"]),
        expected_returns={k: safe_float(v) for k, v in
                          _get(raw, "expectedReturns", "expected_returns", default=base["expected_returns"]).items()},
        thresholds=_thresholds(raw.get("thresholds") or {}, base["thresholds"]),
        platforms=tuple(platform_from_dict(p) for p in platforms_raw),
        advisor_fee=advisor_fee_from_dict(_get(raw, "advisorFee", "advisor_fee", default=base.get("advisor_fee"))),
        target_allocation={k: safe_float(v) for k, v in
                           _get(raw, "targetAllocation", "target_allocation",
                                default=base["target_allocation"]).items()},
        marginal_tax_rate=safe_float(_get(profile, "marginalTaxRate", default=_get(
            raw, "marginalTaxRate", "marginal_tax_rate", default=base["marginal_tax_rate"]))),
    )


def default_settings(config: Optional[dict] = None) -> Settings:
    return settings_from_dict({}, config=config)


def projection_options(config: Optional[dict] = None) -> Dict[str, float]:
    """Configured horizon and rates, as keyword arguments for `calculate_lifetime_fees`."""
    section = _load(config)["projection"]
    return {
        "years": int(safe_float(section.get("years"), 30)),
        "inflation_rate": safe_float(section.get("inflation_rate"), 5.0),
        "growth_rate": safe_float(section.get("growth_rate"), 9.0),
    }


def recommendation_limits(config: Optional[dict] = None) -> Dict[str, float]:
    """Configured trigger levels for `fee_optimization_recommendations`."""
    return {k: safe_float(v) for k, v in _load(config)["recommendations"].items()}
