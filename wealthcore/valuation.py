"""Per-asset valuation, gains and capital-gains-tax estimates."""
from __future__ import annotations
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

from .currency import to_reporting, warn_missing_rates
from .models import AccountType, Asset, Liability, Settings
from .utils.numbers import safe_float

__all__ = [
    "CGT_INCLUSION_RATE",
    "asset_value",
    "cost_basis",
    "unrealized_gain",
    "gain_percentage",
    "capital_gains_tax",
    "net_proceeds",
    "annual_income",
    "resolve_expected_return",
    "gross_assets",
    "investible_assets",
    "non_investible_assets",
    "total_liabilities",
    "net_worth",
    "valuation_frame",
]

# Partial-inclusion CGT: 40% of the gain is taxed at the marginal rate
CGT_INCLUSION_RATE = 0.40


def asset_value(asset: Asset, settings: Settings) -> float:
    """units x current price, in the reporting currency."""
    local = safe_float(asset.units) * safe_float(asset.current_price)
    return to_reporting(local, asset.currency, settings.reporting_currency, settings.exchange_rates)


def cost_basis(asset: Asset, settings: Settings) -> float:
    local = safe_float(asset.units) * safe_float(asset.cost_price)
    return to_reporting(local, asset.currency, settings.reporting_currency, settings.exchange_rates)


def unrealized_gain(asset: Asset, settings: Settings) -> float:
    return asset_value(asset, settings) - cost_basis(asset, settings)


def gain_percentage(asset: Asset) -> float:
    """Price gain in percent; 0 for a zero cost price."""
    cost = safe_float(asset.cost_price)
    if cost == 0:
        return 0.0
    return (safe_float(asset.current_price) - cost) / cost * 100


def capital_gains_tax(gain, marginal_tax_rate) -> float:
    """Flat approximation: gain x inclusion rate x marginal rate. Losses attract no tax."""
    gain = safe_float(gain)
    if gain <= 0:
        return 0.0
    return gain * CGT_INCLUSION_RATE * (safe_float(marginal_tax_rate) / 100)


def net_proceeds(asset: Asset, settings: Settings, marginal_tax_rate: Optional[float] = None) -> float:
    """Value after selling everything today.

    Tax-free and retirement accounts return the full value; withdrawal tax on
    retirement accounts is deferred and not modelled here.
    """
    value = asset_value(asset, settings)
    if asset.account_type in (AccountType.TAX_FREE, AccountType.RETIREMENT):
        return value
    rate = settings.marginal_tax_rate if marginal_tax_rate is None else marginal_tax_rate
    return value - capital_gains_tax(unrealized_gain(asset, settings), rate)


def annual_income(asset: Asset, settings: Settings) -> float:
    """Expected dividend plus interest income per year, in the reporting currency."""
    yield_pct = safe_float(asset.dividend_yield) + safe_float(asset.interest_yield)
    return asset_value(asset, settings) * yield_pct / 100


def resolve_expected_return(asset: Asset, expected_returns: Mapping[str, float]) -> float:
    """Per-asset override if set, else the asset-class default, else 0."""
    if asset.expected_return is not None:
        return safe_float(asset.expected_return)
    return safe_float((expected_returns or {}).get(asset.asset_class))


def gross_assets(assets: Iterable[Asset], settings: Settings) -> float:
    return sum((asset_value(a, settings) for a in assets), 0.0)


def investible_assets(assets: Iterable[Asset], settings: Settings) -> float:
    return gross_assets((a for a in assets if a.is_investible), settings)


def non_investible_assets(assets: Iterable[Asset], settings: Settings) -> float:
    return gross_assets((a for a in assets if not a.is_investible), settings)


def total_liabilities(liabilities: Iterable[Liability], settings: Settings) -> float:
    total = 0.0
    for liab in liabilities:
        total += to_reporting(liab.principal, liab.currency, settings.reporting_currency, settings.exchange_rates)
    return total


def net_worth(assets: Sequence[Asset], liabilities: Sequence[Liability], settings: Settings) -> float:
    warn_missing_rates([a.currency for a in assets] + [liab.currency for liab in liabilities],
                       settings.reporting_currency, settings.exchange_rates)
    return gross_assets(assets, settings) - total_liabilities(liabilities, settings)


def valuation_frame(assets: Sequence[Asset], settings: Settings,
                    marginal_tax_rate: Optional[float] = None) -> pd.DataFrame:
    """One row per asset with value, cost basis, gain, gain %, CGT and net proceeds.

    Indexed by asset id. CGT is only charged on taxable accounts, matching
    `net_proceeds`.
    """
    cols = ["name", "asset_class", "account_type", "value", "cost_basis",
            "unrealized_gain", "gain_pct", "cgt", "net_proceeds"]
    rate = settings.marginal_tax_rate if marginal_tax_rate is None else marginal_tax_rate
    rows = []
    warn_missing_rates([a.currency for a in assets], settings.reporting_currency, settings.exchange_rates)
    for a in assets:
        value = asset_value(a, settings)
        proceeds = net_proceeds(a, settings, rate)
        rows.append({
            "id": a.id,
            "name": a.name,
            "asset_class": a.asset_class,
            "account_type": a.account_type.value,
            "value": value,
            "cost_basis": cost_basis(a, settings),
            "unrealized_gain": unrealized_gain(a, settings),
            "gain_pct": gain_percentage(a),
            "cgt": value - proceeds,
            "net_proceeds": proceeds,
        })
    if not rows:
        return pd.DataFrame(columns=cols, index=pd.Index([], name="id"))
    return pd.DataFrame(rows).set_index("id")[cols]
