"""Currency conversion through the reporting currency.

Rates are quoted as "1 unit of foreign currency = X units of reporting
currency"; the reporting currency itself is implicitly 1.0. There are no
cross-rate lookups: every conversion passes through the reporting currency.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping

from .utils.numbers import is_usable_rate, safe_float

_log = logging.getLogger(__name__)

__all__ = [
    "rate_for",
    "to_reporting",
    "from_reporting",
    "convert",
    "validate_exchange_rates",
    "warn_missing_rates",
]


def rate_for(currency: str, rates: Mapping[str, float]) -> float:
    """Rate for `currency`, falling back to 1:1 when missing or unusable.

    Logged at DEBUG only; entry points report missing rates once per call
    through `warn_missing_rates`.
    """
    rate = (rates or {}).get(currency)
    if is_usable_rate(rate):
        return float(rate)
    _log.debug(f"No usable exchange rate for {currency}; using 1:1")
    return 1.0


def to_reporting(amount, from_currency: str, reporting_currency: str, rates: Mapping[str, float]) -> float:
    amount = safe_float(amount)
    if amount == 0:
        return 0.0
    if from_currency == reporting_currency:
        return amount
    return amount * rate_for(from_currency, rates)


def from_reporting(amount, to_currency: str, reporting_currency: str, rates: Mapping[str, float]) -> float:
    amount = safe_float(amount)
    if amount == 0:
        return 0.0
    if to_currency == reporting_currency:
        return amount
    return amount / rate_for(to_currency, rates)


def convert(amount, from_currency: str, to_currency: str, reporting_currency: str,
            rates: Mapping[str, float]) -> float:
    amount = safe_float(amount)
    if from_currency == to_currency:
        return amount
    in_reporting = to_reporting(amount, from_currency, reporting_currency, rates)
    return from_reporting(in_reporting, to_currency, reporting_currency, rates)


def validate_exchange_rates(currencies: Iterable[str], reporting_currency: str,
                            rates: Mapping[str, float]) -> Dict[str, object]:
    """Report which currencies lack a usable rate.

    Returns {"valid": bool, "missing": [codes]} with codes in first-seen order.
    """
    missing: List[str] = []
    for ccy in currencies:
        if ccy == reporting_currency or ccy in missing:
            continue
        if not is_usable_rate((rates or {}).get(ccy)):
            missing.append(ccy)
    return {"valid": not missing, "missing": missing}


def warn_missing_rates(currencies: Iterable[str], reporting_currency: str,
                       rates: Mapping[str, float]) -> List[str]:
    """Log a single warning naming every currency that will convert 1:1."""
    missing = validate_exchange_rates(currencies, reporting_currency, rates)["missing"]
    if missing:
        _log.warning(f"No usable exchange rate for {', '.join(missing)}; converting 1:1 (inaccurate)")
    return missing
