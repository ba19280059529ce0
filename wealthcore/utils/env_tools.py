from dotenv import dotenv_values
import copy
import os
from pathlib import Path

def load_env_once(dotenv_path: str | None = None):
    """
    Load .env without relying on find_dotenv() to avoid assertion errors in -c / REPL contexts.
    Existing environment variables are never overridden.
    """
    dp = dotenv_path or ".env"
    if not os.environ.get("_WEALTHCORE_ENV_LOADED", ""):
        if Path(dp).exists():
            env = dotenv_values(dp)
            for k, v in env.items():
                if v is not None and k not in os.environ:
                    os.environ[k] = str(v)
        os.environ["_WEALTHCORE_ENV_LOADED"] = "1"

# === Safe config bootstrap ==================================================
try:
    import yaml
except ImportError:
    yaml = None

# Rates are quoted as: 1 unit of foreign currency = X units of reporting currency
_DEFAULTS = {
    "settings": {
        "reporting_currency": "ZAR",
        "exchange_rates": {"USD": 18.50, "EUR": 19.80, "GBP": 23.20},
        "expected_returns": {
            "Offshore Equity": 11.0,
            "SA Equity": 12.0,
            "SA Bonds": 8.5,
            "Offshore Bonds": 6.5,
            "Cash": 5.0,
            "Property": 9.0,
            "Crypto": 15.0,
        },
        "target_allocation": {
            "Offshore Equity": 40,
            "SA Equity": 20,
            "SA Bonds": 15,
            "Offshore Bonds": 10,
            "Cash": 10,
            "Property": 5,
            "Crypto": 0,
        },
        "thresholds": {
            "single_asset": 10,
            "asset_class": 50,
            "currency": 70,
            "platform": 40,
            "sector": 30,
            "region": 80,
            "portfolio": 60,
            "rebalancing_drift": 5,
        },
        "marginal_tax_rate": 39,
        "platforms": [],
        "advisor_fee": {"enabled": False, "type": "percentage", "amount": 1.0, "currency": "ZAR"},
    },
    "projection": {"years": 30, "inflation_rate": 5.0, "growth_rate": 9.0},
    "recommendations": {
        "high_total_fees": 100000,
        "advisor_rate_ceiling": 1.0,
        "ter_ceiling": 1.0,
        "reduction_savings_floor": 500000,
    },
}

def _find_config() -> Path | None:
    env_path = os.getenv("WEALTHCORE_CONFIG")
    if env_path:
        return Path(env_path)
    # start at this file and walk up looking for a 'config' directory
    here = Path(__file__).resolve()
    for parent in [here.parent] + list(here.parents):
        if (parent / "config" / "config.yaml").exists():
            return parent / "config" / "config.yaml"
    return None

def load_config(config_path: str | Path | None = None) -> dict:
    """Load YAML config safely, backfilling any missing keys with built-in defaults."""
    p = Path(config_path) if config_path else _find_config()
    if yaml is None or p is None or not p.exists():
        return copy.deepcopy(_DEFAULTS)
    with p.open("r") as f:
        cfg = yaml.safe_load(f) or {}
    # backfill minimal keys if cfg is partial
    for section, defaults in _DEFAULTS.items():
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}
        for k, v in defaults.items():
            cfg[section].setdefault(k, copy.deepcopy(v))
    cfg["settings"]["thresholds"] = {**_DEFAULTS["settings"]["thresholds"], **(cfg["settings"]["thresholds"] or {})}
    return cfg
# ===========================================================================
