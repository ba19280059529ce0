from importlib.metadata import version, PackageNotFoundError
__all__ = ["currency", "valuation", "concentration", "returns", "fees", "projection", "settings", "models", "utils"]
try:
    __version__ = version("wealthcore")
except PackageNotFoundError:
    __version__ = "0.0.1"

# Re-export the most used entry points for convenience
from .models import Asset, Settings, Platform, AdvisorFeeConfig  # noqa: E402
from .settings import settings_from_dict, asset_from_dict, default_settings  # noqa: E402
from .fees import total_annual_fees  # noqa: E402
from .projection import calculate_lifetime_fees, project_fees  # noqa: E402
from .concentration import detect_concentration_risks  # noqa: E402
from .returns import weighted_return  # noqa: E402

__all__ += [
    "Asset", "Settings", "Platform", "AdvisorFeeConfig",
    "settings_from_dict", "asset_from_dict", "default_settings",
    "total_annual_fees", "calculate_lifetime_fees", "project_fees",
    "detect_concentration_risks", "weighted_return",
]
