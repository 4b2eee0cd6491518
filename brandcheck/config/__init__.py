"""
Config helpers for brand check runs.
"""

from brandcheck.config.loader import (
    get_brand_check_settings,
    load_marketplace_configs,
    load_override_table,
    validate_settings,
)
from brandcheck.config.models import (
    BrandCheckSettings,
    MarketplaceConfig,
    OverrideTable,
    StrategyConfig,
)

__all__ = [
    "BrandCheckSettings",
    "MarketplaceConfig",
    "OverrideTable",
    "StrategyConfig",
    "get_brand_check_settings",
    "load_marketplace_configs",
    "load_override_table",
    "validate_settings",
]
