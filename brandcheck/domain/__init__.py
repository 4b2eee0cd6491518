"""
brandcheck/domain package marker.
"""

from brandcheck.domain.brand_check import (
    INDETERMINATE,
    BatchReport,
    Brand,
    Marketplace,
    ResultRecord,
    RunSummary,
    StrategyOutcome,
    Verdict,
    is_decisive,
    normalize_brand_key,
)

__all__ = [
    "BatchReport",
    "Brand",
    "INDETERMINATE",
    "Marketplace",
    "ResultRecord",
    "RunSummary",
    "StrategyOutcome",
    "Verdict",
    "is_decisive",
    "normalize_brand_key",
]
