"""
Presence detection engine: strategies, registry, and marketplace cascades.
"""

from brandcheck.detection.base import DetectionContext, DetectionStrategy, DocumentFetcher
from brandcheck.detection.cascade import MarketplaceCascade
from brandcheck.detection.document import FetchedDocument, HtmlDocument
from brandcheck.detection.registry import StrategyRegistry

__all__ = [
    "DetectionContext",
    "DetectionStrategy",
    "DocumentFetcher",
    "FetchedDocument",
    "HtmlDocument",
    "MarketplaceCascade",
    "StrategyRegistry",
]
