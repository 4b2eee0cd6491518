"""
Detection strategy exports.
"""

from brandcheck.detection.strategies.counted_text import CountedTextStrategy
from brandcheck.detection.strategies.dom_markers import DomMarkerStrategy
from brandcheck.detection.strategies.embedded_state import EmbeddedStateStrategy
from brandcheck.detection.strategies.override import OverrideLookupStrategy
from brandcheck.detection.strategies.search_engine import SearchEngineStrategy

__all__ = [
    "CountedTextStrategy",
    "DomMarkerStrategy",
    "EmbeddedStateStrategy",
    "OverrideLookupStrategy",
    "SearchEngineStrategy",
]
