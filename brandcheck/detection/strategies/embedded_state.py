"""
Structured-state extraction: count result items in an embedded JSON blob.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from brandcheck.detection.base import DetectionContext, DetectionStrategy
from brandcheck.detection.document import FetchedDocument
from brandcheck.detection.lenient_json import LenientJSONError, loads_lenient
from brandcheck.domain import INDETERMINATE, StrategyOutcome, Verdict
from brandcheck.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_ITEM_PATHS = ("products.items", "search.products", "catalog.products")


class EmbeddedStateStrategy(DetectionStrategy):
    """
    Locate a serialized state object and count search result items.

    Params:
      script_marker: text preceding the JSON inside a <script> tag.
      element_selector: element whose text is the JSON (used when no marker).
      item_paths: dotted paths tried in order until one resolves to a list.
      widget_key_contains: when set, items are read from `widgetStates`
        entries whose key contains this substring; each entry is a JSON string.
    """

    kind = "embedded_state"

    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        if context.document is None:
            return INDETERMINATE

        blob = self.extract_blob(context.document)
        if blob is None:
            return INDETERMINATE

        try:
            state = loads_lenient(blob)
        except LenientJSONError as exc:
            log_event(
                logger,
                logging.DEBUG,
                "state_parse_failed",
                marketplace=context.marketplace.value,
                brand=context.brand.name,
                error=str(exc),
            )
            return INDETERMINATE

        count = self.count_items(state)
        if count is None:
            return INDETERMINATE
        return Verdict.PRESENT if count > 0 else Verdict.ABSENT

    def extract_blob(self, document: FetchedDocument) -> str | None:
        marker = self.param_str("script_marker")
        if marker:
            for script in document.find_all("script"):
                text = script.string or script.get_text() or ""
                start = text.find(marker)
                if start == -1:
                    continue
                remainder = text[start + len(marker):]
                end = remainder.find(";</")
                return (remainder if end == -1 else remainder[:end]).strip()
            return None

        selector = self.param_str("element_selector")
        if selector:
            nodes = document.find_all(selector)
            if nodes:
                return (nodes[0].get_text() or "").strip() or None
        return None

    def count_items(self, state: Any) -> int | None:
        """
        Return the number of result items, or None when the shape is unknown.
        """

        widget_key = self.param_str("widget_key_contains")
        if widget_key:
            return self._count_widget_items(state, widget_key)

        paths = self.param_list("item_paths") or list(DEFAULT_ITEM_PATHS)
        for path in paths:
            resolved = _resolve_path(state, path)
            if isinstance(resolved, list):
                return len(resolved)
        return None

    @staticmethod
    def _count_widget_items(state: Any, widget_key: str) -> int | None:
        if not isinstance(state, dict):
            return None
        widget_states = state.get("widgetStates")
        if not isinstance(widget_states, dict):
            return None

        found_list = False
        total = 0
        for key, raw_widget in widget_states.items():
            if widget_key not in key:
                continue
            widget = raw_widget
            if isinstance(raw_widget, str):
                try:
                    widget = json.loads(raw_widget)
                except json.JSONDecodeError:
                    continue
            items = widget.get("items") if isinstance(widget, dict) else None
            if isinstance(items, list):
                found_list = True
                total += len(items)
        return total if found_list else None


def _resolve_path(state: Any, path: str) -> Any:
    current = state
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current
