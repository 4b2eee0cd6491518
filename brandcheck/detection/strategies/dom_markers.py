"""
DOM marker presence: result cards or result zones in the rendered page.
"""

from __future__ import annotations

import re

from brandcheck.detection.base import DetectionContext, DetectionStrategy
from brandcheck.domain import INDETERMINATE, StrategyOutcome, Verdict


class DomMarkerStrategy(DetectionStrategy):
    """
    Any result marker present means PRESENT; an explicit "nothing found"
    phrase means ABSENT.
    """

    kind = "dom_markers"

    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        document = context.document
        if document is None:
            return INDETERMINATE

        for selector in self.param_list("selectors"):
            if document.exists(selector):
                return Verdict.PRESENT

        patterns = self.param_list("no_results_patterns")
        if patterns:
            text = document.text()
            for pattern in patterns:
                if re.search(pattern, text, flags=re.IGNORECASE):
                    return Verdict.ABSENT
        return INDETERMINATE
