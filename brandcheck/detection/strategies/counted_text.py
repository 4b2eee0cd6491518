"""
Counted-results text: parse a localized "Found N items" phrase.
"""

from __future__ import annotations

import re

from brandcheck.detection.base import DetectionContext, DetectionStrategy
from brandcheck.domain import INDETERMINATE, StrategyOutcome, Verdict

DEFAULT_PATTERN = r"Найдено\s+(\d[\d\s]*)\s+товар"
_NON_DIGIT = re.compile(r"\D")


class CountedTextStrategy(DetectionStrategy):
    """
    N > 0 means PRESENT, N == 0 means ABSENT, no phrase means INDETERMINATE.
    """

    kind = "counted_text"

    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        if context.document is None:
            return INDETERMINATE

        count = extract_count(context.document.text(), self.param_str("pattern", DEFAULT_PATTERN))
        if count is None:
            return INDETERMINATE
        return Verdict.PRESENT if count > 0 else Verdict.ABSENT


def extract_count(text: str, pattern: str) -> int | None:
    match = re.search(pattern, text or "", flags=re.IGNORECASE)
    if not match:
        return None
    digits = _NON_DIGIT.sub("", match.group(1) if match.groups() else match.group(0))
    if not digits:
        return None
    return int(digits)
