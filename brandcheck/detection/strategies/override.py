"""
Hard-coded override lookup: known-good brand pages checked directly.
"""

from __future__ import annotations

import logging

from brandcheck.detection.base import DetectionContext, DetectionStrategy
from brandcheck.detection.document import FetchedDocument
from brandcheck.domain import INDETERMINATE, StrategyOutcome, Verdict
from brandcheck.errors import FetchError
from brandcheck.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_SELLER_TERMS = ("продавец", "магазин", "seller")
DEFAULT_PRODUCT_TERMS = ("товар", "product")


class OverrideLookupStrategy(DetectionStrategy):
    """
    Fetch the override URLs configured for the brand and look for signs that
    the page lists products. Only ever answers PRESENT; anything else lets
    the cascade continue.
    """

    kind = "override"
    requires_document = False

    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        urls = self.overrides.urls_for(context.marketplace, context.brand.key)
        if not urls:
            return INDETERMINATE

        for url in urls:
            try:
                document = context.fetcher.fetch(
                    url,
                    settle_ms=context.config.settle_ms,
                    scroll_ms=context.config.scroll_ms,
                )
            except FetchError as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "override_fetch_failed",
                    marketplace=context.marketplace.value,
                    brand=context.brand.name,
                    url=url,
                    error=exc.reason,
                )
                continue

            if self.has_product_signals(document):
                log_event(
                    logger,
                    logging.INFO,
                    "override_matched",
                    marketplace=context.marketplace.value,
                    brand=context.brand.name,
                    url=url,
                )
                return Verdict.PRESENT
        return INDETERMINATE

    def has_product_signals(self, document: FetchedDocument) -> bool:
        for selector in self.param_list("signal_selectors"):
            if document.exists(selector):
                return True

        text = document.text().lower()
        seller_terms = self.param_list("seller_terms") or list(DEFAULT_SELLER_TERMS)
        product_terms = self.param_list("product_terms") or list(DEFAULT_PRODUCT_TERMS)
        has_seller = any(term.lower() in text for term in seller_terms)
        has_product = any(term.lower() in text for term in product_terms)
        return has_seller and has_product
