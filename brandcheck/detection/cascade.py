"""
Marketplace cascade: ordered strategies over candidate domains.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from itertools import groupby
from urllib.parse import quote

from brandcheck.config.models import MarketplaceConfig
from brandcheck.detection.base import DetectionContext, DetectionStrategy, DocumentFetcher
from brandcheck.domain import INDETERMINATE, Brand, Marketplace, StrategyOutcome, Verdict, is_decisive
from brandcheck.errors import FetchError, SessionFailure
from brandcheck.logging_utils import log_event

logger = logging.getLogger(__name__)


class MarketplaceCascade:
    """
    Runs a marketplace's strategies in priority order and returns the first
    decisive verdict.

    Consecutive page strategies form a group that is evaluated once per
    candidate domain: a domain whose fetch fails is skipped (domain axis),
    an indeterminate strategy hands over to the next one (strategy axis).
    Standalone strategies run once. UNKNOWN is returned only when no
    (domain, strategy) combination was decisive.
    """

    def __init__(
        self,
        *,
        config: MarketplaceConfig,
        strategies: Sequence[DetectionStrategy],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.strategies = list(strategies)
        self._clock = clock
        self._groups = [
            (requires_document, list(group))
            for requires_document, group in groupby(
                self.strategies,
                key=lambda strategy: strategy.requires_document,
            )
        ]

    @property
    def marketplace(self) -> Marketplace:
        return self.config.marketplace

    def check(self, brand: Brand, fetcher: DocumentFetcher) -> Verdict:
        started_at = self._clock()

        for requires_document, group in self._groups:
            if not requires_document:
                context = self._context(brand, fetcher, started_at)
                verdict = self._run_group(group, context)
                if verdict is not None:
                    return verdict
                continue

            for domain in self.config.domains:
                url = self.search_url(brand, domain)
                try:
                    document = fetcher.fetch(
                        url,
                        settle_ms=self.config.settle_ms,
                        scroll_ms=self.config.scroll_ms,
                    )
                except SessionFailure:
                    raise
                except Exception as exc:
                    log_event(
                        logger,
                        logging.WARNING,
                        "domain_fetch_failed",
                        marketplace=self.marketplace.value,
                        brand=brand.name,
                        domain=domain,
                        url=url,
                        error=exc.reason if isinstance(exc, FetchError) else str(exc),
                    )
                    continue

                context = self._context(brand, fetcher, started_at, document=document, domain=domain)
                verdict = self._run_group(group, context)
                if verdict is not None:
                    return verdict

        log_event(
            logger,
            logging.WARNING,
            "cascade_unknown",
            marketplace=self.marketplace.value,
            brand=brand.name,
            elapsed_seconds=round(self._clock() - started_at, 3),
        )
        return Verdict.UNKNOWN

    def search_url(self, brand: Brand, domain: str) -> str:
        return self.config.search_url(domain=domain, query=quote(brand.name, safe=""))

    def _context(
        self,
        brand: Brand,
        fetcher: DocumentFetcher,
        started_at: float,
        *,
        document=None,
        domain: str | None = None,
    ) -> DetectionContext:
        return DetectionContext(
            brand=brand,
            marketplace=self.marketplace,
            config=self.config,
            fetcher=fetcher,
            document=document,
            domain=domain,
            started_at=started_at,
            clock=self._clock,
        )

    def _run_group(
        self,
        group: Sequence[DetectionStrategy],
        context: DetectionContext,
    ) -> Verdict | None:
        for strategy in group:
            outcome = self._evaluate(strategy, context)
            if is_decisive(outcome):
                log_event(
                    logger,
                    logging.DEBUG,
                    "strategy_decided",
                    marketplace=self.marketplace.value,
                    brand=context.brand.name,
                    domain=context.domain,
                    strategy=strategy.kind,
                    verdict=outcome.value,
                    elapsed_seconds=round(context.elapsed(), 3),
                )
                return outcome
        return None

    def _evaluate(self, strategy: DetectionStrategy, context: DetectionContext) -> StrategyOutcome:
        try:
            outcome = strategy.evaluate(context)
        except SessionFailure:
            raise
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "strategy_failed",
                marketplace=self.marketplace.value,
                brand=context.brand.name,
                domain=context.domain,
                strategy=strategy.kind,
                error=str(exc),
            )
            return INDETERMINATE
        return outcome if is_decisive(outcome) else INDETERMINATE
