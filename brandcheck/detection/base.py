"""
Detection strategy abstraction for marketplace presence checks.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from brandcheck.config.models import MarketplaceConfig, OverrideTable
from brandcheck.detection.document import FetchedDocument
from brandcheck.domain import Brand, Marketplace, StrategyOutcome
from brandcheck.rate_limiter import DomainRateLimiter


class DocumentFetcher(ABC):
    """
    Anything that can turn a URL into a fetched document.
    """

    @abstractmethod
    def fetch(self, url: str, *, settle_ms: int = 0, scroll_ms: int = 0) -> FetchedDocument:
        """
        Fetch `url`; raise FetchError on transient failure and SessionFailure
        when the underlying session is gone.
        """


@dataclass(frozen=True)
class DetectionContext:
    """
    Per-check bundle handed to one strategy.
    """

    brand: Brand
    marketplace: Marketplace
    config: MarketplaceConfig
    fetcher: DocumentFetcher
    document: FetchedDocument | None = None
    domain: str | None = None
    started_at: float = field(default_factory=time.monotonic)
    clock: Callable[[], float] = time.monotonic

    def elapsed(self) -> float:
        return max(0.0, self.clock() - self.started_at)


class DetectionStrategy(ABC):
    """
    One detection technique against one data channel.

    Page strategies (`requires_document = True`) receive the fetched search
    page of one domain. Standalone strategies receive no document and perform
    their own fetches through `context.fetcher`.
    """

    kind: ClassVar[str] = "base"
    requires_document: ClassVar[bool] = True

    def __init__(
        self,
        *,
        params: Mapping[str, Any] | None = None,
        overrides: OverrideTable | None = None,
        rate_limiter: DomainRateLimiter | None = None,
    ) -> None:
        self.params: Mapping[str, Any] = params or {}
        self.overrides = overrides or OverrideTable()
        self.rate_limiter = rate_limiter

    @abstractmethod
    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        """
        Return PRESENT, ABSENT, or INDETERMINATE for the context.
        """

    def param_list(self, name: str) -> list[str]:
        value = self.params.get(name)
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [item for item in value if isinstance(item, str) and item.strip()]
        return []

    def param_str(self, name: str, default: str = "") -> str:
        value = self.params.get(name)
        return value if isinstance(value, str) and value else default

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"
