"""
Brand check configuration models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from brandcheck.domain import Marketplace, Verdict


@dataclass(frozen=True)
class StrategyConfig:
    """
    One detection strategy entry in a marketplace cascade.
    """

    kind: str
    params: Mapping[str, Any] = field(default_factory=dict)
    strategy_class: str | None = None


@dataclass(frozen=True)
class MarketplaceConfig:
    """
    Candidate domains and ordered strategies for one marketplace.
    """

    marketplace: Marketplace
    domains: tuple[str, ...]
    search_url_template: str
    strategies: tuple[StrategyConfig, ...]
    settle_ms: int = 1000
    scroll_ms: int = 3000
    enabled: bool = True

    def search_url(self, *, domain: str, query: str) -> str:
        return self.search_url_template.format(domain=domain, query=query)


@dataclass(frozen=True)
class OverrideTable:
    """
    Read-only mapping of normalized brand key to known-good URLs per marketplace.
    """

    entries: Mapping[Marketplace, Mapping[str, tuple[str, ...]]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def urls_for(self, marketplace: Marketplace, brand_key: str) -> tuple[str, ...]:
        return tuple(self.entries.get(marketplace, {}).get(brand_key, ()))

    def __len__(self) -> int:
        return sum(len(per_brand) for per_brand in self.entries.values())


@dataclass(frozen=True)
class BrandCheckSettings:
    """
    Runtime settings for brand check runs.
    """

    sheet_id: str
    sheet_name: str
    google_credentials_json: str | None
    google_credentials_path: str | None
    max_per_run: int
    batch_size: int
    delay_ms: int
    user_agent: str
    accept_language: str
    locale: str
    timezone_id: str
    viewport_width: int
    viewport_height: int
    proxies: tuple[str, ...]
    navigation_timeout_ms: int
    headless: bool
    render_backend: str
    search_min_interval_seconds: float
    marketplaces_config_path: str
    overrides_path: str | None
    http_max_retries: int = 2
    http_backoff_initial_seconds: float = 0.5
    http_backoff_multiplier: float = 2.0
    verdict_labels: Mapping[Verdict, str] = field(
        default_factory=lambda: MappingProxyType(
            {
                Verdict.PRESENT: "present",
                Verdict.ABSENT: "absent",
                Verdict.UNKNOWN: "unknown",
            }
        )
    )
