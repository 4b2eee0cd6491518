"""
External search-engine fallback restricted to the marketplace domains.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterable, Sequence
from urllib.parse import parse_qs, quote_plus, urljoin, urlparse

from brandcheck.detection.base import DetectionContext, DetectionStrategy
from brandcheck.detection.document import FetchedDocument
from brandcheck.detection.variants import brand_variants
from brandcheck.domain import INDETERMINATE, StrategyOutcome, Verdict
from brandcheck.errors import FetchError
from brandcheck.logging_utils import log_event

logger = logging.getLogger(__name__)

SEARCH_ENGINES: dict[str, str] = {
    "duckduckgo": "https://html.duckduckgo.com/html/?q={query}",
    "bing": "https://www.bing.com/search?q={query}&setlang=ru",
}


class SearchEngineStrategy(DetectionStrategy):
    """
    Query general web search for each brand variant restricted to the
    marketplace domains.

    A result link into a marketplace domain means PRESENT. Exhausting every
    variant and engine without a hit means ABSENT; this is the weakest
    negative in the cascade and is kept on purpose. When no engine answered
    at all the outcome is INDETERMINATE.
    """

    kind = "search_engine"
    requires_document = False

    def evaluate(self, context: DetectionContext) -> StrategyOutcome:
        domains = context.config.domains
        engines = self.param_list("engines") or list(SEARCH_ENGINES)
        answered = 0

        for variant in brand_variants(context.brand.name):
            query = build_site_query(variant, domains)
            for engine in engines:
                template = SEARCH_ENGINES.get(engine)
                if template is None:
                    log_event(logger, logging.WARNING, "search_engine_unknown", engine=engine)
                    continue

                url = template.format(query=quote_plus(query))
                if self.rate_limiter is not None:
                    self.rate_limiter.wait(url=url)
                try:
                    document = context.fetcher.fetch(url)
                except FetchError as exc:
                    log_event(
                        logger,
                        logging.WARNING,
                        "search_engine_failed",
                        engine=engine,
                        marketplace=context.marketplace.value,
                        brand=context.brand.name,
                        error=exc.reason,
                    )
                    continue

                answered += 1
                hit = first_domain_link(document, domains)
                if hit is not None:
                    log_event(
                        logger,
                        logging.DEBUG,
                        "search_engine_hit",
                        engine=engine,
                        marketplace=context.marketplace.value,
                        brand=context.brand.name,
                        variant=variant,
                        link=hit,
                    )
                    return Verdict.PRESENT

        if answered == 0:
            return INDETERMINATE
        return Verdict.ABSENT


def build_site_query(variant: str, domains: Sequence[str]) -> str:
    sites = [f"site:{domain}" for domain in domains]
    if len(sites) == 1:
        return f"{sites[0]} {variant}"
    return f"({' OR '.join(sites)}) {variant}"


def first_domain_link(document: FetchedDocument, domains: Iterable[str]) -> str | None:
    """
    Return the first result link pointing into one of `domains`.
    """

    bases = [_base_domain(domain) for domain in domains]
    for anchor in document.find_all("a[href]"):
        target = unwrap_redirect(urljoin(document.url, str(anchor.get("href", ""))))
        host = (urlparse(target).hostname or "").lower()
        if not host:
            continue
        if any(host == base or host.endswith(f".{base}") for base in bases):
            return target
    return None


def unwrap_redirect(url: str) -> str:
    """
    Decode DuckDuckGo (`uddg=`) and Bing (`u=a1<base64>`) redirect links.
    """

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    host = (parsed.hostname or "").lower()

    if host.endswith("duckduckgo.com") and params.get("uddg"):
        return params["uddg"][0]

    if host.endswith("bing.com") and params.get("u"):
        encoded = params["u"][0]
        if encoded.startswith("a1"):
            encoded = encoded[2:]
        padded = encoded + "=" * (-len(encoded) % 4)
        try:
            decoded = base64.urlsafe_b64decode(padded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return url
        if decoded.startswith(("http://", "https://")):
            return decoded
    return url


def _base_domain(domain: str) -> str:
    lowered = domain.lower().strip().rstrip(".")
    return lowered[4:] if lowered.startswith("www.") else lowered
