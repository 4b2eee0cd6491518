"""
tests/test_cascade.py

MarketplaceCascade ordering over the (domain, strategy) grid.
"""

from __future__ import annotations

import pytest

from brandcheck.detection.cascade import MarketplaceCascade
from brandcheck.detection.strategies import EmbeddedStateStrategy
from brandcheck.domain import INDETERMINATE, Brand, Verdict
from brandcheck.errors import FetchError, SessionFailure
from tests.fakes import HostFetcher, ScriptedStrategy, make_marketplace_config

WB = make_marketplace_config()
EMPTY_PAGE = "<html><body></body></html>"
ACME_STATE_PAGE = (
    "<html><body><script>window.__PRELOADED_STATE__ = "
    '{"products": {"items": [{"id": 1}, {"id": 2}, {"id": 3}]}};'
    "</script></body></html>"
)


def never(context):
    return INDETERMINATE


def always(verdict):
    return lambda context: verdict


def brand(name: str = "Acme") -> Brand:
    return Brand(name=name, row_index=2)


class TestCascadeOrdering:
    def test_embedded_state_decides_before_later_strategies(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": ACME_STATE_PAGE, "www.wildberries.by": EMPTY_PAGE})
        later = ScriptedStrategy(always(Verdict.ABSENT))
        fallback = ScriptedStrategy(always(Verdict.ABSENT), requires_document=False)
        cascade = MarketplaceCascade(
            config=WB,
            strategies=[
                EmbeddedStateStrategy(params={"script_marker": "window.__PRELOADED_STATE__ = "}),
                later,
                fallback,
            ],
        )

        assert cascade.check(brand(), fetcher) is Verdict.PRESENT
        assert later.calls == []
        assert fallback.calls == []
        assert len(fetcher.calls) == 1

    def test_all_indeterminate_on_every_domain_is_unknown(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE, "www.wildberries.by": EMPTY_PAGE})
        first = ScriptedStrategy(never)
        second = ScriptedStrategy(never)
        cascade = MarketplaceCascade(config=WB, strategies=[first, second])

        assert cascade.check(brand("Nullco"), fetcher) is Verdict.UNKNOWN
        assert first.calls == ["www.wildberries.ru", "www.wildberries.by"]
        assert second.calls == ["www.wildberries.ru", "www.wildberries.by"]

    def test_failed_domain_falls_through_to_next_domain(self) -> None:
        fetcher = HostFetcher(
            {
                "www.wildberries.ru": FetchError("https://www.wildberries.ru", "timeout"),
                "www.wildberries.by": EMPTY_PAGE,
            }
        )
        strategy = ScriptedStrategy(always(Verdict.PRESENT))
        cascade = MarketplaceCascade(config=WB, strategies=[strategy])

        assert cascade.check(brand(), fetcher) is Verdict.PRESENT
        assert strategy.calls == ["www.wildberries.by"]

    def test_explicit_absent_on_first_domain_stops_the_cascade(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE, "www.wildberries.by": EMPTY_PAGE})
        strategy = ScriptedStrategy(always(Verdict.ABSENT))
        cascade = MarketplaceCascade(config=WB, strategies=[strategy])

        assert cascade.check(brand(), fetcher) is Verdict.ABSENT
        assert strategy.calls == ["www.wildberries.ru"]

    def test_page_strategy_decides_per_domain(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE, "www.wildberries.by": EMPTY_PAGE})
        strategy = ScriptedStrategy(
            lambda context: Verdict.PRESENT if context.domain == "www.wildberries.by" else INDETERMINATE
        )
        cascade = MarketplaceCascade(config=WB, strategies=[strategy])

        assert cascade.check(brand(), fetcher) is Verdict.PRESENT
        assert strategy.calls == ["www.wildberries.ru", "www.wildberries.by"]

    def test_standalone_strategy_before_page_group_skips_fetching(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE})
        override = ScriptedStrategy(always(Verdict.PRESENT), requires_document=False)
        page = ScriptedStrategy(always(Verdict.ABSENT))
        cascade = MarketplaceCascade(config=WB, strategies=[override, page])

        assert cascade.check(brand(), fetcher) is Verdict.PRESENT
        assert fetcher.calls == []
        assert page.calls == []

    def test_fallback_runs_after_every_domain_failed(self) -> None:
        fetcher = HostFetcher()
        page = ScriptedStrategy(always(Verdict.PRESENT))
        fallback = ScriptedStrategy(always(Verdict.ABSENT), requires_document=False)
        cascade = MarketplaceCascade(config=WB, strategies=[page, fallback])

        assert cascade.check(brand(), fetcher) is Verdict.ABSENT
        assert page.calls == []
        assert fallback.calls == [None]

    def test_every_channel_failing_is_unknown(self) -> None:
        cascade = MarketplaceCascade(
            config=WB,
            strategies=[ScriptedStrategy(always(Verdict.PRESENT))],
        )

        assert cascade.check(brand(), HostFetcher()) is Verdict.UNKNOWN


class TestCascadeErrors:
    def test_strategy_exception_is_treated_as_indeterminate(self) -> None:
        def explode(context):
            raise ValueError("unexpected markup")

        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE})
        cascade = MarketplaceCascade(
            config=WB,
            strategies=[ScriptedStrategy(explode), ScriptedStrategy(always(Verdict.PRESENT))],
        )

        assert cascade.check(brand(), fetcher) is Verdict.PRESENT

    def test_non_verdict_outcome_is_treated_as_indeterminate(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": EMPTY_PAGE, "www.wildberries.by": EMPTY_PAGE})
        cascade = MarketplaceCascade(config=WB, strategies=[ScriptedStrategy(always(Verdict.UNKNOWN))])

        assert cascade.check(brand(), fetcher) is Verdict.UNKNOWN

    def test_session_failure_from_fetch_propagates(self) -> None:
        fetcher = HostFetcher({"www.wildberries.ru": SessionFailure("browser crashed")})
        cascade = MarketplaceCascade(config=WB, strategies=[ScriptedStrategy(always(Verdict.PRESENT))])

        with pytest.raises(SessionFailure):
            cascade.check(brand(), fetcher)

    def test_session_failure_from_strategy_propagates(self) -> None:
        def lose_session(context):
            raise SessionFailure("target closed")

        cascade = MarketplaceCascade(
            config=WB,
            strategies=[ScriptedStrategy(lose_session, requires_document=False)],
        )

        with pytest.raises(SessionFailure):
            cascade.check(brand(), HostFetcher())


def test_search_url_encodes_brand_name() -> None:
    cascade = MarketplaceCascade(config=WB, strategies=[])

    url = cascade.search_url(Brand(name="A&B Co", row_index=2), "www.wildberries.ru")

    assert url == "https://www.wildberries.ru/search?q=A%26B%20Co"
