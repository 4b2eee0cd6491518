"""
tests/test_strategies.py

Page strategies against static HTML fixtures and the override lookup.
"""

from __future__ import annotations

from types import MappingProxyType
from unittest.mock import MagicMock

import pytest
import requests

from brandcheck.config.models import OverrideTable
from brandcheck.detection.document import HtmlDocument
from brandcheck.detection.strategies import (
    CountedTextStrategy,
    DomMarkerStrategy,
    EmbeddedStateStrategy,
    OverrideLookupStrategy,
)
from brandcheck.detection.strategies.counted_text import DEFAULT_PATTERN, extract_count
from brandcheck.domain import INDETERMINATE, Marketplace, Verdict
from brandcheck.errors import FetchError
from tests.fakes import HostFetcher, http_session, make_context, make_marketplace_config, ok_response

WB_STATE = {
    "script_marker": "window.__PRELOADED_STATE__ = ",
    "item_paths": ["products.items", "search.products"],
}
OZON_STATE = {"element_selector": "#__PAGE_STATE__", "widget_key_contains": "searchResults"}
OZON = make_marketplace_config(Marketplace.OZON, domains=("www.ozon.ru",))


def wb_page(state_json: str) -> str:
    return f"<html><body><script>window.__PRELOADED_STATE__ = {state_json};</script></body></html>"


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class TestHtmlDocument:
    def test_text_excludes_scripts_and_styles(self) -> None:
        document = HtmlDocument(
            url="https://x",
            html="<body><style>.a{}</style><script>var a = 1;</script><p>Visible</p></body>",
        )
        assert document.text() == "Visible"

    def test_prerendered_text_wins(self) -> None:
        document = HtmlDocument(url="https://x", html="<p>markup</p>", text="rendered")
        assert document.text() == "rendered"

    def test_invalid_selector_matches_nothing(self) -> None:
        document = HtmlDocument(url="https://x", html="<p>a</p>")
        assert document.find_all("[[") == []
        assert document.exists("p")


# ---------------------------------------------------------------------------
# Embedded state
# ---------------------------------------------------------------------------


class TestEmbeddedStateStrategy:
    def test_items_in_state_mean_present(self) -> None:
        html = wb_page('{"products": {"items": [{"id": 1}, {"id": 2}, {"id": 3}]}}')
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=html)) is Verdict.PRESENT

    def test_empty_item_list_means_absent(self) -> None:
        html = wb_page('{"products": {"items": []}}')
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=html)) is Verdict.ABSENT

    def test_second_item_path_is_tried(self) -> None:
        html = wb_page('{"search": {"products": [{"id": 7}]}}')
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=html)) is Verdict.PRESENT

    def test_truncated_state_is_repaired(self) -> None:
        html = wb_page('{"products": {"items": [{"id": 1}, {"id": 2')
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=html)) is Verdict.PRESENT

    def test_unknown_state_shape_is_indeterminate(self) -> None:
        html = wb_page('{"banner": {"title": "sale"}}')
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=html)) is INDETERMINATE

    def test_missing_marker_is_indeterminate(self) -> None:
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html="<html><body>captcha</body></html>")) is INDETERMINATE

    def test_unparseable_state_is_indeterminate(self) -> None:
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context(html=wb_page("<<garbage>>"))) is INDETERMINATE

    def test_widget_states_are_counted(self) -> None:
        html = (
            '<html><body><div id="__PAGE_STATE__">'
            r'{"widgetStates": {"searchResultsV2-311": "{\"items\": [{\"id\": 1}, {\"id\": 2}]}",'
            r' "header-1": "{\"items\": []}"}}'
            "</div></body></html>"
        )
        strategy = EmbeddedStateStrategy(params=OZON_STATE)

        assert strategy.evaluate(make_context(config=OZON, html=html)) is Verdict.PRESENT

    def test_empty_widget_items_mean_absent(self) -> None:
        html = (
            '<div id="__PAGE_STATE__">'
            r'{"widgetStates": {"searchResultsV2-311": "{\"items\": []}"}}'
            "</div>"
        )
        strategy = EmbeddedStateStrategy(params=OZON_STATE)

        assert strategy.evaluate(make_context(config=OZON, html=html)) is Verdict.ABSENT

    def test_no_matching_widget_is_indeterminate(self) -> None:
        html = '<div id="__PAGE_STATE__">{"widgetStates": {"header-1": "{}"}}</div>'
        strategy = EmbeddedStateStrategy(params=OZON_STATE)

        assert strategy.evaluate(make_context(config=OZON, html=html)) is INDETERMINATE

    def test_without_document_is_indeterminate(self) -> None:
        strategy = EmbeddedStateStrategy(params=WB_STATE)

        assert strategy.evaluate(make_context()) is INDETERMINATE


# ---------------------------------------------------------------------------
# DOM markers
# ---------------------------------------------------------------------------


class TestDomMarkerStrategy:
    params = MappingProxyType(
        {
            "selectors": [".product-card", "[data-card-index]"],
            "no_results_patterns": ["ничего не найден"],
        }
    )

    def test_result_card_means_present(self) -> None:
        html = '<div class="catalog"><article class="product-card">Acme</article></div>'
        assert DomMarkerStrategy(params=self.params).evaluate(make_context(html=html)) is Verdict.PRESENT

    def test_no_results_phrase_means_absent(self) -> None:
        html = "<div><h1>По запросу «Acme» ничего не найдено</h1></div>"
        assert DomMarkerStrategy(params=self.params).evaluate(make_context(html=html)) is Verdict.ABSENT

    def test_neither_signal_is_indeterminate(self) -> None:
        html = "<div>Подтвердите, что вы не робот</div>"
        assert DomMarkerStrategy(params=self.params).evaluate(make_context(html=html)) is INDETERMINATE

    def test_invalid_selector_is_ignored(self) -> None:
        strategy = DomMarkerStrategy(params={"selectors": ["[[", ".product-card"]})
        html = '<article class="product-card">Acme</article>'
        assert strategy.evaluate(make_context(html=html)) is Verdict.PRESENT


# ---------------------------------------------------------------------------
# Counted text
# ---------------------------------------------------------------------------


class TestCountedTextStrategy:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Найдено 12 товаров", 12),
            ("Найдено 1 234 товара по запросу", 1234),
            ("Найдено 0 товаров", 0),
            ("Каталог", None),
        ],
    )
    def test_extract_count(self, text: str, expected: int | None) -> None:
        assert extract_count(text, DEFAULT_PATTERN) == expected

    def test_positive_count_means_present(self) -> None:
        html = "<div>Найдено 42 товара</div>"
        assert CountedTextStrategy().evaluate(make_context(html=html)) is Verdict.PRESENT

    def test_zero_count_means_absent(self) -> None:
        html = "<div>Найдено 0 товаров</div>"
        assert CountedTextStrategy().evaluate(make_context(html=html)) is Verdict.ABSENT

    def test_missing_phrase_is_indeterminate(self) -> None:
        html = "<div>Популярные товары</div>"
        assert CountedTextStrategy().evaluate(make_context(html=html)) is INDETERMINATE


# ---------------------------------------------------------------------------
# Override lookup
# ---------------------------------------------------------------------------


def override_table(urls: tuple[str, ...]) -> OverrideTable:
    return OverrideTable(entries={Marketplace.OZON: {"acme": urls}})


class TestOverrideLookupStrategy:
    params = {"signal_selectors": ["a[href*='/product/']"]}

    def test_no_entry_is_indeterminate_without_fetching(self) -> None:
        fetcher = HostFetcher()
        strategy = OverrideLookupStrategy(params=self.params, overrides=override_table(()))

        assert strategy.evaluate(make_context(config=OZON, fetcher=fetcher)) is INDETERMINATE
        assert fetcher.calls == []

    def test_signal_selector_means_present(self) -> None:
        fetcher = HostFetcher({"www.ozon.ru": "<a href='/product/acme-kettle-1'>Kettle</a>"})
        strategy = OverrideLookupStrategy(
            params=self.params,
            overrides=override_table(("https://www.ozon.ru/seller/acme-1/",)),
        )

        assert strategy.evaluate(make_context(config=OZON, fetcher=fetcher)) is Verdict.PRESENT

    def test_seller_and_product_terms_mean_present(self) -> None:
        fetcher = HostFetcher({"www.ozon.ru": "<h1>Продавец ACME</h1><p>Все товары магазина</p>"})
        strategy = OverrideLookupStrategy(overrides=override_table(("https://www.ozon.ru/seller/acme-1/",)))

        assert strategy.evaluate(make_context(brand="ACME", config=OZON, fetcher=fetcher)) is Verdict.PRESENT

    def test_page_without_signals_is_indeterminate(self) -> None:
        fetcher = HostFetcher({"www.ozon.ru": "<h1>Страница не найдена</h1>"})
        strategy = OverrideLookupStrategy(
            params=self.params,
            overrides=override_table(("https://www.ozon.ru/seller/acme-1/",)),
        )

        assert strategy.evaluate(make_context(config=OZON, fetcher=fetcher)) is INDETERMINATE

    def test_failed_fetch_moves_to_next_url(self) -> None:
        fetcher = HostFetcher(
            {
                "old.ozon.ru": FetchError("https://old.ozon.ru/acme", "timeout"),
                "www.ozon.ru": "<a href='/product/acme-1'>Acme</a>",
            }
        )
        strategy = OverrideLookupStrategy(
            params=self.params,
            overrides=override_table(("https://old.ozon.ru/acme", "https://www.ozon.ru/seller/acme-1/")),
        )

        assert strategy.evaluate(make_context(config=OZON, fetcher=fetcher)) is Verdict.PRESENT
        assert len(fetcher.calls) == 2

    def test_broken_transfer_moves_to_next_url(self) -> None:
        def get(url: str, **_kwargs) -> MagicMock:
            if url == "https://www.ozon.ru/seller/acme-old/":
                raise requests.exceptions.ChunkedEncodingError("Connection broken")
            return ok_response(url, "<div class='product-card'>Acme kettle</div>")

        session = http_session(get)
        strategy = OverrideLookupStrategy(
            params={"signal_selectors": [".product-card"]},
            overrides=override_table(("https://www.ozon.ru/seller/acme-old/", "https://www.ozon.ru/seller/acme-1/")),
        )

        assert strategy.evaluate(make_context(config=OZON, fetcher=session)) is Verdict.PRESENT
