"""
Headless Chromium backend driven by Playwright's sync API.
"""

from __future__ import annotations

import logging
import time

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from brandcheck.detection.document import HtmlDocument
from brandcheck.errors import FetchError, SessionFailure
from brandcheck.logging_utils import log_event
from brandcheck.session.base import RenderingBackend, SessionConfig

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
]

# Analytics beacons keep marketplace pages from ever reaching network idle.
NAVIGATION_WAIT_UNTIL = "load"

STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
window.chrome = window.chrome || { runtime: {} };
"""

# Cookie and region confirmation banners seen on the supported marketplaces.
BANNER_SELECTORS = [
    'button[aria-label="Принять"]',
    'button:has-text("Принять")',
    'button:has-text("Согласен")',
    'button:has-text("I agree")',
    '[data-testid="cookies-popup"] button',
    '[data-auto="region-confirm-button"]',
    'button:has-text("Понятно")',
]

SCROLL_SCRIPT = """
async ({ step, interval, maxMs }) => {
  await new Promise((resolve) => {
    const started = Date.now();
    let total = 0;
    const timer = setInterval(() => {
      const root = document.scrollingElement || document.documentElement;
      window.scrollBy(0, step);
      total += step;
      if (total >= root.scrollHeight - window.innerHeight - 50 || Date.now() - started > maxMs) {
        clearInterval(timer);
        resolve();
      }
    }, interval);
  });
}
"""


def is_closed_target_error(exc: Exception) -> bool:
    text = str(exc).lower()
    return (
        "target page, context or browser has been closed" in text
        or "target closed" in text
        or "browser has been closed" in text
        or "browser closed" in text
        or "has crashed" in text
    )


class PlaywrightBackend(RenderingBackend):
    """
    One Chromium instance with a single context and tab.
    """

    def __init__(self, config: SessionConfig) -> None:
        super().__init__(config)
        self._playwright = None
        self._browser = None
        self._context = None
        self._page: Page | None = None
        try:
            self._start()
        except PlaywrightError as exc:
            self.close()
            raise SessionFailure(f"Browser launch failed: {exc}") from exc

    def _start(self) -> None:
        self._playwright = sync_playwright().start()

        launch_kwargs: dict[str, object] = {"headless": self.config.headless, "args": LAUNCH_ARGS}
        if self.config.proxy:
            launch_kwargs["proxy"] = {"server": self.config.proxy}
        self._browser = self._playwright.chromium.launch(**launch_kwargs)

        self._context = self._browser.new_context(
            user_agent=self.config.user_agent,
            locale=self.config.locale,
            timezone_id=self.config.timezone_id,
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            extra_http_headers={"Accept-Language": self.config.accept_language},
        )
        self._context.add_init_script(STEALTH_INIT_SCRIPT)
        self._page = self._context.new_page()
        self._page.set_default_timeout(self.config.navigation_timeout_ms)

    def fetch(self, url: str, *, settle_ms: int = 0, scroll_ms: int = 0) -> HtmlDocument:
        page = self._require_page()
        try:
            page.goto(url, wait_until=NAVIGATION_WAIT_UNTIL, timeout=self.config.navigation_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise FetchError(url, f"navigation timeout: {exc}") from exc
        except PlaywrightError as exc:
            raise self._translate(url, exc) from exc

        try:
            self._dismiss_banners(page)
            if settle_ms > 0:
                page.wait_for_timeout(settle_ms)
            if scroll_ms > 0:
                self._auto_scroll(page, scroll_ms)
            html = page.content()
            text = page.inner_text("body")
        except PlaywrightTimeoutError as exc:
            raise FetchError(url, f"render timeout: {exc}") from exc
        except PlaywrightError as exc:
            raise self._translate(url, exc) from exc

        return HtmlDocument(url=page.url or url, html=html, text=text)

    def close(self) -> None:
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                closer()
            except PlaywrightError as exc:
                log_event(logger, logging.DEBUG, "browser_close_failed", resource=name, error=str(exc))
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None

    def _require_page(self) -> Page:
        if self._page is None:
            raise SessionFailure("Browser session is closed.")
        try:
            closed = self._page.is_closed()
        except PlaywrightError as exc:
            raise SessionFailure(f"Browser page unavailable: {exc}") from exc
        if closed:
            raise SessionFailure("Browser page was closed.")
        return self._page

    def _dismiss_banners(self, page: Page) -> None:
        for selector in BANNER_SELECTORS:
            try:
                element = page.query_selector(selector)
                if element is not None:
                    element.click(delay=40, timeout=2000)
                    page.wait_for_timeout(150)
            except PlaywrightError as exc:
                if is_closed_target_error(exc):
                    raise
                log_event(logger, logging.DEBUG, "banner_dismiss_failed", selector=selector, error=str(exc))

    def _auto_scroll(self, page: Page, max_ms: int) -> None:
        deadline = time.monotonic() + max_ms / 1000.0
        try:
            page.evaluate(SCROLL_SCRIPT, {"step": 600, "interval": 120, "maxMs": max_ms})
        except PlaywrightError as exc:
            if is_closed_target_error(exc):
                raise
            log_event(logger, logging.DEBUG, "auto_scroll_failed", url=page.url, error=str(exc))

        remaining_ms = int((deadline - time.monotonic()) * 1000)
        if remaining_ms > 0:
            page.wait_for_timeout(remaining_ms)

    @staticmethod
    def _translate(url: str, exc: PlaywrightError) -> Exception:
        if is_closed_target_error(exc):
            return SessionFailure(f"Browser session lost while loading {url}: {exc}")
        return FetchError(url, str(exc))
