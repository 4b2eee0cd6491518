"""
Plain HTTP backend for pages whose results are server-rendered.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import requests

from brandcheck.detection.document import HtmlDocument
from brandcheck.errors import FetchError, SessionFailure
from brandcheck.session.base import RenderingBackend, SessionConfig

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class HttpBackend(RenderingBackend):
    """
    requests-based backend. No JavaScript runs, so scrolling and settling
    are no-ops; embedded state and server markup are still available.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        max_retries: int = 2,
        backoff_initial_seconds: float = 0.5,
        backoff_multiplier: float = 2.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(config)
        self.max_retries = max(0, max_retries)
        self.backoff_initial_seconds = backoff_initial_seconds
        self.backoff_multiplier = backoff_multiplier
        self._sleep = sleep
        self._session: requests.Session | None = session or requests.Session()
        self._session.headers.update(config.headers)
        if config.proxy:
            self._session.proxies.update({"http": config.proxy, "https": config.proxy})

    @property
    def timeout_seconds(self) -> float:
        return self.config.navigation_timeout_ms / 1000.0

    def fetch(self, url: str, *, settle_ms: int = 0, scroll_ms: int = 0) -> HtmlDocument:
        response = self._request_with_retry(url)
        return HtmlDocument(url=response.url or url, html=response.text)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _request_with_retry(self, url: str) -> requests.Response:
        if self._session is None:
            raise SessionFailure("HTTP session is closed.")

        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            try:
                response = self._session.get(url, timeout=self.timeout_seconds, allow_redirects=True)
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise FetchError(url, f"status={status_code}") from exc
            except requests.RequestException as exc:
                raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc

            if attempt >= self.max_retries:
                break

            self._sleep(self.backoff_initial_seconds * (self.backoff_multiplier**attempt))

        raise FetchError(url, f"failed after retries: {last_error}")
