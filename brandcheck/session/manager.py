"""
Session lifecycle: one backend per batch, proxy rotation, guaranteed release.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from brandcheck.detection.base import DocumentFetcher
from brandcheck.detection.document import FetchedDocument
from brandcheck.errors import SessionExhausted, SessionFailure
from brandcheck.logging_utils import log_event
from brandcheck.session.base import BackendFactory, RenderingBackend, SessionConfig

logger = logging.getLogger(__name__)


class Session(DocumentFetcher):
    """
    An open backend bound to one batch and a bounded number of brand checks.
    """

    def __init__(
        self,
        *,
        backend: RenderingBackend,
        config: SessionConfig,
        batch_index: int,
        max_checks: int,
    ) -> None:
        self.backend = backend
        self.config = config
        self.batch_index = batch_index
        self.max_checks = max_checks
        self.checks_started = 0
        self.closed = False

    @property
    def proxy(self) -> str | None:
        return self.config.proxy

    def begin_check(self) -> None:
        if self.closed:
            raise SessionFailure(f"Session for batch {self.batch_index} is closed.")
        if self.checks_started >= self.max_checks:
            raise SessionExhausted(
                f"Session for batch {self.batch_index} already served {self.max_checks} brand checks."
            )
        self.checks_started += 1

    def fetch(self, url: str, *, settle_ms: int = 0, scroll_ms: int = 0) -> FetchedDocument:
        if self.closed:
            raise SessionFailure(f"Session for batch {self.batch_index} is closed.")
        return self.backend.fetch(url, settle_ms=settle_ms, scroll_ms=scroll_ms)


class SessionManager:
    """
    Opens one rendering session per batch, rotating proxies by batch index.
    """

    def __init__(
        self,
        *,
        base_config: SessionConfig,
        proxies: Sequence[str],
        max_checks: int,
        backend_factory: BackendFactory,
    ) -> None:
        if max_checks <= 0:
            raise ValueError("max_checks must be positive.")
        self.base_config = base_config
        self.proxies = tuple(proxy for proxy in proxies if proxy)
        self.max_checks = max_checks
        self._backend_factory = backend_factory

    def session_config(self, batch_index: int) -> SessionConfig:
        proxy = self.proxies[batch_index % len(self.proxies)] if self.proxies else None
        return SessionConfig(
            user_agent=self.base_config.user_agent,
            accept_language=self.base_config.accept_language,
            locale=self.base_config.locale,
            timezone_id=self.base_config.timezone_id,
            viewport_width=self.base_config.viewport_width,
            viewport_height=self.base_config.viewport_height,
            navigation_timeout_ms=self.base_config.navigation_timeout_ms,
            headless=self.base_config.headless,
            proxy=proxy,
        )

    def acquire(self, batch_index: int) -> Session:
        config = self.session_config(batch_index)
        try:
            backend = self._backend_factory(config)
        except SessionFailure:
            raise
        except Exception as exc:
            raise SessionFailure(f"Unable to open session for batch {batch_index}: {exc}") from exc

        log_event(
            logger,
            logging.INFO,
            "session_opened",
            batch_index=batch_index,
            proxy=config.proxy,
            backend=type(backend).__name__,
        )
        return Session(
            backend=backend,
            config=config,
            batch_index=batch_index,
            max_checks=self.max_checks,
        )

    def release(self, session: Session) -> None:
        if session.closed:
            return
        session.closed = True
        try:
            session.backend.close()
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "session_close_failed",
                batch_index=session.batch_index,
                proxy=session.proxy,
                error=str(exc),
            )
        log_event(
            logger,
            logging.INFO,
            "session_released",
            batch_index=session.batch_index,
            proxy=session.proxy,
            checks=session.checks_started,
        )

    @contextmanager
    def session(self, batch_index: int) -> Iterator[Session]:
        opened = self.acquire(batch_index)
        try:
            yield opened
        finally:
            self.release(opened)
