"""
Rendering backend abstraction and session fingerprint configuration.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from brandcheck.detection.document import FetchedDocument


@dataclass(frozen=True)
class SessionConfig:
    """
    Fingerprint and network settings applied when a session opens.
    """

    user_agent: str
    accept_language: str
    locale: str
    timezone_id: str
    viewport_width: int
    viewport_height: int
    navigation_timeout_ms: int
    headless: bool = True
    proxy: str | None = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept-Language": self.accept_language,
        }


class RenderingBackend(ABC):
    """
    One open browser or HTTP client bound to a SessionConfig.
    """

    def __init__(self, config: SessionConfig) -> None:
        self.config = config

    @abstractmethod
    def fetch(self, url: str, *, settle_ms: int = 0, scroll_ms: int = 0) -> FetchedDocument:
        """
        Navigate to `url` and return the rendered document.

        Raises FetchError for failures confined to this URL and
        SessionFailure when the backend itself is no longer usable.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release every resource held by the backend.
        """


BackendFactory = Callable[[SessionConfig], RenderingBackend]
