"""
Error taxonomy for brand presence checks.

Where each error is recovered:

- ``FetchError``: per domain attempt inside a cascade, or per URL inside a
  strategy that performs its own fetches.
- ``SessionFailure``: at the batch boundary; the rest of the batch is skipped
  and the next batch starts on a fresh session.
- ``SourceError`` / ``SinkError`` / ``ConfigError``: fatal to the whole run.
"""

from __future__ import annotations


class BrandCheckError(Exception):
    """
    Base class for all brandcheck errors.
    """


class ConfigError(BrandCheckError):
    """
    Invalid settings or configuration file.
    """


class FetchError(BrandCheckError):
    """
    A single navigation or request failed (timeout, reset, HTTP error).
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class SessionFailure(BrandCheckError):
    """
    The rendering session is no longer usable.
    """


class SessionExhausted(SessionFailure):
    """
    The session already served its maximum number of brand checks.
    """


class SourceError(BrandCheckError):
    """
    Brands cannot be read from the source.
    """


class SinkError(BrandCheckError):
    """
    Results cannot be persisted to the sink.
    """
