"""
Rendering sessions: backends, fingerprint config, and lifecycle management.
"""

from __future__ import annotations

from brandcheck.config.models import BrandCheckSettings
from brandcheck.errors import ConfigError
from brandcheck.session.base import BackendFactory, RenderingBackend, SessionConfig
from brandcheck.session.manager import Session, SessionManager


def session_config_from_settings(settings: BrandCheckSettings) -> SessionConfig:
    return SessionConfig(
        user_agent=settings.user_agent,
        accept_language=settings.accept_language,
        locale=settings.locale,
        timezone_id=settings.timezone_id,
        viewport_width=settings.viewport_width,
        viewport_height=settings.viewport_height,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        headless=settings.headless,
    )


def build_backend_factory(settings: BrandCheckSettings) -> BackendFactory:
    """
    Return a factory for the configured backend. Backend modules are imported
    lazily so the HTTP backend works without browser binaries installed.
    """
    if settings.render_backend == "playwright":
        from brandcheck.session.playwright_backend import PlaywrightBackend

        return PlaywrightBackend

    if settings.render_backend == "http":
        from brandcheck.session.http_backend import HttpBackend

        def _http_backend(config: SessionConfig) -> RenderingBackend:
            return HttpBackend(
                config,
                max_retries=settings.http_max_retries,
                backoff_initial_seconds=settings.http_backoff_initial_seconds,
                backoff_multiplier=settings.http_backoff_multiplier,
            )

        return _http_backend

    raise ConfigError(f"Unknown render backend '{settings.render_backend}'.")


__all__ = [
    "BackendFactory",
    "RenderingBackend",
    "Session",
    "SessionConfig",
    "SessionManager",
    "build_backend_factory",
    "session_config_from_settings",
]
