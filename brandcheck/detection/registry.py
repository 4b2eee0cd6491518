"""
Detection strategy registry and factory.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping

from brandcheck.config.models import MarketplaceConfig, OverrideTable, StrategyConfig
from brandcheck.detection.base import DetectionStrategy
from brandcheck.detection.strategies import (
    CountedTextStrategy,
    DomMarkerStrategy,
    EmbeddedStateStrategy,
    OverrideLookupStrategy,
    SearchEngineStrategy,
)
from brandcheck.errors import ConfigError
from brandcheck.rate_limiter import DomainRateLimiter


class StrategyRegistry:
    """
    Strategy registry supporting built-ins and dynamic import paths.
    """

    def __init__(self, registrations: Mapping[str, type[DetectionStrategy]] | None = None) -> None:
        builtins: dict[str, type[DetectionStrategy]] = {
            strategy.kind: strategy
            for strategy in (
                OverrideLookupStrategy,
                EmbeddedStateStrategy,
                DomMarkerStrategy,
                CountedTextStrategy,
                SearchEngineStrategy,
            )
        }
        if registrations:
            builtins.update(registrations)
        self._registrations = builtins

    def register(self, *, kind: str, strategy_class: type[DetectionStrategy]) -> None:
        self._registrations[kind.strip().lower()] = strategy_class

    def kinds(self) -> list[str]:
        return sorted(self._registrations)

    def create_strategies(
        self,
        *,
        config: MarketplaceConfig,
        overrides: OverrideTable,
        rate_limiter: DomainRateLimiter | None,
    ) -> list[DetectionStrategy]:
        return [
            self._resolve_strategy_class(config, entry)(
                params=entry.params,
                overrides=overrides,
                rate_limiter=rate_limiter,
            )
            for entry in config.strategies
        ]

    def _resolve_strategy_class(
        self,
        config: MarketplaceConfig,
        entry: StrategyConfig,
    ) -> type[DetectionStrategy]:
        if entry.strategy_class:
            return self._load_dynamic_class(entry.strategy_class)

        resolved = self._registrations.get(entry.kind)
        if resolved is None:
            allowed = ", ".join(self.kinds())
            raise ConfigError(
                f"Unknown strategy kind='{entry.kind}' for marketplace='{config.marketplace.value}'. "
                f"Allowed kinds: {allowed}."
            )
        return resolved

    @staticmethod
    def _load_dynamic_class(path: str) -> type[DetectionStrategy]:
        if ":" not in path:
            raise ConfigError(f"Invalid strategy_class '{path}'. Use 'module.path:ClassName'.")

        module_path, class_name = path.split(":", 1)
        try:
            module = importlib.import_module(module_path)
        except ImportError as exc:
            raise ConfigError(f"Unable to import strategy module '{module_path}': {exc}") from exc
        loaded = getattr(module, class_name, None)
        if loaded is None:
            raise ConfigError(f"Unable to resolve strategy class '{path}'.")
        if not isinstance(loaded, type) or not issubclass(loaded, DetectionStrategy):
            raise ConfigError(f"Class '{path}' must inherit from DetectionStrategy.")
        return loaded
