"""
brandcheck/service.py

Service orchestration for brand presence runs.
"""

from __future__ import annotations

from brandcheck.config import (
    BrandCheckSettings,
    get_brand_check_settings,
    load_marketplace_configs,
    load_override_table,
    validate_settings,
)
from brandcheck.detection.cascade import MarketplaceCascade
from brandcheck.detection.registry import StrategyRegistry
from brandcheck.domain import RunSummary
from brandcheck.engine import BrandCheckEngine
from brandcheck.rate_limiter import DomainRateLimiter
from brandcheck.session import (
    BackendFactory,
    SessionManager,
    build_backend_factory,
    session_config_from_settings,
)
from brandcheck.storage import (
    BrandSource,
    GoogleSheetsStore,
    LoggingSink,
    ResultSink,
    build_gspread_client,
)


class BrandCheckService:
    """
    Wires settings, marketplace config, sessions, and the sheet into an engine.
    """

    def __init__(
        self,
        *,
        settings: BrandCheckSettings | None = None,
        registry: StrategyRegistry | None = None,
    ) -> None:
        self._settings = settings or get_brand_check_settings()
        self._registry = registry or StrategyRegistry()

    @property
    def settings(self) -> BrandCheckSettings:
        return self._settings

    def build_cascades(self) -> list[MarketplaceCascade]:
        configs = load_marketplace_configs(config_path=self._settings.marketplaces_config_path)
        overrides = load_override_table(path=self._settings.overrides_path)
        rate_limiter = DomainRateLimiter(
            min_interval_seconds=self._settings.search_min_interval_seconds
        )
        return [
            MarketplaceCascade(
                config=config,
                strategies=self._registry.create_strategies(
                    config=config,
                    overrides=overrides,
                    rate_limiter=rate_limiter,
                ),
            )
            for config in configs
            if config.enabled
        ]

    def build_session_manager(self, backend_factory: BackendFactory | None = None) -> SessionManager:
        return SessionManager(
            base_config=session_config_from_settings(self._settings),
            proxies=self._settings.proxies,
            max_checks=self._settings.batch_size,
            backend_factory=backend_factory or build_backend_factory(self._settings),
        )

    def build_engine(
        self,
        *,
        dry_run: bool = False,
        source: BrandSource | None = None,
        sink: ResultSink | None = None,
        backend_factory: BackendFactory | None = None,
    ) -> BrandCheckEngine:
        if source is None or (sink is None and not dry_run):
            validate_settings(self._settings)
            store = GoogleSheetsStore(
                client=build_gspread_client(
                    credentials_json=self._settings.google_credentials_json,
                    credentials_path=self._settings.google_credentials_path,
                ),
                sheet_id=self._settings.sheet_id,
                sheet_name=self._settings.sheet_name,
                verdict_labels=self._settings.verdict_labels,
            )
            source = source or store
            if sink is None and not dry_run:
                sink = store
        if sink is None:
            sink = LoggingSink(verdict_labels=self._settings.verdict_labels)

        return BrandCheckEngine(
            settings=self._settings,
            source=source,
            sink=sink,
            session_manager=self.build_session_manager(backend_factory),
            cascades=self.build_cascades(),
        )

    def run(self, *, start_row: int | None = None, dry_run: bool = False) -> RunSummary:
        return self.build_engine(dry_run=dry_run).run(start_row=start_row)
