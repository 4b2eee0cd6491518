"""
Environment + JSON config loader for brand check runs.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from brandcheck.config.models import (
    BrandCheckSettings,
    MarketplaceConfig,
    OverrideTable,
    StrategyConfig,
)
from brandcheck.domain import Marketplace, Verdict, normalize_brand_key
from brandcheck.errors import ConfigError

DEFAULT_MARKETPLACES_PATH = Path(__file__).with_name("marketplaces.json")
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
ALLOWED_BACKENDS = {"playwright", "http"}
ENV_FILENAMES = (".env", ".env.local")


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    if not line or line.startswith("#"):
        return None

    key, separator, value = line.partition("=")
    key = key.strip()
    if not separator or not key:
        return None
    return key, value.strip().strip('"').strip("'")


def load_env_files(root: Path | None = None) -> None:
    """
    Apply KEY=VALUE pairs from `.env` then `.env.local` under `root`.
    Variables already present in the process environment win.
    """

    base = root or project_root()
    for env_path in (base / filename for filename in ENV_FILENAMES):
        if not env_path.is_file():
            continue
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_env_line(raw_line)
            if parsed is not None:
                os.environ.setdefault(*parsed)


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped or None


def _resolve_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (project_root() / candidate).resolve()


def parse_proxies(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def parse_viewport(raw: str, default: tuple[int, int] = (1366, 900)) -> tuple[int, int]:
    parts = raw.lower().replace(" ", "").split("x")
    if len(parts) != 2:
        return default
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        return default
    if width <= 0 or height <= 0:
        return default
    return width, height


@lru_cache(maxsize=1)
def get_brand_check_settings() -> BrandCheckSettings:
    """
    Return cached settings from environment variables.
    """

    load_env_files()
    return build_settings_from_env()


def build_settings_from_env() -> BrandCheckSettings:
    """
    Read settings from the current process environment.
    """

    viewport_width, viewport_height = parse_viewport(_get_str_env("VIEWPORT", "1366x900"))
    overrides_path = _get_optional_str_env("BRAND_OVERRIDES_PATH")
    marketplaces_path = _get_optional_str_env("MARKETPLACES_CONFIG_PATH")
    return BrandCheckSettings(
        sheet_id=_get_str_env("SHEET_ID", ""),
        sheet_name=_get_str_env("SHEET_NAME", "Brands"),
        google_credentials_json=_get_optional_str_env("GOOGLE_CREDENTIALS"),
        google_credentials_path=_get_optional_str_env("GOOGLE_APPLICATION_CREDENTIALS"),
        max_per_run=max(1, _get_int_env("MAX_PER_RUN", 300)),
        batch_size=max(1, _get_int_env("BATCH_PER_PROXY", 60)),
        delay_ms=max(0, _get_int_env("SLOW_MS", 900)),
        user_agent=_get_str_env("USER_AGENT", DEFAULT_USER_AGENT),
        accept_language=_get_str_env("ACCEPT_LANGUAGE", "ru-RU,ru;q=0.9"),
        locale=_get_str_env("LOCALE", "ru-RU"),
        timezone_id=_get_str_env("TIMEZONE", "Europe/Moscow"),
        viewport_width=viewport_width,
        viewport_height=viewport_height,
        proxies=parse_proxies(os.getenv("PROXIES", "")),
        navigation_timeout_ms=max(1000, _get_int_env("NAV_TIMEOUT_MS", 120000)),
        headless=_get_bool_env("HEADLESS", True),
        render_backend=_get_str_env("RENDER_BACKEND", "playwright").lower(),
        search_min_interval_seconds=max(
            0.0,
            _get_float_env("SEARCH_MIN_INTERVAL_SECONDS", 2.0),
        ),
        marketplaces_config_path=str(
            _resolve_path(marketplaces_path) if marketplaces_path else DEFAULT_MARKETPLACES_PATH
        ),
        overrides_path=str(_resolve_path(overrides_path)) if overrides_path else None,
        http_max_retries=max(0, _get_int_env("HTTP_MAX_RETRIES", 2)),
        http_backoff_initial_seconds=max(0.1, _get_float_env("HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        http_backoff_multiplier=max(1.0, _get_float_env("HTTP_BACKOFF_MULTIPLIER", 2.0)),
        verdict_labels=MappingProxyType(
            {
                Verdict.PRESENT: _get_str_env("VERDICT_PRESENT_LABEL", "present"),
                Verdict.ABSENT: _get_str_env("VERDICT_ABSENT_LABEL", "absent"),
                Verdict.UNKNOWN: _get_str_env("VERDICT_UNKNOWN_LABEL", "unknown"),
            }
        ),
    )


def validate_settings(settings: BrandCheckSettings) -> None:
    """
    Raise ConfigError listing every missing or invalid setting.
    """

    errors: list[str] = []
    if not settings.sheet_id:
        errors.append("SHEET_ID is not set.")
    if not settings.google_credentials_json and not settings.google_credentials_path:
        errors.append(
            "No Google credentials configured. Set GOOGLE_CREDENTIALS (service account JSON) "
            "or GOOGLE_APPLICATION_CREDENTIALS (path to the JSON file)."
        )
    if settings.render_backend not in ALLOWED_BACKENDS:
        errors.append(
            f"RENDER_BACKEND='{settings.render_backend}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_BACKENDS)}."
        )
    if errors:
        raise ConfigError(
            "Startup validation failed, missing or invalid settings:\n"
            + "\n".join(f"  - {error}" for error in errors)
        )


def load_marketplace_configs(*, config_path: str) -> list[MarketplaceConfig]:
    """
    Load marketplace cascade configurations from a JSON file.
    """

    path = _resolve_path(config_path)
    if not path.exists():
        raise ConfigError(f"Marketplace config file not found: {path}")

    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Marketplace config is not valid JSON: {path}: {exc}") from exc

    entries = raw_data.get("marketplaces", []) if isinstance(raw_data, dict) else None
    if not isinstance(entries, list):
        raise ConfigError("Invalid marketplace config: 'marketplaces' must be a list.")

    parsed: dict[Marketplace, MarketplaceConfig] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue

        name = str(entry.get("name", "")).strip().lower()
        try:
            marketplace = Marketplace(name)
        except ValueError as exc:
            allowed = ", ".join(item.value for item in Marketplace)
            raise ConfigError(f"Unknown marketplace '{name}'. Allowed: {allowed}.") from exc

        domains = _normalize_str_list(entry.get("domains"))
        template = _optional_str(entry.get("search_url_template"))
        if not domains or not template:
            raise ConfigError(f"Marketplace '{name}' needs 'domains' and 'search_url_template'.")
        if "{query}" not in template:
            raise ConfigError(f"Marketplace '{name}' search_url_template lacks a {{query}} placeholder.")

        parsed[marketplace] = MarketplaceConfig(
            marketplace=marketplace,
            domains=tuple(domains),
            search_url_template=template,
            strategies=tuple(_parse_strategies(name, entry.get("strategies", []))),
            settle_ms=max(0, _optional_int(entry.get("settle_ms"), 1000)),
            scroll_ms=max(0, _optional_int(entry.get("scroll_ms"), 3000)),
            enabled=_optional_bool(entry.get("enabled"), True),
        )

    return [parsed[marketplace] for marketplace in Marketplace.ordered() if marketplace in parsed]


def load_override_table(*, path: str | None) -> OverrideTable:
    """
    Load the brand override table; a missing path yields an empty table.
    """

    if not path:
        return OverrideTable()

    resolved = _resolve_path(path)
    if not resolved.exists():
        raise ConfigError(f"Brand override file not found: {resolved}")

    try:
        raw_data = json.loads(resolved.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Brand override file is not valid JSON: {resolved}: {exc}") from exc

    overrides = raw_data.get("overrides", {}) if isinstance(raw_data, dict) else None
    if not isinstance(overrides, dict):
        raise ConfigError("Invalid override config: 'overrides' must be an object.")

    entries: dict[Marketplace, dict[str, tuple[str, ...]]] = {}
    for marketplace_name, per_brand in overrides.items():
        try:
            marketplace = Marketplace(str(marketplace_name).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown marketplace '{marketplace_name}' in overrides.") from exc
        if not isinstance(per_brand, dict):
            continue

        brands: dict[str, tuple[str, ...]] = {}
        for brand_name, urls in per_brand.items():
            key = normalize_brand_key(str(brand_name))
            url_list = [
                url for url in _normalize_str_list(urls) if url.startswith(("http://", "https://"))
            ]
            if key and url_list:
                merged = list(brands.get(key, ())) + url_list
                brands[key] = tuple(dict.fromkeys(merged))
        entries[marketplace] = MappingProxyType(brands)

    return OverrideTable(entries=MappingProxyType(entries))


def _parse_strategies(marketplace_name: str, raw: object) -> list[StrategyConfig]:
    if not isinstance(raw, list) or not raw:
        raise ConfigError(f"Marketplace '{marketplace_name}' needs a non-empty 'strategies' list.")

    strategies: list[StrategyConfig] = []
    for item in raw:
        if isinstance(item, str):
            item = {"kind": item}
        if not isinstance(item, dict):
            continue
        kind = str(item.get("kind", "")).strip().lower()
        if not kind:
            raise ConfigError(f"Marketplace '{marketplace_name}' has a strategy without 'kind'.")
        params = item.get("params", {})
        strategies.append(
            StrategyConfig(
                kind=kind,
                params=MappingProxyType(dict(params)) if isinstance(params, dict) else MappingProxyType({}),
                strategy_class=_optional_str(item.get("strategy_class")),
            )
        )
    return strategies


def _normalize_str_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return []


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_int(value: object, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
