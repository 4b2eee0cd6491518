"""
Run a brand presence check from CLI.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging

from brandcheck.config import get_brand_check_settings
from brandcheck.config.loader import ALLOWED_BACKENDS
from brandcheck.errors import BrandCheckError
from brandcheck.logging_utils import configure_logging, log_event
from brandcheck.service import BrandCheckService

logger = logging.getLogger("brandcheck.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check brand presence on marketplaces and write verdicts to the sheet.")
    parser.add_argument(
        "--max-per-run",
        dest="max_per_run",
        type=int,
        default=None,
        help="Override MAX_PER_RUN for this run.",
    )
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Override BATCH_PER_PROXY for this run.",
    )
    parser.add_argument(
        "--start-row",
        dest="start_row",
        type=int,
        default=None,
        help="First sheet row to check (rows above are ignored).",
    )
    parser.add_argument(
        "--backend",
        dest="backend",
        choices=sorted(ALLOWED_BACKENDS),
        default=None,
        help="Override RENDER_BACKEND for this run.",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Log verdict rows instead of writing them to the sheet.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        settings = get_brand_check_settings()
        overrides: dict[str, object] = {}
        if args.max_per_run is not None:
            overrides["max_per_run"] = max(1, args.max_per_run)
        if args.batch_size is not None:
            overrides["batch_size"] = max(1, args.batch_size)
        if args.backend is not None:
            overrides["render_backend"] = args.backend
        if overrides:
            settings = dataclasses.replace(settings, **overrides)

        service = BrandCheckService(settings=settings)
        summary = service.run(start_row=args.start_row, dry_run=args.dry_run)
    except BrandCheckError as exc:
        log_event(logger, logging.ERROR, "run_fatal", error_type=type(exc).__name__, error=str(exc))
        return 1

    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
