"""
Brand check engine: batches brands over rendering sessions and flushes verdicts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from brandcheck.config.models import BrandCheckSettings
from brandcheck.detection.cascade import MarketplaceCascade
from brandcheck.domain import BatchReport, Brand, Marketplace, ResultRecord, RunSummary, Verdict
from brandcheck.errors import SessionFailure, SinkError
from brandcheck.logging_utils import log_event
from brandcheck.rate_limiter import FixedDelay
from brandcheck.session.manager import Session, SessionManager
from brandcheck.storage.base import BrandSource, ResultSink

logger = logging.getLogger(__name__)


class BrandCheckEngine:
    """
    Orchestrates one run: read brands, check each against every marketplace
    cascade inside a per-batch session, and write verdicts once per batch.
    """

    def __init__(
        self,
        *,
        settings: BrandCheckSettings,
        source: BrandSource,
        sink: ResultSink,
        session_manager: SessionManager,
        cascades: Sequence[MarketplaceCascade],
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if settings.batch_size <= 0:
            raise ValueError("batch_size must be positive.")
        self._settings = settings
        self._source = source
        self._sink = sink
        self._session_manager = session_manager
        self._cascades = list(cascades)
        self._now = now
        self._delay = FixedDelay(delay_ms=settings.delay_ms, sleep=sleep)

    def run(self, *, start_row: int | None = None) -> RunSummary:
        summary = RunSummary()
        brands = self._source.read_brands()
        summary.brands_read = len(brands)

        eligible = self._select_brands(brands, start_row=start_row)
        summary.brands_eligible = len(eligible)
        log_event(
            logger,
            logging.INFO,
            "run_started",
            brands_read=summary.brands_read,
            brands_eligible=summary.brands_eligible,
            batch_size=self._settings.batch_size,
            marketplaces=[cascade.marketplace.value for cascade in self._cascades],
        )

        self._sink.preflight()

        pending: list[ResultRecord] = []
        known: dict[str, dict[Marketplace, Verdict]] = {}
        sink_failed = False
        try:
            batch_size = self._settings.batch_size
            for batch_index, start in enumerate(range(0, len(eligible), batch_size)):
                batch = eligible[start : start + batch_size]
                report = self._run_batch(
                    batch_index=batch_index,
                    batch=batch,
                    pending=pending,
                    known=known,
                    summary=summary,
                )
                summary.batches.append(report)
                self._flush(pending, summary)
        except SinkError:
            sink_failed = True
            raise
        finally:
            if pending and not sink_failed:
                self._flush(pending, summary)

        log_event(
            logger,
            logging.INFO,
            "run_completed",
            brands_checked=summary.brands_checked,
            brands_skipped=summary.brands_skipped,
            records_flushed=summary.records_flushed,
            flush_calls=summary.flush_calls,
        )
        return summary

    def _select_brands(self, brands: Sequence[Brand], *, start_row: int | None) -> list[Brand]:
        selected = [brand for brand in brands if start_row is None or brand.row_index >= start_row]
        return selected[: max(0, self._settings.max_per_run)]

    def _run_batch(
        self,
        *,
        batch_index: int,
        batch: Sequence[Brand],
        pending: list[ResultRecord],
        known: dict[str, dict[Marketplace, Verdict]],
        summary: RunSummary,
    ) -> BatchReport:
        report = BatchReport(
            batch_index=batch_index,
            proxy=self._session_manager.session_config(batch_index).proxy,
            brands_total=len(batch),
        )
        log_event(
            logger,
            logging.INFO,
            "batch_started",
            batch_index=batch_index,
            proxy=report.proxy,
            brands=len(batch),
        )

        try:
            with self._session_manager.session(batch_index) as session:
                self._check_batch(session, batch, pending=pending, known=known, report=report, summary=summary)
        except SessionFailure as exc:
            # Only opening the session raises here; the batch loop handles the rest.
            self._mark_session_failed(report, exc)
            self._skip(batch, report, summary)

        return report

    def _check_batch(
        self,
        session: Session,
        batch: Sequence[Brand],
        *,
        pending: list[ResultRecord],
        known: dict[str, dict[Marketplace, Verdict]],
        report: BatchReport,
        summary: RunSummary,
    ) -> None:
        for position, brand in enumerate(batch):
            reused = known.get(brand.key)
            if reused is not None:
                self._record(brand, reused, pending, report, summary, reused_verdicts=True)
                continue

            verdicts: dict[Marketplace, Verdict] = {}
            try:
                session.begin_check()
                self._check_brand(brand, session, verdicts)
            except SessionFailure as exc:
                self._mark_session_failed(report, exc, brand=brand)
                self._record(brand, verdicts, pending, report, summary)
                self._skip(batch[position + 1 :], report, summary)
                return
            except Exception as exc:
                report.brands_failed += 1
                report.errors.append(f"{brand.name}: {exc}")
                log_event(
                    logger,
                    logging.ERROR,
                    "brand_check_failed",
                    batch_index=report.batch_index,
                    row_index=brand.row_index,
                    brand=brand.name,
                    error=str(exc),
                )
                self._record(brand, verdicts, pending, report, summary)
                continue

            known[brand.key] = dict(verdicts)
            self._record(brand, verdicts, pending, report, summary)

    def _check_brand(
        self,
        brand: Brand,
        session: Session,
        verdicts: dict[Marketplace, Verdict],
    ) -> None:
        # Filled in place so a failure part way through keeps resolved marketplaces.
        for position, cascade in enumerate(self._cascades):
            if position > 0:
                self._delay.pause()
            verdicts[cascade.marketplace] = cascade.check(brand, session)

    def _record(
        self,
        brand: Brand,
        verdicts: dict[Marketplace, Verdict],
        pending: list[ResultRecord],
        report: BatchReport,
        summary: RunSummary,
        *,
        reused_verdicts: bool = False,
    ) -> None:
        record = ResultRecord.build(brand=brand, verdicts=verdicts, checked_at=self._now())
        pending.append(record)
        report.brands_checked += 1
        summary.brands_checked += 1
        summary.count_record(record)
        log_event(
            logger,
            logging.INFO,
            "brand_checked",
            batch_index=report.batch_index,
            row_index=brand.row_index,
            brand=brand.name,
            reused=reused_verdicts,
            verdicts={marketplace.value: verdict.value for marketplace, verdict in record.verdicts.items()},
        )

    def _skip(self, brands: Sequence[Brand], report: BatchReport, summary: RunSummary) -> None:
        for brand in brands:
            log_event(
                logger,
                logging.WARNING,
                "brand_skipped",
                batch_index=report.batch_index,
                row_index=brand.row_index,
                brand=brand.name,
                reason="session_failed",
            )
        report.brands_skipped += len(brands)
        summary.brands_skipped += len(brands)

    @staticmethod
    def _mark_session_failed(report: BatchReport, exc: Exception, *, brand: Brand | None = None) -> None:
        report.session_failed = True
        report.errors.append(str(exc))
        log_event(
            logger,
            logging.ERROR,
            "session_failed",
            batch_index=report.batch_index,
            proxy=report.proxy,
            brand=brand.name if brand else None,
            error=str(exc),
        )

    def _flush(self, pending: list[ResultRecord], summary: RunSummary) -> None:
        if not pending:
            return
        written = self._sink.write_records(list(pending))
        summary.records_flushed += written
        summary.flush_calls += 1
        log_event(logger, logging.INFO, "records_flushed", records=written, flush_calls=summary.flush_calls)
        pending.clear()
