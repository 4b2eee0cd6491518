"""
brandcheck/domain/brand_check.py

Domain models for brand presence checks.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType


class Marketplace(str, Enum):
    """
    Supported marketplaces. Declaration order is the sheet column order.
    """

    WILDBERRIES = "wildberries"
    OZON = "ozon"
    YANDEX_MARKET = "yandex_market"

    @classmethod
    def ordered(cls) -> tuple["Marketplace", ...]:
        return tuple(cls)


class Verdict(str, Enum):
    """
    Cascade-level answer for one (brand, marketplace) pair.
    """

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class _Indeterminate:
    """
    Strategy outcome meaning "no decisive signal, try the next strategy".
    """

    _instance: "_Indeterminate | None" = None

    def __new__(cls) -> "_Indeterminate":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INDETERMINATE"

    def __bool__(self) -> bool:
        return False


INDETERMINATE = _Indeterminate()

StrategyOutcome = Verdict | _Indeterminate


def is_decisive(outcome: StrategyOutcome) -> bool:
    return outcome is Verdict.PRESENT or outcome is Verdict.ABSENT


def normalize_brand_key(name: str) -> str:
    return name.strip().lower()


@dataclass(frozen=True)
class Brand:
    """
    One brand row read from the source.
    """

    name: str
    row_index: int

    @property
    def key(self) -> str:
        return normalize_brand_key(self.name)


@dataclass(frozen=True)
class ResultRecord:
    """
    Verdicts for one brand row, ready to be written to the sink.
    """

    row_index: int
    brand: Brand
    verdicts: Mapping[Marketplace, Verdict]
    checked_at: datetime

    @classmethod
    def build(
        cls,
        *,
        brand: Brand,
        verdicts: Mapping[Marketplace, Verdict],
        checked_at: datetime,
    ) -> "ResultRecord":
        """
        Build a record with a verdict for every marketplace; gaps become UNKNOWN.
        """

        complete = {
            marketplace: verdicts.get(marketplace, Verdict.UNKNOWN)
            for marketplace in Marketplace.ordered()
        }
        return cls(
            row_index=brand.row_index,
            brand=brand,
            verdicts=MappingProxyType(complete),
            checked_at=checked_at,
        )

    def verdict_for(self, marketplace: Marketplace) -> Verdict:
        return self.verdicts.get(marketplace, Verdict.UNKNOWN)

    def comparable(self) -> tuple[int, str, tuple[tuple[str, str], ...]]:
        """
        Record identity without the timestamp.
        """

        return (
            self.row_index,
            self.brand.name,
            tuple((marketplace.value, self.verdict_for(marketplace).value) for marketplace in Marketplace.ordered()),
        )


@dataclass
class BatchReport:
    """
    Outcome of one session batch.
    """

    batch_index: int
    proxy: str | None
    brands_total: int
    brands_checked: int = 0
    brands_failed: int = 0
    brands_skipped: int = 0
    session_failed: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """
    Totals for one orchestrator run.
    """

    brands_read: int = 0
    brands_eligible: int = 0
    brands_checked: int = 0
    brands_skipped: int = 0
    records_flushed: int = 0
    flush_calls: int = 0
    batches: list[BatchReport] = field(default_factory=list)
    verdict_counts: dict[str, Counter] = field(default_factory=dict)

    def count_record(self, record: ResultRecord) -> None:
        for marketplace in Marketplace.ordered():
            counter = self.verdict_counts.setdefault(marketplace.value, Counter())
            counter[record.verdict_for(marketplace).value] += 1

    def to_dict(self) -> dict[str, object]:
        return {
            "brands_read": self.brands_read,
            "brands_eligible": self.brands_eligible,
            "brands_checked": self.brands_checked,
            "brands_skipped": self.brands_skipped,
            "records_flushed": self.records_flushed,
            "flush_calls": self.flush_calls,
            "verdicts": {name: dict(counter) for name, counter in self.verdict_counts.items()},
            "batches": [
                {
                    "batch_index": batch.batch_index,
                    "proxy": batch.proxy,
                    "brands_total": batch.brands_total,
                    "brands_checked": batch.brands_checked,
                    "brands_failed": batch.brands_failed,
                    "brands_skipped": batch.brands_skipped,
                    "session_failed": batch.session_failed,
                    "errors": batch.errors,
                }
                for batch in self.batches
            ],
        }
