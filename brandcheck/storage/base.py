"""
Storage layer interfaces for brand input and verdict output.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from brandcheck.domain import Brand, ResultRecord


class BrandSource(ABC):
    """
    Where brand names come from.
    """

    @abstractmethod
    def read_brands(self) -> list[Brand]:
        """
        Return every non-empty brand row in read order. Raise SourceError on failure.
        """


class ResultSink(ABC):
    """
    Where verdict rows are written.
    """

    def preflight(self) -> None:
        """
        Confirm the sink is writable before any brand is processed.
        """

    @abstractmethod
    def write_records(self, records: Sequence[ResultRecord]) -> int:
        """
        Persist records in one call and return the number written. Raise SinkError on failure.
        """
