"""
Google Sheets backed brand source and result sink.

Layout: column A holds brand names from row 2 down. Each marketplace gets
one verdict column right of it in Marketplace order, followed by one
timestamp column.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException
from gspread.utils import rowcol_to_a1

from brandcheck.domain import Brand, Marketplace, ResultRecord, Verdict
from brandcheck.errors import ConfigError, SinkError, SourceError
from brandcheck.logging_utils import log_event
from brandcheck.storage.base import BrandSource, ResultSink

logger = logging.getLogger(__name__)

SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

BRAND_COLUMN = 1
FIRST_DATA_ROW = 2
FIRST_VERDICT_COLUMN = BRAND_COLUMN + 1

SHEETS_ERRORS = (GSpreadException, GoogleAuthError, requests.RequestException)


def build_gspread_client(
    *,
    credentials_json: str | None = None,
    credentials_path: str | None = None,
) -> gspread.Client:
    if credentials_json:
        try:
            info = json.loads(credentials_json)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"GOOGLE_CREDENTIALS is not valid JSON: {exc}") from exc
        if not isinstance(info, dict) or info.get("type") != "service_account":
            raise ConfigError("GOOGLE_CREDENTIALS must hold a service account key.")
        return gspread.service_account_from_dict(info, scopes=SHEETS_SCOPES)

    if credentials_path:
        try:
            credentials = Credentials.from_service_account_file(credentials_path, scopes=SHEETS_SCOPES)
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Unable to load service account file '{credentials_path}': {exc}") from exc
        return gspread.authorize(credentials)

    raise ConfigError("Either GOOGLE_CREDENTIALS or GOOGLE_APPLICATION_CREDENTIALS must be set.")


class GoogleSheetsStore(BrandSource, ResultSink):
    """
    One worksheet serving as both brand source and verdict sink.
    """

    def __init__(
        self,
        *,
        client: gspread.Client,
        sheet_id: str,
        sheet_name: str,
        verdict_labels: Mapping[Verdict, str],
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._client = client
        self.sheet_id = sheet_id
        self.sheet_name = sheet_name
        self._verdict_labels = verdict_labels
        self._now = now
        self._worksheet: gspread.Worksheet | None = None

    @property
    def marketplaces(self) -> tuple[Marketplace, ...]:
        return Marketplace.ordered()

    @property
    def timestamp_column(self) -> int:
        return FIRST_VERDICT_COLUMN + len(self.marketplaces)

    def read_brands(self) -> list[Brand]:
        try:
            values = self._open_worksheet().col_values(BRAND_COLUMN)
        except SHEETS_ERRORS as exc:
            raise SourceError(f"Unable to read brands from '{self.sheet_name}': {exc}") from exc

        brands: list[Brand] = []
        for offset, value in enumerate(values[FIRST_DATA_ROW - 1 :]):
            name = str(value).strip() if value is not None else ""
            if name:
                brands.append(Brand(name=name, row_index=FIRST_DATA_ROW + offset))
        return brands

    def preflight(self) -> None:
        cell = rowcol_to_a1(FIRST_DATA_ROW, self.timestamp_column)
        try:
            self._open_worksheet().update(
                range_name=cell,
                values=[[self._now().isoformat()]],
                value_input_option="RAW",
            )
        except SHEETS_ERRORS as exc:
            raise SinkError(f"Preflight write to '{self.sheet_name}'!{cell} failed: {exc}") from exc
        log_event(logger, logging.INFO, "preflight_ok", sheet=self.sheet_name, cell=cell)

    def write_records(self, records: Sequence[ResultRecord]) -> int:
        if not records:
            return 0

        payload = [
            {"range": self.row_range(record.row_index), "values": [self.row_values(record)]}
            for record in records
        ]
        try:
            self._open_worksheet().batch_update(payload, value_input_option="RAW")
        except SHEETS_ERRORS as exc:
            raise SinkError(f"Unable to write {len(records)} rows to '{self.sheet_name}': {exc}") from exc
        return len(records)

    def row_range(self, row_index: int) -> str:
        start = rowcol_to_a1(row_index, FIRST_VERDICT_COLUMN)
        end = rowcol_to_a1(row_index, self.timestamp_column)
        return f"{start}:{end}"

    def row_values(self, record: ResultRecord) -> list[str]:
        labels = [
            self._verdict_labels.get(record.verdict_for(marketplace), record.verdict_for(marketplace).value)
            for marketplace in self.marketplaces
        ]
        return [*labels, record.checked_at.isoformat()]

    def _open_worksheet(self) -> gspread.Worksheet:
        if self._worksheet is None:
            spreadsheet = self._client.open_by_key(self.sheet_id)
            self._worksheet = spreadsheet.worksheet(self.sheet_name)
        return self._worksheet


class LoggingSink(ResultSink):
    """
    Sink that only logs rows; used for dry runs.
    """

    def __init__(self, *, verdict_labels: Mapping[Verdict, str] | None = None) -> None:
        self._verdict_labels = verdict_labels or {}
        self.written: list[ResultRecord] = []

    def write_records(self, records: Sequence[ResultRecord]) -> int:
        for record in records:
            log_event(
                logger,
                logging.INFO,
                "dry_run_record",
                row_index=record.row_index,
                brand=record.brand.name,
                checked_at=record.checked_at.isoformat(),
                **{
                    marketplace.value: self._verdict_labels.get(
                        record.verdict_for(marketplace), record.verdict_for(marketplace).value
                    )
                    for marketplace in Marketplace.ordered()
                },
            )
        self.written.extend(records)
        return len(records)
