# src/jobradar/io/sheets.py
"""
Google Sheets sink: one worksheet per kind ("Jobs" / "Sessions").

Rows are matched on the "Source URL" column. A record whose URL is already in
the sheet rewrites our columns of that row and leaves any other column (and
"Added At") alone; everything else is appended at the bottom.
The header row decides the column order; our column names must all be there.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Set

import gspread
import pandas as pd
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from jobradar.errors import ConfigError, JobRadarError, PersistenceError
from jobradar.io.store import SinkResult, new_record_id

log = logging.getLogger(__name__)

URL_HEADER = "Source URL"
ADDED_AT = "Added At"

WORKSHEETS = {"job": "Jobs", "session": "Sessions"}

# header -> record key, in the order a fresh sheet would use
JOB_COLUMNS: Dict[str, str] = {
    "ID": "id",
    URL_HEADER: "source_url",
    "Title": "title",
    "Company": "company",
    "Location": "location",
    "Region": "location_region",
    "Job type": "job_type",
    "Employment type": "employment_type",
    "Start date": "start_date",
    "Phone": "phone",
    "Email": "email",
    "Description": "description",
    "Accommodation": "has_accommodation",
    "Meals": "has_meals",
    "Requirements": "requirements",
    "Benefits": "benefits",
    "Languages": "languages",
    "Salary Min": "salary_min",
    "Salary Max": "salary_max",
    "Positions": "number_of_positions",
    "Deadline": "application_deadline",
}
SESSION_COLUMNS: Dict[str, str] = {
    "ID": "id",
    URL_HEADER: "source_url",
    "Event": "event",
    "Session": "session",
    "Subtitle": "subtitle",
    "Track": "track",
    "Filename": "filename",
    "Day": "day",
    "Start": "starttime",
    "End": "endtime",
    "Speakers": "speakers",
    "Description": "description",
    "Video URL": "video_url",
    "Language": "source_language",
}
COLUMNS = {"job": JOB_COLUMNS, "session": SESSION_COLUMNS}

_api_retry = retry(
    # Sheets quota errors come and go; wait 1s, 2s, 4s, ... up to 16s; at most 5 tries.
    wait=wait_exponential(min=1, max=16),
    stop=stop_after_attempt(5),
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    reraise=True,
)


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return value


@_api_retry
def _open_worksheet(service_account_file: str, sheet_id: str, title: str) -> gspread.Worksheet:
    gc = gspread.service_account(filename=service_account_file)
    sh = gc.open_by_key(sheet_id)
    return sh.worksheet(title)  # exact title; raises WorksheetNotFound


@_api_retry
def _read_header(ws: gspread.Worksheet) -> List[str]:
    return ws.row_values(1)


@_api_retry
def _read_row(ws: gspread.Worksheet, row_number: int) -> List[str]:
    return ws.row_values(row_number)


@_api_retry
def _read_column(ws: gspread.Worksheet, col: int) -> List[str]:
    return ws.col_values(col)


@_api_retry
def _read_records(ws: gspread.Worksheet) -> List[Dict[str, Any]]:
    return ws.get_all_records()


@_api_retry
def _update_row(ws: gspread.Worksheet, row_number: int, values: List[Any]) -> None:
    ws.update(range_name=f"A{row_number}", values=[values], value_input_option="RAW")


class SheetsStore:
    """Sink backed by a worksheet of a Google spreadsheet (service-account auth)."""

    def __init__(
        self,
        sheet_id: str,
        kind: str = "job",
        service_account_file: str = "service_account_jobbot.json",
        worksheet: Optional[gspread.Worksheet] = None,
    ):
        if kind not in WORKSHEETS:
            raise ValueError(f"Unknown import kind: {kind!r}")
        self.sheet_id = sheet_id
        self.kind = kind
        self.service_account_file = service_account_file
        self._ws = worksheet

    @property
    def worksheet(self) -> gspread.Worksheet:
        if self._ws is None:
            if not self.sheet_id:
                raise ConfigError("JOBRADAR_SHEET_ID is not set.")
            title = WORKSHEETS[self.kind]
            try:
                self._ws = _open_worksheet(self.service_account_file, self.sheet_id, title)
            except OSError as e:
                raise ConfigError(f"Cannot read service account file {self.service_account_file!r}: {e}") from e
            except (gspread.exceptions.GSpreadException, ValueError) as e:
                raise PersistenceError(f"Could not open '{title}' worksheet: {e}") from e
        return self._ws

    def _headers(self) -> List[str]:
        headers = _read_header(self.worksheet)
        if not headers:
            raise RuntimeError(f"Header row is empty in '{WORKSHEETS[self.kind]}' worksheet.")
        missing = [h for h in COLUMNS[self.kind] if h not in headers]
        if missing:
            raise RuntimeError(
                f"'{WORKSHEETS[self.kind]}' is missing required header(s): {', '.join(missing)}"
            )
        return headers

    def submit(self, entities: List[Dict[str, Any]]) -> SinkResult:
        if not entities:
            return SinkResult(status="error", message="No records to store")
        try:
            return self._submit(entities)
        except (gspread.exceptions.GSpreadException, JobRadarError, RuntimeError, OSError, ValueError) as e:
            log.error("Sheets write failed: %s", e)
            return SinkResult(status="error", message=str(e))

    def _submit(self, entities: List[Dict[str, Any]]) -> SinkResult:
        ws = self.worksheet
        headers = self._headers()
        columns = COLUMNS[self.kind]
        url_col = headers.index(URL_HEADER)
        id_col = headers.index("ID")

        # row numbers are 1-based and row 1 is the header
        existing_urls = _read_column(ws, url_col + 1)[1:]
        existing_ids = _read_column(ws, id_col + 1)[1:]
        row_by_url = {u: i + 2 for i, u in enumerate(existing_urls) if u}

        now = dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")
        appends: List[List[Any]] = []
        pending: Dict[str, int] = {}  # url -> index into appends
        updated = 0
        for entity in entities:
            url = entity.get("source_url") or ""
            row_number = row_by_url.get(url) if url else None
            record_id = ""
            if row_number is not None and row_number - 2 < len(existing_ids):
                record_id = existing_ids[row_number - 2]
            record = {**entity, "id": record_id or new_record_id(self.kind)}

            if row_number is not None:
                # only our columns change; operator columns and "Added At" stay as they are
                row = list(_read_row(ws, row_number))[: len(headers)]
                row += [""] * (len(headers) - len(row))
                for i, h in enumerate(headers):
                    if h in columns:
                        row[i] = _cell(record.get(columns[h]))
                _update_row(ws, row_number, row)
                updated += 1
                continue

            row = [_cell(record.get(columns[h])) if h in columns else "" for h in headers]
            if ADDED_AT in headers:
                row[headers.index(ADDED_AT)] = now
            if url in pending:
                appends[pending[url]] = row
            else:
                if url:
                    pending[url] = len(appends)
                appends.append(row)

        if appends:
            # not retried: an append that reached the server would be duplicated
            ws.append_rows(appends, value_input_option="RAW")
        log.info("Sheets: %d appended, %d updated in '%s'", len(appends), updated, WORKSHEETS[self.kind])
        return SinkResult(status="success", inserted=len(appends), updated=updated)

    def _frame(self) -> pd.DataFrame:
        """Whole worksheet as a DataFrame. Raises ConfigError or PersistenceError."""
        ws = self.worksheet
        try:
            return pd.DataFrame(_read_records(ws))
        except (gspread.exceptions.GSpreadException, OSError, ValueError) as e:
            raise PersistenceError(f"Could not read '{WORKSHEETS[self.kind]}' worksheet: {e}") from e

    def records(self) -> List[Dict[str, Any]]:
        df = self._frame()
        if df.empty:
            return []
        return df.to_dict(orient="records")

    def known_urls(self) -> Set[str]:
        df = self._frame()
        if URL_HEADER not in df.columns:
            return set()
        urls = df[URL_HEADER].dropna().astype(str).str.strip()
        return set(urls[urls != ""].tolist())
