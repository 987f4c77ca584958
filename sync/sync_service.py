# sync/sync_service.py

import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from questions.catalog import QuestionCatalog
from session.context import DISPLAY_NAME_FIELD, IDENTITY_FIELD
from sync.errors import TRANSPORT_ERRORS, SchemaError, SinkError, WriteError
from sync.google_sheets_adapter import GoogleSheetsAdapter
from sync.local_spreadsheet_service import spill_row_to_csv

logger = logging.getLogger(__name__)


METADATA_COLUMNS = ["Timestamp", "Identity ID", "Display Name"]


def header_labels(catalog: QuestionCatalog) -> list[str]:
    return METADATA_COLUMNS + catalog.labels()


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# -------------------------------------------------
# Schema reconciliation
# -------------------------------------------------

def ensure_ready(adapter: GoogleSheetsAdapter, expected_labels: list[str]):
    """
    Make sure the tab exists and row 1 is non-empty.

    - Missing tab -> created
    - Empty row 1 -> expected_labels written
    - Existing header is never touched, even if it differs

    Checked on every submission; nothing is cached between calls because
    the sheet can be edited by hand at any time.
    """
    try:
        if not adapter.tab_exists():
            logger.info("Creating sheet tab %r", adapter.sheet_tab)
            adapter.add_tab()

        if not any(str(cell).strip() for cell in adapter.fetch_header()):
            logger.info("Writing header row to %r", adapter.sheet_tab)
            adapter.write_header(expected_labels)
    except TRANSPORT_ERRORS as e:
        raise SchemaError(f"Could not prepare sheet tab {adapter.sheet_tab!r}") from e


# -------------------------------------------------
# Row writer
# -------------------------------------------------

# USER_ENTERED parses these as formulas; a leading apostrophe keeps the cell text
FORMULA_PREFIXES = ("=", "+", "-", "@")


def as_text_cell(value: str) -> str:
    return f"'{value}" if value.startswith(FORMULA_PREFIXES) else value


def build_row(
    record: Mapping[str, str],
    catalog: QuestionCatalog,
    now: Optional[datetime] = None,
) -> list:
    return [
        utc_timestamp(now),
        record.get(IDENTITY_FIELD, ""),
        record.get(DISPLAY_NAME_FIELD, ""),
        *(as_text_cell(record.get(key) or "") for key in catalog.keys()),
    ]


def append_record(adapter: GoogleSheetsAdapter, row: list):
    # No dedup key: appending the same record twice yields two rows
    try:
        adapter.append_row(row)
    except TRANSPORT_ERRORS as e:
        raise WriteError(f"Could not append row to {adapter.sheet_tab!r}") from e


class SheetsSink:
    """
    Persists completed records: ensure schema, then append one row.
    Rows the remote store refuses are spilled to a local CSV when
    `spill_path` is set, then the error is re-raised.
    """

    def __init__(
        self,
        adapter: GoogleSheetsAdapter,
        catalog: QuestionCatalog,
        spill_path: Optional[str] = None,
    ):
        self.adapter = adapter
        self.catalog = catalog
        self.spill_path = spill_path

    def submit(self, record: Mapping[str, str], now: Optional[datetime] = None):
        labels = header_labels(self.catalog)
        row = build_row(record, self.catalog, now)

        try:
            ensure_ready(self.adapter, labels)
            append_record(self.adapter, row)
        except SinkError:
            self._spill(labels, row)
            raise

        logger.info("Appended case for %s to %r", row[1], self.adapter.sheet_tab)

    def _spill(self, labels: list[str], row: list):
        if not self.spill_path:
            return
        try:
            path = spill_row_to_csv(row, header=labels, output_path=self.spill_path)
        except OSError:
            logger.exception("Could not spill unsent case to %s", self.spill_path)
            return
        logger.warning("Unsent case for %s saved to %s", row[1], path)
