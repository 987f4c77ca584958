import csv
from datetime import datetime, timezone

import httplib2
import pytest
from googleapiclient.errors import HttpError

from sync.errors import SchemaError, WriteError
from sync.google_sheets_adapter import GoogleSheetsAdapter, sheet_url
from sync.sync_service import build_row, ensure_ready, header_labels, utc_timestamp

RECORD = {"identity_id": "42", "display_name": "alice", "name": "Alice", "ok": "Yes"}
NOW = datetime(2024, 5, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)


def http_error(status=500):
    return HttpError(httplib2.Response({"status": status}), b"backend error")


def test_header_labels_prefix_metadata(small_catalog):
    assert header_labels(small_catalog) == ["Timestamp", "Identity ID", "Display Name", "Name", "Confirm?"]


def test_ensure_ready_creates_tab_and_header(adapter, sheets, small_catalog):
    ensure_ready(adapter, header_labels(small_catalog))

    assert sheets.calls == [
        ("add_tab", "Cases"),
        ("write_header", header_labels(small_catalog)),
    ]


def test_ensure_ready_is_idempotent(adapter, sheets, small_catalog):
    labels = header_labels(small_catalog)
    ensure_ready(adapter, labels)
    sheets.calls.clear()

    ensure_ready(adapter, labels)
    assert sheets.calls == []


def test_existing_tab_only_gets_header(sheets, small_catalog):
    sheets.tabs["Cases"] = []
    adapter = GoogleSheetsAdapter("sheet-123", "Cases", sheets)

    ensure_ready(adapter, header_labels(small_catalog))
    assert [c[0] for c in sheets.calls] == ["write_header"]


def test_mismatched_header_is_left_alone(sheets, small_catalog):
    sheets.tabs["Cases"] = [["Hand", "Edited"]]
    adapter = GoogleSheetsAdapter("sheet-123", "Cases", sheets)

    ensure_ready(adapter, header_labels(small_catalog))
    assert sheets.calls == []
    assert sheets.tabs["Cases"][0] == ["Hand", "Edited"]


def test_deleted_header_is_repaired_on_next_call(adapter, sheets, small_catalog):
    labels = header_labels(small_catalog)
    ensure_ready(adapter, labels)
    sheets.tabs["Cases"].clear()

    ensure_ready(adapter, labels)
    assert sheets.calls[-1] == ("write_header", labels)


@pytest.mark.parametrize("failing", ["meta", "add_tab", "header", "write_header"])
def test_transport_failures_become_schema_error(adapter, sheets, small_catalog, failing):
    sheets.fail[failing] = http_error()
    with pytest.raises(SchemaError):
        ensure_ready(adapter, header_labels(small_catalog))


def test_timeout_becomes_schema_error(adapter, sheets, small_catalog):
    sheets.fail["meta"] = TimeoutError("timed out")
    with pytest.raises(SchemaError) as exc:
        ensure_ready(adapter, header_labels(small_catalog))
    assert isinstance(exc.value.__cause__, TimeoutError)


def test_build_row_orders_by_catalog_and_fills_blanks(small_catalog):
    row = build_row({"identity_id": "42", "display_name": "", "ok": "No"}, small_catalog, NOW)
    assert row == ["2024-05-01T12:30:15.123Z", "42", "", "", "No"]


def test_utc_timestamp_converts_to_utc():
    assert utc_timestamp(NOW).endswith("Z")
    assert utc_timestamp().endswith("Z")


def test_sink_appends_after_header(sink, sheets):
    sink.submit(RECORD, now=NOW)

    rows = sheets.tabs["Cases"]
    assert rows[0][:3] == ["Timestamp", "Identity ID", "Display Name"]
    assert rows[1] == ["2024-05-01T12:30:15.123Z", "42", "alice", "Alice", "Yes"]


def test_sink_does_not_dedupe(sink, sheets):
    sink.submit(RECORD, now=NOW)
    sink.submit(RECORD, now=NOW)
    assert len(sheets.tabs["Cases"]) == 3


def test_append_failure_raises_write_error_and_spills(sink, sheets, tmp_path):
    sheets.fail["append"] = http_error(503)

    with pytest.raises(WriteError):
        sink.submit(RECORD, now=NOW)

    with open(tmp_path / "unsent.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == header_labels(sink.catalog)
    assert rows[1] == ["2024-05-01T12:30:15.123Z", "42", "alice", "Alice", "Yes"]


def test_spill_appends_without_repeating_header(sink, sheets, tmp_path):
    sheets.fail["meta"] = OSError("network down")
    for _ in range(2):
        with pytest.raises(SchemaError):
            sink.submit(RECORD, now=NOW)

    with open(tmp_path / "unsent.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert len(rows) == 3


def test_sink_without_spill_path_still_raises(adapter, sheets, small_catalog):
    from sync.sync_service import SheetsSink

    sheets.fail["append"] = http_error()
    with pytest.raises(WriteError):
        SheetsSink(adapter, small_catalog, spill_path=None).submit(RECORD)


def test_tab_names_are_quoted(sheets):
    sheets.tabs["Bob's cases"] = [["x"]]
    adapter = GoogleSheetsAdapter("sheet-123", "Bob's cases", sheets)
    assert adapter.fetch_header() == ["x"]
    assert adapter._tab_ref == "'Bob''s cases'"


def test_sheet_url():
    assert sheet_url("abc") == "https://docs.google.com/spreadsheets/d/abc/edit"


@pytest.mark.parametrize("answer,cell", [
    ("+44 20 7946 0958", "'+44 20 7946 0958"),
    ("=HYPERLINK(\"http://x\")", "'=HYPERLINK(\"http://x\")"),
    ("-5", "'-5"),
    ("@alice", "'@alice"),
    ("Alice", "Alice"),
    ("", ""),
])
def test_answers_that_look_like_formulas_stay_text(small_catalog, answer, cell):
    row = build_row({"identity_id": "42", "display_name": "a", "name": answer}, small_catalog, NOW)
    assert row[3] == cell
