from __future__ import annotations

import pytest

from questions.catalog import AnswerType, QuestionCatalog, QuestionDefinition
from session.engine import SessionEngine
from session.store import ConversationStore
from sync.google_sheets_adapter import GoogleSheetsAdapter
from sync.sync_service import SheetsSink


class _Request:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeSheetsService:
    """
    Mirrors the googleapiclient call chain used by the adapter and
    records every mutating call. Set `fail[<call>] = exc` to make a call raise.
    """

    def __init__(self, tabs=None):
        self.tabs = {name: [] for name in (tabs or [])}
        self.calls = []
        self.fail = {}

    # service.spreadsheets()
    def spreadsheets(self):
        return self

    # service.spreadsheets().values()
    def values(self):
        return _Values(self)

    def _run(self, name, fn):
        def wrapped():
            if name in self.fail:
                raise self.fail[name]
            return fn()
        return _Request(wrapped)

    def get(self, spreadsheetId, fields=None):
        return self._run("meta", lambda: {
            "sheets": [{"properties": {"title": t}} for t in self.tabs]
        })

    def batchUpdate(self, spreadsheetId, body):
        def fn():
            for req in body["requests"]:
                title = req["addSheet"]["properties"]["title"]
                if title in self.tabs:
                    raise RuntimeError(f"duplicate tab {title}")
                self.tabs[title] = []
                self.calls.append(("add_tab", title))
            return {}
        return self._run("add_tab", fn)

    @staticmethod
    def tab_of(range_):
        return range_.split("!")[0].strip("'").replace("''", "'")


class _Values:
    def __init__(self, svc: FakeSheetsService):
        self.svc = svc

    def get(self, spreadsheetId, range):
        def fn():
            rows = self.svc.tabs[self.svc.tab_of(range)]
            return {"values": rows[:1]} if rows else {}
        return self.svc._run("header", fn)

    def update(self, spreadsheetId, range, valueInputOption, body):
        def fn():
            rows = self.svc.tabs[self.svc.tab_of(range)]
            if rows:
                rows[0] = body["values"][0]
            else:
                rows.append(body["values"][0])
            self.svc.calls.append(("write_header", body["values"][0]))
            return {}
        return self.svc._run("write_header", fn)

    def append(self, spreadsheetId, range, valueInputOption, insertDataOption, body):
        def fn():
            assert insertDataOption == "INSERT_ROWS"
            self.svc.tabs[self.svc.tab_of(range)].extend(body["values"])
            self.svc.calls.append(("append", body["values"][0]))
            return {}
        return self.svc._run("append", fn)


class FakeTelegramClient:
    def __init__(self):
        self.sent = []

    def send_message(self, chat_id, text):
        self.sent.append((chat_id, text))


@pytest.fixture
def small_catalog():
    return QuestionCatalog([
        QuestionDefinition("name", "Name:"),
        QuestionDefinition("ok", "Confirm?:", AnswerType.YES_NO),
    ])


@pytest.fixture
def store():
    return ConversationStore()


@pytest.fixture
def engine(small_catalog, store):
    return SessionEngine(small_catalog, store)


@pytest.fixture
def sheets():
    return FakeSheetsService()


@pytest.fixture
def adapter(sheets):
    return GoogleSheetsAdapter("sheet-123", "Cases", sheets)


@pytest.fixture
def sink(adapter, small_catalog, tmp_path):
    return SheetsSink(adapter, small_catalog, spill_path=str(tmp_path / "unsent.csv"))


@pytest.fixture
def client():
    return FakeTelegramClient()
