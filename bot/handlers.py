# bot/handlers.py

import logging
import threading
from typing import Iterable, Optional

import requests

from bot.telegram_client import TelegramClient, TelegramError
from questions.validation import Rejected
from session.engine import Completed, Prompt, SessionEngine
from sync.errors import SinkError
from sync.google_sheets_adapter import sheet_url
from sync.sync_service import SheetsSink

logger = logging.getLogger(__name__)


# -------------------------------------------------
# Reply texts
# -------------------------------------------------

START_TEXT = "Let's add a new case.\nYou can /cancel anytime.\n\n{prompt}"
NOT_AUTHORIZED_CASES = "🚫 You are not authorized to add cases."
NOT_AUTHORIZED = "🚫 You are not authorized."
CANCELED = "❌ Case entry canceled."
NOTHING_TO_CANCEL = "No active case to cancel."
WHOAMI = "Your Telegram ID: {identity}"
EXPORT = "📄 Google Sheet:\n{url}"
SAVED = "✅ Saved to Google Sheets."
SAVE_FAILED = "⚠️ Error saving to Google Sheets. Please start again with /new."


def parse_command(text: str) -> Optional[str]:
    """
    "/New@case_bot extra" -> "new"; plain text -> None
    """
    if not text.startswith("/"):
        return None
    head = text.split(maxsplit=1)[0][1:]
    return head.split("@", 1)[0].lower() or None


class CaseBot:
    """
    Routes commands and free text to the session engine and turns
    engine outcomes into reply texts. Transport-agnostic: `handle_message`
    returns the reply (or None for silence), `handle_update` sends it.
    """

    def __init__(
        self,
        engine: SessionEngine,
        sink: SheetsSink,
        spreadsheet_id: str,
        allowed_ids: Iterable[str] = (),
        client: Optional[TelegramClient] = None,
    ):
        self.engine = engine
        self.sink = sink
        self.spreadsheet_id = spreadsheet_id
        self.allowed_ids = frozenset(str(i) for i in allowed_ids)
        self.client = client

        self.commands = {
            "start": self._begin,
            "new": self._begin,
            "cancel": self._cancel,
            "whoami": self._whoami,
            "export": self._export,
        }

    def is_allowed(self, identity: str) -> bool:
        # Empty allow-list means everyone
        return not self.allowed_ids or identity in self.allowed_ids

    # -------------------------------------------------
    # Commands
    # -------------------------------------------------

    def _begin(self, identity, display_name):
        if not self.is_allowed(identity):
            logger.info("Denied case entry for %s", identity)
            return NOT_AUTHORIZED_CASES
        prompt = self.engine.begin_session(identity, display_name)
        return START_TEXT.format(prompt=prompt)

    def _cancel(self, identity, display_name):
        return CANCELED if self.engine.cancel_session(identity) else NOTHING_TO_CANCEL

    def _whoami(self, identity, display_name):
        return WHOAMI.format(identity=identity)

    def _export(self, identity, display_name):
        if not self.is_allowed(identity):
            return NOT_AUTHORIZED
        return EXPORT.format(url=sheet_url(self.spreadsheet_id))

    # -------------------------------------------------
    # Entry points
    # -------------------------------------------------

    def handle_message(self, identity, display_name: str, text: str) -> Optional[str]:
        identity = str(identity)
        text = text or ""

        handler = self.commands.get(parse_command(text))
        if handler is not None:
            return handler(identity, display_name or "")

        outcome = self.engine.submit_answer(identity, text)

        if isinstance(outcome, Prompt):
            return outcome.text
        if isinstance(outcome, Rejected):
            return outcome.retry_prompt
        if isinstance(outcome, Completed):
            return self._persist(outcome)
        # No session: stay silent
        return None

    def _persist(self, outcome: Completed) -> str:
        try:
            self.sink.submit(outcome.record)
        except SinkError:
            logger.exception("Error saving case for %s to Google Sheets", outcome.identity)
            return SAVE_FAILED
        return SAVED

    def handle_update(self, update: dict) -> Optional[str]:
        message = update.get("message") or {}
        sender = message.get("from") or {}
        text = message.get("text")
        if not sender or text is None:
            return None

        reply = self.handle_message(sender["id"], sender.get("username") or "", text)
        if reply is not None:
            self.send(message["chat"]["id"], reply)
        return reply

    def send(self, chat_id, text: str):
        if self.client is None:
            return
        try:
            self.client.send_message(chat_id, text)
        except (requests.RequestException, TelegramError):
            logger.exception("Could not deliver reply to chat %s", chat_id)

    # -------------------------------------------------
    # Long polling
    # -------------------------------------------------

    def run_polling(self, stop: Optional[threading.Event] = None, poll_timeout: int = 30):
        stop = stop or threading.Event()
        offset = None
        logger.info("✅ Bot is running (long polling)")

        while not stop.is_set():
            try:
                updates = self.client.get_updates(offset=offset, poll_timeout=poll_timeout)
            except (requests.RequestException, TelegramError):
                logger.exception("getUpdates failed, retrying")
                stop.wait(5)
                continue

            for update in updates:
                offset = update["update_id"] + 1
                try:
                    self.handle_update(update)
                except Exception:
                    # One bad update must not stop the loop
                    logger.exception("Unhandled error for update %s", update.get("update_id"))

        logger.info("Polling stopped")
