import argparse
import logging
import signal
import sys
import threading
from typing import Optional

import requests
from dotenv import load_dotenv
from flask import Flask, abort, jsonify, request

from bot.handlers import CaseBot
from bot.telegram_client import TelegramClient, TelegramError
from questions.catalog import QUESTIONS, QuestionCatalog
from session.engine import SessionEngine
from session.store import ConversationStore
from settings import ConfigError, Settings, load_settings
from sync.google_auth import build_sheets_service
from sync.google_sheets_adapter import GoogleSheetsAdapter
from sync.sync_service import SheetsSink

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


# -------------------------------------------------
# Wiring
# -------------------------------------------------

def build_bot(
    settings: Settings,
    catalog: QuestionCatalog = QUESTIONS,
    sheets_service=None,
    client: Optional[TelegramClient] = None,
) -> CaseBot:
    if sheets_service is None:
        sheets_service = build_sheets_service(
            settings.google_client_email,
            settings.google_private_key,
            timeout=settings.sheets_timeout,
        )

    adapter = GoogleSheetsAdapter(settings.spreadsheet_id, settings.sheet_tab, sheets_service)
    sink = SheetsSink(adapter, catalog, spill_path=settings.spill_path)
    engine = SessionEngine(catalog, ConversationStore())

    return CaseBot(
        engine=engine,
        sink=sink,
        spreadsheet_id=settings.spreadsheet_id,
        allowed_ids=settings.allowed_user_ids,
        client=client if client is not None else TelegramClient(settings.bot_token),
    )


def create_app(bot: CaseBot, webhook_secret: Optional[str] = None) -> Flask:
    app = Flask(__name__)

    @app.route("/healthz", methods=["GET"])
    def healthz():
        return jsonify({"status": "ok"})

    @app.route("/telegram/webhook", methods=["POST"])
    def telegram_webhook():
        if webhook_secret and request.headers.get(SECRET_HEADER) != webhook_secret:
            abort(403)

        update = request.get_json(silent=True)
        if not isinstance(update, dict):
            return jsonify({"error": "Invalid update"}), 400

        try:
            bot.handle_update(update)
        except Exception:
            # A 5xx makes Telegram redeliver the same update forever
            logger.exception("Unhandled error for update %s", update.get("update_id"))
        # Telegram only needs a 2xx; replies go out through sendMessage
        return jsonify({"ok": True})

    return app


# -------------------------------------------------
# CLI
# -------------------------------------------------

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Telegram case collector backed by Google Sheets")
    sub = parser.add_subparsers(dest="mode")

    sub.add_parser("poll", help="Receive updates by long polling (default)")

    serve = sub.add_parser("serve", help="Receive updates through a Flask webhook")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--webhook-url", help="Public URL to register with Telegram")

    args = parser.parse_args(argv)
    args.mode = args.mode or "poll"
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv()

    try:
        settings = load_settings()
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("❌ %s", e)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        bot = build_bot(settings)
        if args.mode == "serve" and args.webhook_url:
            bot.client.set_webhook(args.webhook_url, secret_token=settings.webhook_secret)
            logger.info("Webhook registered at %s", args.webhook_url)
        elif args.mode == "poll":
            # Polling and a webhook cannot coexist on the Bot API side
            bot.client.delete_webhook()
    except ValueError as e:
        logger.error("❌ Invalid GOOGLE_PRIVATE_KEY or Google credentials: %s", e)
        return 1
    except (requests.RequestException, TelegramError) as e:
        logger.error("❌ Could not reach Telegram at startup: %s", e)
        return 1

    if args.mode == "serve":
        app = create_app(bot, webhook_secret=settings.webhook_secret)
        app.run(host=args.host, port=args.port, threaded=True)
        return 0

    stop = threading.Event()

    def _stop(signum, _frame):
        logger.info("Received %s, stopping", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)

    bot.run_polling(stop=stop)
    return 0


if __name__ == "__main__":
    sys.exit(main())
