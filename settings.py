# settings.py

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional


DEFAULT_SHEET_TAB = "Cases"
DEFAULT_SPILL_PATH = "data/unsent_cases.csv"
DEFAULT_SHEETS_TIMEOUT = 20.0


class ConfigError(Exception):
    """Required configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    bot_token: str
    spreadsheet_id: str
    google_client_email: str
    google_private_key: str
    allowed_user_ids: FrozenSet[str] = field(default_factory=frozenset)
    sheet_tab: str = DEFAULT_SHEET_TAB
    sheets_timeout: float = DEFAULT_SHEETS_TIMEOUT
    spill_path: Optional[str] = DEFAULT_SPILL_PATH
    webhook_secret: Optional[str] = None
    log_level: str = "INFO"


def parse_allowed_ids(raw: Optional[str]) -> FrozenSet[str]:
    return frozenset(part.strip() for part in (raw or "").split(",") if part.strip())


def _require(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigError(f"Missing {name} in environment / .env")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read settings from the environment (call load_dotenv() first).
    Raises ConfigError naming the first missing required variable.
    """
    env = os.environ if env is None else env

    bot_token = _require(env, "BOT_TOKEN")
    spreadsheet_id = _require(env, "GOOGLE_SHEETS_ID")
    client_email = _require(env, "GOOGLE_CLIENT_EMAIL")
    private_key = _require(env, "GOOGLE_PRIVATE_KEY")

    raw_timeout = env.get("SHEETS_TIMEOUT_SECONDS") or str(DEFAULT_SHEETS_TIMEOUT)
    try:
        timeout = float(raw_timeout)
    except ValueError:
        raise ConfigError(f"SHEETS_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}")
    if timeout <= 0:
        raise ConfigError("SHEETS_TIMEOUT_SECONDS must be positive")

    spill_path = env.get("SPILL_PATH", DEFAULT_SPILL_PATH).strip() or None

    return Settings(
        bot_token=bot_token,
        spreadsheet_id=spreadsheet_id,
        google_client_email=client_email,
        google_private_key=private_key,
        allowed_user_ids=parse_allowed_ids(env.get("ALLOWED_USER_IDS")),
        sheet_tab=(env.get("SHEET_TAB") or "").strip() or DEFAULT_SHEET_TAB,
        sheets_timeout=timeout,
        spill_path=spill_path,
        webhook_secret=(env.get("WEBHOOK_SECRET") or "").strip() or None,
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )
