from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from .errors import ParseError
from .query.sort import parse_sort


DEFAULT_DB_URL = "sqlite:///data/tidings.db"
DEFAULT_SORT_ORDER = ">date"
DEFAULT_ABORT_KEY = "esc"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    db_url: str
    input_timeout_millis: int
    abort_key: str
    scroll_amount: int
    default_sort_order: str
    log_level: str

    @property
    def input_timeout_seconds(self) -> float:
        return self.input_timeout_millis / 1000.0

    def resolved_log_level(self) -> int:
        return getattr(logging, self.log_level, logging.WARNING)


def _to_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def _to_sort_order(raw: str | None) -> str:
    if raw is None or not raw.strip():
        return DEFAULT_SORT_ORDER
    try:
        parse_sort(raw)
    except ParseError:
        return DEFAULT_SORT_ORDER
    return raw.strip()


def _to_log_level(raw: str | None) -> str:
    normalized = (raw or "").strip().upper()
    if normalized in LOG_LEVELS:
        return normalized
    return "WARNING"


def get_default_env_file() -> Path:
    custom_path = os.getenv("TIDINGS_ENV_FILE", "").strip()
    if custom_path:
        return Path(custom_path).expanduser()

    xdg_root = os.getenv("XDG_CONFIG_HOME", "").strip()
    if xdg_root:
        return Path(xdg_root).expanduser() / "tidings" / ".env"
    return Path.home() / ".config" / "tidings" / ".env"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Prefer a local .env for development; fill missing values from global config.
    load_dotenv(override=False)
    load_dotenv(dotenv_path=get_default_env_file(), override=False)

    return Settings(
        db_url=os.getenv("TIDINGS_DB_URL", DEFAULT_DB_URL),
        input_timeout_millis=_to_int(os.getenv("INPUT_TIMEOUT_MILLIS"), 5000),
        abort_key=os.getenv("ABORT_KEY", DEFAULT_ABORT_KEY).strip() or DEFAULT_ABORT_KEY,
        scroll_amount=_to_int(os.getenv("SCROLL_AMOUNT"), 10),
        default_sort_order=_to_sort_order(os.getenv("DEFAULT_SORT_ORDER")),
        log_level=_to_log_level(os.getenv("LOG_LEVEL")),
    )
