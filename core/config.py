from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from core.errors import ConfigError

# Real environment variables win over .env entries.
load_dotenv(override=False)

SPREADSHEET_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9-_]+)")
MISSING_SHEET_ID_MESSAGE = "Google Sheet ID invalid or missing in configuration"

DEFAULT_SESSION_PATH = ".dashboard_session.json"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_COMPANY_NAME = "Acemark Stationers"
DEFAULT_LOGO_URL = "ace-logo.jpg"


def extract_spreadsheet_id(link: Optional[str]) -> Optional[str]:
    if not link:
        return None
    match = SPREADSHEET_ID_PATTERN.search(link)
    if not match:
        return None
    return match.group(1)


def _as_timeout(value: Optional[str]) -> float:
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_REQUEST_TIMEOUT
    return out if out > 0 else DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class Settings:
    sheet_link: str = ""
    api_base_url: Optional[str] = None
    session_path: str = DEFAULT_SESSION_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    default_company_name: str = DEFAULT_COMPANY_NAME
    default_logo_url: str = DEFAULT_LOGO_URL

    @property
    def spreadsheet_id(self) -> Optional[str]:
        return extract_spreadsheet_id(self.sheet_link)


def settings_from_env() -> Settings:
    api_base_url = (os.getenv("DASHBOARD_API_URL") or "").strip().rstrip("/")
    return Settings(
        sheet_link=(os.getenv("GOOGLE_SHEET_LINK") or "").strip(),
        api_base_url=api_base_url or None,
        session_path=(os.getenv("DASHBOARD_SESSION_FILE") or "").strip() or DEFAULT_SESSION_PATH,
        request_timeout=_as_timeout(os.getenv("DASHBOARD_REQUEST_TIMEOUT")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return settings_from_env()


def require_spreadsheet_id(settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    spreadsheet_id = settings.spreadsheet_id
    if not spreadsheet_id:
        raise ConfigError(MISSING_SHEET_ID_MESSAGE)
    return spreadsheet_id
