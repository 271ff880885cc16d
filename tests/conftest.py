from __future__ import annotations

import pandas as pd
import pytest

from core.auth import AuthenticatedUser
from core.config import Settings, get_settings
from core.normalize import NormalizedRecord, records_frame

SHEET_LINK = "https://docs.google.com/spreadsheets/d/abc123-XYZ_9/edit#gid=0"


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200, json_data=None, reason: str = "OK"):
        self.text = text
        self.status_code = status_code
        self.reason = reason
        self._json = json_data

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(sheet_link=SHEET_LINK, request_timeout=5.0)


@pytest.fixture
def admin() -> AuthenticatedUser:
    return AuthenticatedUser(role="admin", name="Administrator", id="admin")


@pytest.fixture
def acme_user() -> AuthenticatedUser:
    return AuthenticatedUser(role="user", name="Acme", id="u1")


@pytest.fixture
def records() -> pd.DataFrame:
    rows = [
        NormalizedRecord("2024", "Mar", "Alpha Stores", "North", "Pens", "Acme", "Ravi", 100.0),
        NormalizedRecord("2024", "Jan", "Beta Traders", "South", "Pens", "Acme", "Ravi", 50.0),
        NormalizedRecord("2025", "Feb", "Alpha Stores", "North", "Paper", "Acme", "Meena", 30.0),
        NormalizedRecord("2025", "Jan", "Gamma Mart", "East", "Files", "Zenith", "Arjun", 200.0),
        NormalizedRecord("2024", "Dec", "Delta Depot", "West", "Paper", "Zenith", "Kiran", 20.0),
        NormalizedRecord("2025", "Jan", "Gamma Mart", "", "Pens", "Zenith", "Arjun", -10.0),
    ]
    return records_frame(rows)
