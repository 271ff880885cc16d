from __future__ import annotations


class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class ConfigError(DashboardError):
    """The spreadsheet identifier could not be resolved from configuration."""


class FetchError(DashboardError):
    """Upstream sheet export (or the sheet proxy) failed or returned a non-success status."""


class AuthError(DashboardError):
    """No credential row matched the submitted ID and password."""

    def __init__(self, message: str = "Invalid credentials. Please check your ID and Password.") -> None:
        super().__init__(message)
