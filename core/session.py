"""Persisted client state: the logged-in user plus branding overrides.

The store owns the lifecycle (load on start, mutate on login / logout /
settings change, notify subscribers); where values live is up to the backend.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

from core.auth import AuthenticatedUser
from core.config import DEFAULT_COMPANY_NAME, DEFAULT_LOGO_URL

logger = logging.getLogger(__name__)

USER_KEY = "micropartner_user"
COMPANY_NAME_KEY = "app_companyName"
LOGO_URL_KEY = "app_logoUrl"

Subscriber = Callable[[str, Optional[Any]], None]


class SessionBackend(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryBackend:
    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """Key/value pairs kept in a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".session-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class SessionStore:
    def __init__(
        self,
        backend: Optional[SessionBackend] = None,
        *,
        default_company_name: str = DEFAULT_COMPANY_NAME,
        default_logo_url: str = DEFAULT_LOGO_URL,
    ) -> None:
        self.backend: SessionBackend = backend if backend is not None else MemoryBackend()
        self.default_company_name = default_company_name
        self.default_logo_url = default_logo_url
        self._user: Optional[AuthenticatedUser] = None
        self._subscribers: List[Subscriber] = []

    # ----- lifecycle -----
    def load(self) -> Optional[AuthenticatedUser]:
        """Restore the persisted user, if any. A malformed entry is logged and ignored."""
        raw = self.backend.get(USER_KEY)
        self._user = None
        if raw is None:
            return None
        try:
            if isinstance(raw, str):
                raw = json.loads(raw)
            self._user = AuthenticatedUser.from_dict(raw)
        except ValueError:
            logger.warning("Failed to parse stored user %r", raw)
        return self._user

    def login(self, user: AuthenticatedUser) -> None:
        self.backend.set(USER_KEY, user.to_dict())
        self._user = user
        self._notify(USER_KEY, user.to_dict())

    def logout(self) -> None:
        self.backend.delete(USER_KEY)
        self._user = None
        self._notify(USER_KEY, None)

    def update_branding(self, company_name: Optional[str] = None, logo_url: Optional[str] = None) -> None:
        if company_name is not None:
            self.backend.set(COMPANY_NAME_KEY, company_name)
            self._notify(COMPANY_NAME_KEY, company_name)
        if logo_url is not None:
            self.backend.set(LOGO_URL_KEY, logo_url)
            self._notify(LOGO_URL_KEY, logo_url)

    # ----- reads -----
    @property
    def user(self) -> Optional[AuthenticatedUser]:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def company_name(self) -> str:
        return self.backend.get(COMPANY_NAME_KEY) or self.default_company_name

    @property
    def logo_url(self) -> str:
        return self.backend.get(LOGO_URL_KEY) or self.default_logo_url

    # ----- change notification -----
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, key: str, value: Optional[Any]) -> None:
        for callback in list(self._subscribers):
            callback(key, value)
