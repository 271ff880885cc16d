from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Mapping, Optional

from core.errors import AuthError
from core.normalize import first_present
from core.sheets import MASTER_SHEET, RawRecord, fetch_sheet

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"

ADMIN_ID = "admin"
ADMIN_PASSWORD = "admin"
ADMIN_NAME = "Administrator"
DEFAULT_DISPLAY_NAME = "User"

USER_ID_ALIASES = ("ID", "Id", "User ID")
PASSWORD_ALIASES = ("Password", "password")
DISPLAY_NAME_ALIASES = ("Consigneename", "ConsigneeName", "Consignee Name")


@dataclass(frozen=True)
class UserRecord:
    id: str
    password: str
    role: str
    display_name: str


@dataclass(frozen=True)
class AuthenticatedUser:
    role: str
    name: str
    id: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "AuthenticatedUser":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Expected a mapping for user, got {type(raw).__name__}")
        role = raw.get("role")
        if role not in (ROLE_ADMIN, ROLE_USER):
            raise ValueError(f"Unknown role {role!r}")
        name = raw.get("name")
        user_id = raw.get("id")
        if not isinstance(name, str) or not isinstance(user_id, str):
            raise ValueError("User name and id must be strings")
        return cls(role=role, name=name, id=user_id)


def normalize_user(raw: Mapping[str, object]) -> UserRecord:
    user_id = first_present(raw, USER_ID_ALIASES)
    return UserRecord(
        id=user_id,
        password=first_present(raw, PASSWORD_ALIASES),
        role=ROLE_ADMIN if user_id == ADMIN_ID else ROLE_USER,
        display_name=first_present(raw, DISPLAY_NAME_ALIASES) or DEFAULT_DISPLAY_NAME,
    )


def _fetch_master() -> List[RawRecord]:
    return fetch_sheet(MASTER_SHEET)


def authenticate(
    user_id: str,
    password: str,
    *,
    fetch_users: Optional[Callable[[], List[RawRecord]]] = None,
) -> AuthenticatedUser:
    """Check an ID/password pair against the Master sheet.

    The built-in admin pair is accepted before any lookup. Passwords are
    compared in cleartext. An empty Master sheet (including one that failed to
    download) fails exactly like a wrong password.
    """
    if user_id == ADMIN_ID and password == ADMIN_PASSWORD:
        return AuthenticatedUser(role=ROLE_ADMIN, name=ADMIN_NAME, id=ADMIN_ID)

    wanted_id = (user_id or "").strip()
    wanted_password = (password or "").strip()
    rows = (fetch_users or _fetch_master)()
    for row in rows:
        user = normalize_user(row)
        if not user.id:
            continue
        if user.id == wanted_id and user.password == wanted_password:
            return AuthenticatedUser(role=user.role, name=user.display_name, id=user.id)

    logger.info("Login failed for id %r", wanted_id)
    raise AuthError()
