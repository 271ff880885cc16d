from __future__ import annotations

import pytest

from core.auth import AuthenticatedUser, authenticate, normalize_user
from core.errors import AuthError

MASTER_ROWS = [
    {"ID": "u1", "Password": "rightpass", "Consigneename": "Acme"},
    {"ID": " u2 ", "Password": " secret ", "Consignee Name": "Zenith"},
    {"ID": "u3", "Password": "pw"},
    {"ID": "admin", "Password": "s3cret", "ConsigneeName": "Head Office"},
    {"ID": "", "Password": ""},
]


def _fetch_rows():
    return list(MASTER_ROWS)


def test_builtin_admin_skips_lookup():
    def never():
        pytest.fail("admin login must not fetch the user sheet")

    user = authenticate("admin", "admin", fetch_users=never)
    assert user == AuthenticatedUser(role="admin", name="Administrator", id="admin")
    assert user.is_admin


def test_builtin_admin_is_exact():
    with pytest.raises(AuthError):
        authenticate(" admin", "admin", fetch_users=_fetch_rows)


def test_user_login_matches_id_and_password():
    user = authenticate("u1", "rightpass", fetch_users=_fetch_rows)
    assert user == AuthenticatedUser(role="user", name="Acme", id="u1")


def test_credentials_are_trimmed():
    user = authenticate("u2  ", "secret", fetch_users=_fetch_rows)
    assert user.name == "Zenith"
    assert user.id == "u2"


def test_wrong_password_fails():
    with pytest.raises(AuthError, match="Invalid credentials"):
        authenticate("u1", " wrongpass", fetch_users=_fetch_rows)


def test_password_alone_is_not_enough():
    with pytest.raises(AuthError):
        authenticate("u3", "rightpass", fetch_users=_fetch_rows)


def test_display_name_defaults_to_user():
    assert authenticate("u3", "pw", fetch_users=_fetch_rows).name == "User"


def test_sheet_admin_row_gets_admin_role():
    user = authenticate("admin", "s3cret", fetch_users=_fetch_rows)
    assert user.role == "admin"
    assert user.name == "Head Office"


def test_empty_sheet_fails_like_bad_credentials():
    with pytest.raises(AuthError):
        authenticate("u1", "rightpass", fetch_users=lambda: [])


def test_blank_credentials_never_match_blank_row():
    with pytest.raises(AuthError):
        authenticate("", "", fetch_users=_fetch_rows)


def test_normalize_user():
    rec = normalize_user({"ID": " admin ", "Password": "x"})
    assert rec.role == "admin"
    assert rec.display_name == "User"


def test_authenticated_user_round_trip_and_validation():
    user = AuthenticatedUser(role="user", name="Acme", id="u1")
    assert AuthenticatedUser.from_dict(user.to_dict()) == user
    with pytest.raises(ValueError):
        AuthenticatedUser.from_dict({"role": "root", "name": "x", "id": "y"})
    with pytest.raises(ValueError):
        AuthenticatedUser.from_dict(["not", "a", "mapping"])
