"""
Unit tests cho cookie phiên, mật khẩu và kiểm tra quyền.
"""

import uuid
from types import SimpleNamespace

import pytest

from attp.app.core.auth import (
    hash_password,
    read_session,
    require_admin,
    session_cookie,
    sign_session,
    verify_password,
)
from attp.app.core.error_handler import ForbiddenError, UnauthorizedError


def test_session_roundtrip():
    profile_id = uuid.uuid4()
    assert read_session(sign_session(profile_id)) == profile_id


@pytest.mark.parametrize("value", [None, "", "abc", "not-a-uuid.sig"])
def test_invalid_session_values(value):
    assert read_session(value) is None


def test_tampered_session_is_rejected():
    value = sign_session(uuid.uuid4())
    other = str(uuid.uuid4())
    forged = f"{other}.{value.rsplit('.', 1)[1]}"
    assert read_session(forged) is None


def test_session_cookie_header():
    assert session_cookie("v").startswith("attp_session=v; Path=/; HttpOnly")
    assert "Max-Age=0" in session_cookie(None)


def test_password_hashing():
    hashed = hash_password("matkhau1")
    assert verify_password("matkhau1", hashed)
    assert not verify_password("matkhau2", hashed)
    assert not verify_password("matkhau1", "not-a-bcrypt-hash")


def test_require_admin():
    admin = SimpleNamespace(role="admin")
    assert require_admin(admin) is admin
    with pytest.raises(ForbiddenError):
        require_admin(SimpleNamespace(role="staff"))
    with pytest.raises(UnauthorizedError):
        require_admin(None)
