"""
Auth & RBAC cho webapp.

- Cookie session ký bằng HMAC (giá trị: "<profile_id>.<chữ ký>").
- Mật khẩu băm bằng bcrypt.
- Kiểm tra quyền nằm ở tầng service (`require_admin`), không chỉ ở giao diện.
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from http.cookies import SimpleCookie

import bcrypt
from robyn import Request

from .config import settings
from .db import get_session
from .error_handler import ForbiddenError, UnauthorizedError
from ..models.entities import Profile


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # hash hỏng hoặc không phải bcrypt
        return False


def _signature(payload: str) -> str:
    return hmac.new(
        settings.secret_key.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def sign_session(profile_id: uuid.UUID) -> str:
    payload = str(profile_id)
    return f"{payload}.{_signature(payload)}"


def read_session(value: str | None) -> uuid.UUID | None:
    """Trả về profile_id nếu cookie hợp lệ, None nếu không."""

    if not value or "." not in value:
        return None
    payload, signature = value.rsplit(".", 1)
    if not hmac.compare_digest(_signature(payload), signature):
        return None
    try:
        return uuid.UUID(payload)
    except ValueError:
        return None


def session_cookie(value: str | None) -> str:
    """Giá trị header Set-Cookie; value=None để xoá cookie (đăng xuất)."""

    name = settings.session_cookie_name
    if value is None:
        return f"{name}=; Path=/; HttpOnly; SameSite=Lax; Max-Age=0"
    return f"{name}={value}; Path=/; HttpOnly; SameSite=Lax"


def _cookie_value(request: Request) -> str | None:
    raw = request.headers.get("cookie")
    if not raw:
        return None
    jar = SimpleCookie()
    jar.load(raw)
    morsel = jar.get(settings.session_cookie_name)
    return morsel.value if morsel else None


def get_current_user(request: Request) -> Profile | None:
    """Đọc profile hiện tại từ cookie phiên."""

    profile_id = read_session(_cookie_value(request))
    if profile_id is None:
        return None
    with get_session() as db:
        return db.get(Profile, profile_id)


def require_user(request: Request) -> Profile:
    user = get_current_user(request)
    if user is None:
        raise UnauthorizedError("Vui lòng đăng nhập")
    return user


def require_admin(actor: Profile | None) -> Profile:
    """Chặn thao tác quản trị với tài khoản không phải admin."""

    if actor is None:
        raise UnauthorizedError("Vui lòng đăng nhập")
    if actor.role != "admin":
        raise ForbiddenError("Chỉ quản trị viên mới được thực hiện thao tác này")
    return actor


def require_roles(request: Request, roles: list[str]) -> Profile | None:
    """Helper kiểm tra quyền cho trang HTML; trả về user nếu hợp lệ, None nếu không."""

    user = get_current_user(request)
    if not user or user.role not in roles:
        return None
    return user
