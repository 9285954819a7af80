"""
API tài khoản: đăng nhập/đăng xuất, hồ sơ cá nhân, quản lý tài khoản (admin).
"""

from __future__ import annotations

import logging

from robyn import Request, Response

from ..core.auth import require_user, session_cookie, sign_session
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, parse_json_body
from ..core.request_utils import path_uuid
from ..services import account_service

logger = logging.getLogger(__name__)


def login(request: Request) -> Response:
    """POST /api/auth/login - body: {"username" | "email", "password"}."""
    data = parse_json_body(request)
    login_id = data.get("username") or data.get("email") or ""
    with get_session() as db:
        profile = account_service.authenticate(db, login_id, data.get("password") or "")
        payload = account_service.serialize_profile(profile)
        cookie = session_cookie(sign_session(profile.id))
    logger.info("Đăng nhập: %s", payload["username"])
    return _json_response({"user": payload}, headers={"Set-Cookie": cookie})


def logout(request: Request) -> Response:
    """POST /api/auth/logout"""
    return _json_response({"ok": True}, headers={"Set-Cookie": session_cookie(None)})


def get_profile(request: Request) -> Response:
    """GET /api/account/profile"""
    actor = require_user(request)
    return _json_response(account_service.serialize_profile(actor))


def update_profile(request: Request) -> Response:
    """PUT /api/account/profile - Cập nhật tên đăng nhập, họ tên."""
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        profile = account_service.update_own_profile(db, actor, data)
        return _json_response(account_service.serialize_profile(profile))


def change_password(request: Request) -> Response:
    """PUT /api/account/password - body: {new_password, confirm_password}."""
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        account_service.change_own_password(
            db,
            actor,
            data.get("new_password") or "",
            data.get("confirm_password") or "",
        )
    return _json_response({"ok": True, "message": "Đổi mật khẩu thành công"})


def list_accounts(request: Request) -> Response:
    """GET /api/accounts - Chỉ admin."""
    actor = require_user(request)
    with get_session() as db:
        profiles = account_service.list_accounts(db, actor)
        data = [account_service.serialize_profile(p) for p in profiles]
    return _json_response(data)


def create_account(request: Request) -> Response:
    """POST /api/accounts - Tạo tài khoản con."""
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        profile = account_service.create_account(db, actor, data)
        return _json_response(account_service.serialize_profile(profile), 201)


def list_sub_accounts(request: Request) -> Response:
    """GET /api/accounts/:id/sub-accounts"""
    actor = require_user(request)
    with get_session() as db:
        profiles = account_service.list_sub_accounts(db, actor, path_uuid(request))
        data = [account_service.serialize_profile(p) for p in profiles]
    return _json_response(data)


def reset_password(request: Request) -> Response:
    """PUT /api/accounts/:id/password - body: {new_password}."""
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        account_service.reset_password(
            db, actor, path_uuid(request), data.get("new_password") or ""
        )
    return _json_response({"ok": True})


def delete_account(request: Request) -> Response:
    """DELETE /api/accounts/:id"""
    actor = require_user(request)
    with get_session() as db:
        account_service.delete_account(db, actor, path_uuid(request))
    return _json_response({"deleted": True})
