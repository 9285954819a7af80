"""
Service cho tài khoản cán bộ (profiles): đăng nhập, hồ sơ cá nhân,
quản lý tài khoản con (chỉ admin).
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.orm import Session

from ..core.auth import hash_password, require_admin, verify_password
from ..core.error_handler import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ..models.entities import ROLES, Profile

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def authenticate(db: Session, login_id: str, password: str) -> Profile:
    """Đăng nhập bằng tên đăng nhập hoặc email."""
    login_id = (login_id or "").strip()
    if not login_id or not password:
        raise ValidationError("Vui lòng nhập tên đăng nhập và mật khẩu")

    if "@" in login_id:
        profile = db.query(Profile).filter(Profile.email == login_id.lower()).first()
        if profile is None or not verify_password(password, profile.password_hash):
            raise UnauthorizedError("Email hoặc mật khẩu không đúng", error_code="INVALID_CREDENTIALS")
        return profile

    profile = db.query(Profile).filter(Profile.username == login_id).first()
    if profile is None:
        raise UnauthorizedError(
            "Không tìm thấy tài khoản với tên đăng nhập này", error_code="UNKNOWN_USERNAME"
        )
    if not verify_password(password, profile.password_hash):
        raise UnauthorizedError(
            "Tên đăng nhập hoặc mật khẩu không đúng", error_code="INVALID_CREDENTIALS"
        )
    return profile


def check_new_password(new_password: str, confirm_password: str | None = None) -> None:
    if confirm_password is not None and new_password != confirm_password:
        raise ValidationError(
            "Mật khẩu xác nhận không khớp",
            fields={"confirm_password": "Mật khẩu xác nhận không khớp"},
        )
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "Mật khẩu phải có ít nhất 6 ký tự",
            fields={"new_password": "Mật khẩu phải có ít nhất 6 ký tự"},
        )


def _ensure_unique_username(db: Session, username: str, exclude_id: uuid.UUID | None = None) -> None:
    query = db.query(Profile).filter(Profile.username == username)
    if exclude_id is not None:
        query = query.filter(Profile.id != exclude_id)
    if query.first():
        raise ConflictError(f'Tên đăng nhập "{username}" đã được sử dụng')


# Tự phục vụ -----------------------------------------------------------------

def update_own_profile(db: Session, actor: Profile, data: dict[str, Any]) -> Profile:
    profile = db.get(Profile, actor.id)
    if profile is None:
        raise NotFoundError("Tài khoản không tồn tại")

    username = (data.get("username") or "").strip()
    if username and username != profile.username:
        _ensure_unique_username(db, username, exclude_id=profile.id)
        profile.username = username
    if "full_name" in data:
        profile.full_name = (data.get("full_name") or "").strip() or None
    db.flush()
    return profile


def change_own_password(
    db: Session, actor: Profile, new_password: str, confirm_password: str
) -> None:
    check_new_password(new_password, confirm_password)
    profile = db.get(Profile, actor.id)
    if profile is None:
        raise NotFoundError("Tài khoản không tồn tại")
    profile.password_hash = hash_password(new_password)
    db.flush()
    logger.info("%s đổi mật khẩu", profile.username)


# Quản trị (admin) -----------------------------------------------------------

def create_account(db: Session, actor: Profile, data: dict[str, Any]) -> Profile:
    """Tạo tài khoản mới; người tạo được ghi vào created_by."""
    require_admin(actor)

    errors: dict[str, str] = {}
    username = (data.get("username") or "").strip()
    if not username:
        errors["username"] = "Tên đăng nhập là bắt buộc"
    role = data.get("role") or "staff"
    if role not in ROLES:
        errors["role"] = "Vai trò không hợp lệ"
    password = data.get("password") or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = "Mật khẩu phải có ít nhất 6 ký tự"
    if errors:
        raise ValidationError("Dữ liệu tài khoản không hợp lệ", fields=errors)

    _ensure_unique_username(db, username)
    email = (data.get("email") or "").strip().lower() or None
    if email and db.query(Profile).filter(Profile.email == email).first():
        raise ConflictError(f'Email "{email}" đã được sử dụng')

    profile = Profile(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=(data.get("full_name") or "").strip() or None,
        role=role,
        managed_area=(data.get("managed_area") or "").strip() or None,
        created_by=actor.id,
    )
    db.add(profile)
    db.flush()
    logger.info("%s tạo tài khoản %s (%s)", actor.username, profile.username, profile.role)
    return profile


def list_accounts(db: Session, actor: Profile, exclude_self: bool = True) -> list[Profile]:
    require_admin(actor)
    query = db.query(Profile)
    if exclude_self:
        query = query.filter(Profile.id != actor.id)
    return query.order_by(Profile.created_at.desc()).all()


def list_sub_accounts(db: Session, actor: Profile, parent_id: uuid.UUID) -> list[Profile]:
    require_admin(actor)
    return (
        db.query(Profile)
        .filter(Profile.created_by == parent_id)
        .order_by(Profile.created_at.desc())
        .all()
    )


def reset_password(db: Session, actor: Profile, profile_id: uuid.UUID, new_password: str) -> None:
    require_admin(actor)
    check_new_password(new_password)
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError("Tài khoản không tồn tại")
    profile.password_hash = hash_password(new_password)
    db.flush()
    logger.info("%s đặt lại mật khẩu cho %s", actor.username, profile.username)


def delete_account(db: Session, actor: Profile, profile_id: uuid.UUID) -> None:
    require_admin(actor)
    if profile_id == actor.id:
        raise ValidationError("Không thể xoá tài khoản đang đăng nhập")
    profile = db.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError("Tài khoản không tồn tại")
    db.delete(profile)
    db.flush()
    logger.info("%s xoá tài khoản %s", actor.username, profile.username)


def serialize_profile(profile: Profile) -> dict[str, Any]:
    return {
        "id": str(profile.id),
        "username": profile.username,
        "email": profile.email,
        "full_name": profile.full_name,
        "role": profile.role,
        "managed_area": profile.managed_area,
        "created_by": str(profile.created_by) if profile.created_by else None,
        "created_at": profile.created_at,
    }
