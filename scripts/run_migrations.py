"""
Script khởi tạo database.

- Tạo schema từ SQLAlchemy models
- Thêm các loại hình cơ sở mặc định (nếu bảng còn trống)
- Tạo tài khoản admin đầu tiên từ ADMIN_USERNAME / ADMIN_PASSWORD
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Thêm path để import attp modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from attp.app.core.auth import hash_password
from attp.app.core.config import settings
from attp.app.core.db import get_session, init_db
from attp.app.models.entities import FacilityType, Profile

DEFAULT_FACILITY_TYPES = [
    "Nhà hàng",
    "Bếp ăn tập thể",
    "Cơ sở sản xuất",
    "Tạp hóa",
    "Quán ăn đường phố",
]


def seed_facility_types() -> int:
    with get_session() as db:
        if db.query(FacilityType).count():
            return 0
        for name in DEFAULT_FACILITY_TYPES:
            db.add(FacilityType(name=name))
    return len(DEFAULT_FACILITY_TYPES)


def seed_admin(username: str, password: str) -> bool:
    with get_session() as db:
        if db.query(Profile).filter(Profile.username == username).first():
            return False
        db.add(
            Profile(
                username=username,
                password_hash=hash_password(password),
                full_name="Quản trị viên",
                role="admin",
            )
        )
    return True


def main() -> int:
    print(f"🔗 Database URI: {settings.sqlalchemy_database_uri}")
    print("📦 Đang tạo schema từ SQLAlchemy models...")
    init_db()
    print("✅ Đã tạo schema thành công!")

    added = seed_facility_types()
    if added:
        print(f"✅ Đã thêm {added} loại hình cơ sở mặc định")

    username = os.getenv("ADMIN_USERNAME", "admin")
    password = os.getenv("ADMIN_PASSWORD")
    if not password:
        print("⚠️  Chưa đặt ADMIN_PASSWORD, bỏ qua tạo tài khoản admin")
        return 0
    if len(password) < 6:
        print("❌ ADMIN_PASSWORD phải có ít nhất 6 ký tự")
        return 1
    if seed_admin(username, password):
        print(f"✅ Đã tạo tài khoản admin: {username}")
    else:
        print(f"ℹ️  Tài khoản {username} đã tồn tại")
    return 0


if __name__ == "__main__":
    sys.exit(main())
