"""
Pytest configuration và fixtures cho tests.

Fixtures:
- test_db: Session tới database in-memory dùng chung với app
- test_client: Test client gọi route handler của Robyn app
- admin_user / staff_user: tài khoản đăng nhập sẵn
- temp_dir: thư mục tạm
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.orm import Session

# Override database path cho tests - sử dụng in-memory SQLite
os.environ["DB_PATH"] = ":memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

# Import sau khi set environment variable
from attp.app.core.cache import query_cache  # noqa: E402
from attp.app.core.config import settings  # noqa: E402
from attp.app.core.db import SessionLocal, engine, init_db  # noqa: E402
from attp.app.models.base import Base  # noqa: E402

from tests.utils.factories import create_test_profile  # noqa: E402


@pytest.fixture(scope="session")
def test_db_engine():
    """Tạo toàn bộ bảng trên engine in-memory của app."""
    init_db()
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db(test_db_engine) -> Generator[Session, None, None]:
    """Database session cho mỗi test.

    Các handler mở session riêng trên cùng connection, vì vậy test cần
    commit dữ liệu chuẩn bị trước khi gọi API. Sau mỗi test toàn bộ dữ
    liệu bị xoá.
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with test_db_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture(autouse=True)
def clear_query_cache():
    query_cache.clear()
    yield
    query_cache.clear()


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path, monkeypatch):
    """Upload và cache site_config ghi vào thư mục tạm của từng test."""
    monkeypatch.setattr(settings, "storage_dir", str(tmp_path / "storage"))
    monkeypatch.setattr(settings, "site_config_cache_path", str(tmp_path / "site_config.json"))


@pytest.fixture
def test_client(test_db):
    """Tạo test client để gọi API endpoints."""
    from attp.app import main
    from tests.utils.test_client import APIClient

    return APIClient(main)


@pytest.fixture
def admin_user(test_db):
    profile = create_test_profile(test_db, username="admin", role="admin", password="admin123")
    test_db.commit()
    return profile


@pytest.fixture
def staff_user(test_db, admin_user):
    profile = create_test_profile(
        test_db, username="canbo", role="staff", password="canbo123", created_by=admin_user.id
    )
    test_db.commit()
    return profile


@pytest.fixture
def admin_client(test_client, admin_user):
    test_client.login_as(admin_user)
    return test_client


@pytest.fixture
def staff_client(test_client, staff_user):
    test_client.login_as(staff_user)
    return test_client


@pytest.fixture
def temp_dir():
    """Tạo temporary directory cho file tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
