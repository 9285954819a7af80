"""
Khởi tạo kết nối SQLAlchemy cho backend Robyn.

Dùng sync engine + sessionmaker đơn giản với SQLite.
Với DB_PATH=":memory:" (tests) tất cả session dùng chung một connection.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings
from ..models.base import Base

if not settings.is_memory_db:
    # Đảm bảo thư mục chứa database tồn tại
    db_path = Path(settings.db_path)
    if db_path.parent != Path("."):
        db_path.parent.mkdir(parents=True, exist_ok=True)
    _engine_kwargs: dict = {}
else:
    _engine_kwargs = {"poolclass": StaticPool}

engine = create_engine(
    settings.sqlalchemy_database_uri,
    echo=settings.debug,
    connect_args={"check_same_thread": False},  # Cho phép multi-threading
    **_engine_kwargs,
)


# Đăng ký event để hỗ trợ foreign keys trong SQLite (mặc định tắt)
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Bật foreign key constraints cho SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

_AFTER_COMMIT = "after_commit_callbacks"


def run_after_commit(db: Session, callback: Callable[[], None]) -> None:
    """Chạy `callback` sau khi transaction hiện tại commit thành công.

    Rollback thì bỏ các callback đang chờ.
    """
    db.info.setdefault(_AFTER_COMMIT, []).append(callback)


@event.listens_for(SessionLocal, "after_commit")
def _run_after_commit_callbacks(session: Session) -> None:
    for callback in session.info.pop(_AFTER_COMMIT, []):
        callback()


@event.listens_for(SessionLocal, "after_rollback")
def _drop_after_commit_callbacks(session: Session) -> None:
    session.info.pop(_AFTER_COMMIT, None)


def init_db() -> None:
    """Khởi tạo database (tạo bảng nếu chưa có)."""

    from .. import models  # noqa: F401  đăng ký toàn bộ bảng vào metadata

    Base.metadata.create_all(bind=engine)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager cung cấp SQLAlchemy Session an toàn."""

    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
