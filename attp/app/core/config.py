"""
Config chung cho backend Robyn.

- Đọc cấu hình từ biến môi trường (.env) cho DB, secret key, thư mục lưu file...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass
class Settings:
    """Cấu hình ứng dụng quản lý ATTP.

    Sử dụng biến môi trường để dễ triển khai nhiều môi trường.
    """

    app_name: str = "Quản lý ATTP"
    debug: bool = field(default_factory=lambda: os.getenv("APP_DEBUG", "false").lower() == "true")
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "change-me-in-production"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 8080))

    db_path: str = field(default_factory=lambda: os.getenv("DB_PATH", "data/attp.db"))

    # Thư mục thay cho bucket lưu logo/ảnh nền
    storage_dir: str = field(default_factory=lambda: os.getenv("STORAGE_DIR", "data/storage"))
    # Bản sao cục bộ của site_config, dùng khi không đọc được DB
    site_config_cache_path: str = field(
        default_factory=lambda: os.getenv("SITE_CONFIG_CACHE_PATH", "data/site_config.json")
    )

    expiry_warning_days: int = field(default_factory=lambda: _env_int("EXPIRY_WARNING_DAYS", 30))
    session_cookie_name: str = field(
        default_factory=lambda: os.getenv("SESSION_COOKIE_NAME", "attp_session")
    )

    @property
    def is_memory_db(self) -> bool:
        return self.db_path == ":memory:"

    @property
    def sqlalchemy_database_uri(self) -> str:
        """Trả về connection string cho SQLite.

        SQLite URI format: sqlite:///path/to/database.db
        Hoặc sqlite:///:memory: cho in-memory database
        """
        return f"sqlite:///{self.db_path}"


settings = Settings()
