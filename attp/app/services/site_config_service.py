"""
Cấu hình giao diện (logo, chiều cao logo, ảnh nền trang đăng nhập).

Dòng duy nhất `site_config.id = "main"`. Mỗi lần đọc/ghi thành công,
cấu hình được sao lưu ra file JSON (SITE_CONFIG_CACHE_PATH); khi không đọc
được database thì dùng bản sao này, cuối cùng là giá trị mặc định.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.auth import require_admin
from ..core.config import settings
from ..core.error_handler import ValidationError
from ..models.entities import SITE_CONFIG_ID, Profile, SiteConfig

logger = logging.getLogger(__name__)

DEFAULT_LOGO_URL = "https://placehold.co/140x40/6366f1/white?text=ATTP+Logo"
DEFAULT_LOGO_HEIGHT = 40
MIN_LOGO_HEIGHT = 20
MAX_LOGO_HEIGHT = 200


def _with_defaults(values: dict[str, Any]) -> dict[str, Any]:
    return {
        "logo_url": values.get("logo_url") or DEFAULT_LOGO_URL,
        "logo_height": values.get("logo_height") or DEFAULT_LOGO_HEIGHT,
        "login_background_url": values.get("login_background_url") or "",
    }


def _row_to_config(row: SiteConfig) -> dict[str, Any]:
    return _with_defaults(
        {
            "logo_url": row.logo_url,
            "logo_height": row.logo_height,
            "login_background_url": row.login_background_url,
        }
    )


def read_cached_config() -> dict[str, Any] | None:
    path = Path(settings.site_config_cache_path)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Không đọc được cache site_config %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def write_cached_config(config: dict[str, Any]) -> None:
    path = Path(settings.site_config_cache_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        logger.warning("Không ghi được cache site_config %s: %s", path, e)


def get_site_config(db: Session) -> dict[str, Any]:
    try:
        row = db.get(SiteConfig, SITE_CONFIG_ID)
    except SQLAlchemyError as e:
        logger.warning("Không đọc được site_config từ DB, dùng cache: %s", e)
        return _with_defaults(read_cached_config() or {})

    if row is None:
        return _with_defaults(read_cached_config() or {})

    config = _row_to_config(row)
    write_cached_config(config)
    return config


def _parse_logo_height(value: Any) -> int:
    try:
        height = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "Chiều cao logo phải là số", fields={"logo_height": "Chiều cao logo phải là số"}
        )
    if not MIN_LOGO_HEIGHT <= height <= MAX_LOGO_HEIGHT:
        message = f"Chiều cao logo phải trong khoảng {MIN_LOGO_HEIGHT}-{MAX_LOGO_HEIGHT}px"
        raise ValidationError(message, fields={"logo_height": message})
    return height


def update_site_config(db: Session, actor: Profile, data: dict[str, Any]) -> dict[str, Any]:
    """Cập nhật một phần cấu hình (chỉ admin); các khoá vắng mặt giữ nguyên."""

    require_admin(actor)
    row = db.get(SiteConfig, SITE_CONFIG_ID)
    if row is None:
        row = SiteConfig(id=SITE_CONFIG_ID, logo_height=DEFAULT_LOGO_HEIGHT)
        db.add(row)

    if "logo_height" in data:
        row.logo_height = _parse_logo_height(data["logo_height"])
    if "logo_url" in data:
        row.logo_url = (data.get("logo_url") or "").strip() or None
    if "login_background_url" in data:
        row.login_background_url = (data.get("login_background_url") or "").strip() or None
    db.flush()

    config = _row_to_config(row)
    write_cached_config(config)
    logger.info("%s cập nhật cấu hình giao diện", actor.username)
    return config


def reset_site_config(db: Session, actor: Profile) -> dict[str, Any]:
    return update_site_config(
        db,
        actor,
        {"logo_url": None, "logo_height": DEFAULT_LOGO_HEIGHT, "login_background_url": None},
    )
