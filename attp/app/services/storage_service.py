"""
Lưu file logo / ảnh nền đăng nhập.

File được ghi vào STORAGE_DIR và phục vụ qua `/media/<tên file>`.
Nếu ghi file thất bại, ảnh được giữ dạng `data:` URL trong cấu hình.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import time
from pathlib import Path

from ..core.config import settings
from ..core.error_handler import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("logo", "background")
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
MEDIA_PREFIX = "/media/"


def storage_root() -> Path:
    return Path(settings.storage_dir)


def _extension(filename: str) -> str:
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            "Chỉ chấp nhận file ảnh (png, jpg, gif, webp)", error_code="INVALID_FILE_TYPE"
        )
    return ext


def to_data_url(content: bytes, filename: str) -> str:
    mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


def save_upload(kind: str, filename: str, content: bytes) -> str:
    """Lưu file và trả về URL công khai (hoặc data URL nếu không ghi được)."""

    if kind not in UPLOAD_KINDS:
        raise ValidationError(f"Loại file không hợp lệ: {kind}")
    if not content:
        raise ValidationError("File rỗng")
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValidationError("File vượt quá 5MB")
    ext = _extension(filename)

    name = f"{kind}_{int(time.time() * 1000)}{ext}"
    try:
        root = storage_root()
        root.mkdir(parents=True, exist_ok=True)
        (root / name).write_bytes(content)
    except OSError as e:
        logger.warning("Không ghi được file %s vào %s (%s), dùng data URL", name, settings.storage_dir, e)
        return to_data_url(content, filename)

    logger.info("Đã lưu %s (%d bytes)", name, len(content))
    return MEDIA_PREFIX + name


def read_media(name: str) -> tuple[bytes, str]:
    """Đọc file đã upload; trả về (nội dung, content-type)."""

    root = storage_root().resolve()
    path = (root / name).resolve()
    if (
        path.parent != root
        or path.suffix.lower() not in ALLOWED_EXTENSIONS
        or not path.is_file()
    ):
        raise NotFoundError("File không tồn tại")
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return path.read_bytes(), content_type
