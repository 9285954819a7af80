"""
Helper đọc tham số request và tạo response file cho các API handler.
"""

from __future__ import annotations

import uuid
from typing import Any
from urllib.parse import quote

from robyn import Request, Response

from .error_handler import ValidationError

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
FALSE_STRINGS = {"", "0", "false", "off", "no", "không"}


def parse_uuid(value: str | None, label: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"{label} không hợp lệ", error_code="INVALID_ID")


def path_uuid(request: Request, name: str = "id") -> uuid.UUID:
    return parse_uuid(request.path_params.get(name), name)


def query_param(request: Request, name: str) -> str | None:
    """Query param đã strip; chuỗi rỗng coi như không có."""
    value = request.query_params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def form_bool(value: Any, default: bool = False) -> bool:
    """Giá trị checkbox / JSON: chuỗi "false", "0", "off"... là False."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def uploaded_file(request: Request) -> tuple[str, bytes]:
    """Lấy file đầu tiên trong form multipart, hoặc body thô.

    Trả về (tên file, nội dung).
    """
    files = getattr(request, "files", None) or {}
    for name, content in files.items():
        if isinstance(content, str):
            content = content.encode("utf-8")
        return name, bytes(content)

    body = request.body or b""
    if isinstance(body, str):
        body = body.encode("utf-8")
    filename = request.headers.get("x-filename") or "upload"
    return filename, bytes(body)


def file_response(content: bytes, filename: str, content_type: str = XLSX_CONTENT_TYPE) -> Response:
    return Response(
        status_code=200,
        headers={
            "Content-Type": content_type,
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
        },
        description=content,
    )
