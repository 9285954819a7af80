"""
Error handling và logging cho các API handler.
"""

from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Callable, Any

from robyn import Request, Response

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception cho ứng dụng."""

    def __init__(self, message: str, status_code: int = 500, error_code: str | None = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Lỗi validation dữ liệu.

    `fields` chứa lỗi theo từng trường để hiển thị ngay trên form.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "VALIDATION_ERROR",
        fields: dict[str, str] | None = None,
    ):
        super().__init__(message, status_code=400, error_code=error_code)
        self.fields = fields or {}


class NotFoundError(AppError):
    """Lỗi không tìm thấy resource."""

    def __init__(self, message: str = "Resource not found", error_code: str = "NOT_FOUND"):
        super().__init__(message, status_code=404, error_code=error_code)


class ConflictError(AppError):
    """Lỗi trùng dữ liệu (tên đăng nhập, tên loại hình...)."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message, status_code=409, error_code=error_code)


class UnauthorizedError(AppError):
    """Lỗi chưa đăng nhập."""

    def __init__(self, message: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(message, status_code=401, error_code=error_code)


class ForbiddenError(AppError):
    """Lỗi bị cấm truy cập."""

    def __init__(self, message: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(message, status_code=403, error_code=error_code)


def error_response(error: AppError | Exception) -> Response:
    """Tạo response từ exception."""
    if isinstance(error, AppError):
        status_code = error.status_code
        error_data: dict[str, Any] = {
            "error": error.message,
            "error_code": error.error_code or "UNKNOWN_ERROR",
        }
        if isinstance(error, ValidationError) and error.fields:
            error_data["fields"] = error.fields
    else:
        status_code = 500
        error_data = {
            "error": "Internal server error",
            "error_code": "INTERNAL_ERROR",
        }
        logger.exception("Unhandled exception: %s", error)

    return json_response(error_data, status_code)


def handle_errors(func: Callable) -> Callable:
    """Decorator để handle errors trong API handlers."""

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Response:
        try:
            response = await func(*args, **kwargs)
        except AppError as e:
            logger.warning("AppError in %s: %s", func.__name__, e.message)
            response = error_response(e)
        except Exception as e:
            logger.error("Unhandled error in %s: %s", func.__name__, str(e), exc_info=True)
            response = error_response(e)

        if args:
            log_request(args[0], response)
        return response

    return wrapper


def json_response(
    data: object, status_code: int = 200, headers: dict[str, str] | None = None
) -> Response:
    """Helper function để tạo JSON response."""
    return Response(
        status_code=status_code,
        headers={"Content-Type": "application/json; charset=utf-8", **(headers or {})},
        description=json.dumps(data, default=str, ensure_ascii=False),
    )


def parse_json_body(request: Request) -> dict[str, Any]:
    """Đọc body JSON của request, báo lỗi 400 nếu không hợp lệ."""
    raw = request.body or "{}"
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8") or "{}"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Body không phải JSON hợp lệ", error_code="INVALID_JSON")
    if not isinstance(data, dict):
        raise ValidationError("Body phải là một JSON object", error_code="INVALID_JSON")
    return data


def log_request(request: Request, response: Response | None = None) -> None:
    """Log request và response."""
    logger.info(
        "%s %s - Status: %s",
        request.method,
        request.url.path,
        response.status_code if response else "N/A",
    )
