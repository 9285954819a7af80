"""
API cấu hình giao diện và upload logo / ảnh nền.
"""

from __future__ import annotations

from robyn import Request, Response

from ..core.auth import require_admin, require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, parse_json_body
from ..core.request_utils import uploaded_file
from ..services import site_config_service, storage_service

UPLOAD_TARGETS = {
    "logo": "logo_url",
    "background": "login_background_url",
}


def get_site_config(request: Request) -> Response:
    """GET /api/settings/site-config - Không cần đăng nhập (trang login dùng)."""
    with get_session() as db:
        return _json_response(site_config_service.get_site_config(db))


def update_site_config(request: Request) -> Response:
    """PUT /api/settings/site-config - Chỉ admin."""
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        return _json_response(site_config_service.update_site_config(db, actor, data))


def reset_site_config(request: Request) -> Response:
    """DELETE /api/settings/site-config - Khôi phục mặc định."""
    actor = require_user(request)
    with get_session() as db:
        return _json_response(site_config_service.reset_site_config(db, actor))


def upload_asset(request: Request) -> Response:
    """POST /api/settings/upload/:kind - kind: logo | background."""
    actor = require_admin(require_user(request))
    kind = request.path_params.get("kind", "")
    filename, content = uploaded_file(request)
    url = storage_service.save_upload(kind, filename, content)
    with get_session() as db:
        config = site_config_service.update_site_config(db, actor, {UPLOAD_TARGETS[kind]: url})
    return _json_response({"url": url, "config": config})


def serve_media(request: Request) -> Response:
    """GET /media/:name"""
    content, content_type = storage_service.read_media(request.path_params.get("name", ""))
    return Response(
        status_code=200,
        headers={"Content-Type": content_type, "Cache-Control": "public, max-age=86400"},
        description=content,
    )
