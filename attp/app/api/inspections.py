"""
API cho lần kiểm tra (inspections).
"""

from __future__ import annotations

from robyn import Request, Response

from ..core.auth import require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, parse_json_body
from ..core.request_utils import path_uuid
from ..services import inspection_service


def list_facility_inspections(request: Request) -> Response:
    """GET /api/facilities/:id/inspections - Lịch sử kiểm tra.

    Mỗi lần tải, các lần kiểm tra quá hạn khắc phục được chuyển sang
    "Không đạt"; số bản ghi bị chuyển trả về trong `auto_failed_count`.
    """
    require_user(request)
    with get_session() as db:
        inspections, report = inspection_service.load_history(db, path_uuid(request))
        data = [inspection_service.serialize_inspection(i) for i in inspections]
    return _json_response({"items": data, **report.to_dict()})


def create_inspection(request: Request) -> Response:
    """POST /api/facilities/:id/inspections"""
    require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        inspection = inspection_service.create_inspection(db, path_uuid(request), data)
        return _json_response(inspection_service.serialize_inspection(inspection), 201)


def mark_remediated(request: Request) -> Response:
    """POST /api/inspections/:id/remediated - Đánh dấu đã khắc phục."""
    require_user(request)
    with get_session() as db:
        inspection = inspection_service.mark_remediated(db, path_uuid(request))
        return _json_response(inspection_service.serialize_inspection(inspection))
