"""
API nhập / xuất danh sách cơ sở bằng file Excel.
"""

from __future__ import annotations

import logging

from robyn import Request, Response

from ..core.auth import require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, ValidationError
from ..core.request_utils import file_response, query_param, uploaded_file
from ..services import facility_import, facility_service
from ..services.certificates import utc_today
from ..services.facility_type_service import active_type_names

logger = logging.getLogger(__name__)


def _read_upload(request: Request) -> bytes:
    filename, content = uploaded_file(request)
    if not content:
        raise ValidationError("Vui lòng chọn file Excel để nhập", error_code="MISSING_FILE")
    logger.info("Nhận file import %s (%d bytes)", filename, len(content))
    return content


def download_template(request: Request) -> Response:
    """GET /api/facilities/import/template - Tải file mẫu."""
    require_user(request)
    with get_session() as db:
        type_names = active_type_names(db)
    content = facility_import.build_import_template(type_names)
    return file_response(content, facility_import.template_filename())


def preview_import(request: Request) -> Response:
    """POST /api/facilities/import/preview - Đọc và kiểm tra file, chưa ghi DB."""
    require_user(request)
    content = _read_upload(request)
    with get_session() as db:
        type_names = active_type_names(db)
    result = facility_import.parse_facility_workbook(content, type_names)
    return _json_response(result.to_dict())


def run_import(request: Request) -> Response:
    """POST /api/facilities/import - Kiểm tra file và ghi các dòng hợp lệ."""
    require_user(request)
    content = _read_upload(request)
    with get_session() as db:
        type_names = active_type_names(db)
        result = facility_import.parse_facility_workbook(content, type_names)
        report = facility_import.import_facilities(db, result.rows)
    return _json_response(
        {
            **report.to_dict(),
            "total": result.total,
            "invalid_count": result.invalid_count,
        }
    )


def export_facilities(request: Request) -> Response:
    """GET /api/facilities/export - Xuất danh sách (cùng bộ lọc với /api/facilities)."""
    require_user(request)
    with get_session() as db:
        facilities = facility_service.list_facilities(
            db,
            search=query_param(request, "search"),
            status=query_param(request, "status"),
            province_code=query_param(request, "province_code"),
            facility_type=query_param(request, "type"),
        )
        content = facility_import.export_facilities(facilities)
    filename = f"danh_sach_coso_{utc_today().strftime('%Y%m%d')}.xlsx"
    return file_response(content, filename)
