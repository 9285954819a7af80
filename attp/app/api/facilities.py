"""
API cho cơ sở (facilities) và GCN.
"""

from __future__ import annotations

from robyn import Request, Response

from ..core.auth import require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, parse_json_body
from ..core.request_utils import path_uuid, query_param
from ..services import facility_service
from ..services.certificates import utc_today


def list_facilities(request: Request) -> Response:
    """GET /api/facilities - Danh sách cơ sở (lọc theo tên, trạng thái, cấp, loại hình)."""
    require_user(request)
    today = utc_today()
    with get_session() as db:
        facilities = facility_service.list_facilities(
            db,
            search=query_param(request, "search"),
            status=query_param(request, "status"),
            province_code=query_param(request, "province_code"),
            facility_type=query_param(request, "type"),
            certificate_status=query_param(request, "certificate_status"),
            order_by=query_param(request, "order_by") or "name",
            today=today,
        )
        data = [facility_service.serialize_facility(f, today) for f in facilities]
    return _json_response(data)


def get_facility(request: Request) -> Response:
    """GET /api/facilities/:id"""
    require_user(request)
    with get_session() as db:
        facility = facility_service.get_facility(db, path_uuid(request))
        return _json_response(facility_service.serialize_facility(facility))


def create_facility(request: Request) -> Response:
    """POST /api/facilities - Thêm cơ sở."""
    require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility = facility_service.create_facility(db, data)
        return _json_response(facility_service.serialize_facility(facility), 201)


def update_facility(request: Request) -> Response:
    """PUT /api/facilities/:id"""
    require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility = facility_service.update_facility(db, path_uuid(request), data)
        return _json_response(facility_service.serialize_facility(facility))


def delete_facility(request: Request) -> Response:
    """DELETE /api/facilities/:id - Chỉ admin."""
    actor = require_user(request)
    with get_session() as db:
        facility_service.delete_facility(db, actor, path_uuid(request))
    return _json_response({"deleted": True})


def update_certificate(request: Request) -> Response:
    """PUT /api/facilities/:id/certificate - Cập nhật GCN."""
    require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility = facility_service.update_certificate(db, path_uuid(request), data)
        return _json_response(facility_service.serialize_facility(facility))


def update_location(request: Request) -> Response:
    """PUT /api/facilities/:id/location - Cập nhật toạ độ bản đồ."""
    require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility = facility_service.update_location(db, path_uuid(request), data)
        return _json_response(facility_service.serialize_facility(facility))


def list_certificates(request: Request) -> Response:
    """GET /api/certificates - Danh sách cơ sở kèm trạng thái GCN.

    Query: search, province_code, type, status (not_certified | expired |
    expiring_soon | valid).
    """
    require_user(request)
    today = utc_today()
    with get_session() as db:
        facilities = facility_service.list_facilities(
            db,
            search=query_param(request, "search"),
            province_code=query_param(request, "province_code"),
            facility_type=query_param(request, "type"),
            certificate_status=query_param(request, "status"),
            today=today,
        )
        data = [facility_service.serialize_facility(f, today) for f in facilities]
    return _json_response({"items": data, "total": len(data)})
