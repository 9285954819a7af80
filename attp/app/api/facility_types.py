"""
API cho danh mục loại hình cơ sở.
"""

from __future__ import annotations

from robyn import Request, Response

from ..core.auth import require_user
from ..core.db import get_session
from ..core.error_handler import json_response as _json_response, parse_json_body
from ..core.request_utils import path_uuid, query_param
from ..services import facility_type_service


def list_facility_types(request: Request) -> Response:
    """GET /api/facility-types?active=true"""
    require_user(request)
    active_only = (query_param(request, "active") or "").lower() in ("1", "true")
    with get_session() as db:
        types = facility_type_service.list_facility_types(db, active_only=active_only)
        data = [facility_type_service.serialize_facility_type(t) for t in types]
    return _json_response(data)


def create_facility_type(request: Request) -> Response:
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility_type = facility_type_service.create_facility_type(db, actor, data)
        return _json_response(facility_type_service.serialize_facility_type(facility_type), 201)


def update_facility_type(request: Request) -> Response:
    actor = require_user(request)
    data = parse_json_body(request)
    with get_session() as db:
        facility_type = facility_type_service.update_facility_type(
            db, actor, path_uuid(request), data
        )
        return _json_response(facility_type_service.serialize_facility_type(facility_type))


def delete_facility_type(request: Request) -> Response:
    actor = require_user(request)
    with get_session() as db:
        facility_type_service.delete_facility_type(db, actor, path_uuid(request))
    return _json_response({"deleted": True})
