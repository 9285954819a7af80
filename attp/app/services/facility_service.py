"""
Service cho cơ sở (facilities): danh sách có lọc, thêm/sửa/xoá,
cập nhật GCN và toạ độ.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from ..core.auth import require_admin
from ..core.cache import invalidate_facility_data
from ..core.db import run_after_commit
from ..core.error_handler import NotFoundError, ValidationError
from ..core.request_utils import form_bool
from ..models.entities import (
    FACILITY_STATUSES,
    MANAGEMENT_LEVELS,
    Facility,
    Profile,
)
from .certificates import CertificateStatus, classify_certificate, filter_by_status
from .facility_type_service import active_type_names

logger = logging.getLogger(__name__)


def list_facilities(
    db: Session,
    search: str | None = None,
    status: str | None = None,
    province_code: str | None = None,
    facility_type: str | None = None,
    certificate_status: str | None = None,
    order_by: str = "name",
    today: date | None = None,
) -> list[Facility]:
    """Danh sách cơ sở; `certificate_status` được lọc sau truy vấn."""

    query = db.query(Facility)
    if search:
        query = query.filter(Facility.name.ilike(f"%{search}%"))
    if status:
        query = query.filter(Facility.status == status)
    if province_code:
        query = query.filter(Facility.province_code == province_code)
    if facility_type:
        query = query.filter(Facility.type == facility_type)

    if order_by == "created_at":
        query = query.order_by(Facility.created_at.desc())
    else:
        query = query.order_by(Facility.name)

    facilities = query.all()
    if certificate_status:
        try:
            wanted = CertificateStatus(certificate_status)
        except ValueError:
            raise ValidationError(f"Trạng thái GCN không hợp lệ: {certificate_status}")
        facilities = filter_by_status(facilities, wanted, today)
    return facilities


def get_facility(db: Session, facility_id: uuid.UUID) -> Facility:
    facility = db.get(Facility, facility_id)
    if facility is None:
        raise NotFoundError("Cơ sở không tồn tại")
    return facility


def validate_facility(db: Session, data: dict[str, Any]) -> dict[str, Any]:
    """Kiểm tra dữ liệu form cơ sở."""
    errors: dict[str, str] = {}

    name = str(data.get("name") or "").strip()
    if not name:
        errors["name"] = "Tên cơ sở là bắt buộc"

    facility_type = str(data.get("type") or "").strip()
    if not facility_type:
        errors["type"] = "Loại hình là bắt buộc"
    else:
        valid_types = active_type_names(db)
        if valid_types and facility_type not in valid_types:
            errors["type"] = f'Loại hình "{facility_type}" không hợp lệ'

    province_code = data.get("province_code")
    if not province_code:
        errors["province_code"] = "Vui lòng chọn cấp quản lý"
    elif province_code not in MANAGEMENT_LEVELS:
        errors["province_code"] = 'Cấp quản lý phải là "tinh" hoặc "huyen"'

    status = data.get("status") or "active"
    if status not in FACILITY_STATUSES:
        errors["status"] = "Trạng thái không hợp lệ"

    if errors:
        raise ValidationError("Dữ liệu cơ sở không hợp lệ", fields=errors)

    return {
        "name": name,
        "owner_name": (data.get("owner_name") or "").strip() or None,
        "address": (data.get("address") or "").strip() or None,
        "type": facility_type,
        "province_code": province_code,
        "status": status,
    }


def create_facility(db: Session, data: dict[str, Any]) -> Facility:
    values = validate_facility(db, data)
    facility = Facility(**values)
    db.add(facility)
    db.flush()
    logger.info("Tạo cơ sở %s (%s)", facility.name, facility.id)
    run_after_commit(db, invalidate_facility_data)
    return facility


def update_facility(db: Session, facility_id: uuid.UUID, data: dict[str, Any]) -> Facility:
    facility = get_facility(db, facility_id)
    values = validate_facility(db, data)
    for key, value in values.items():
        setattr(facility, key, value)
    db.flush()
    run_after_commit(db, invalidate_facility_data)
    return facility


def delete_facility(db: Session, actor: Profile, facility_id: uuid.UUID) -> None:
    require_admin(actor)
    facility = get_facility(db, facility_id)
    db.delete(facility)
    db.flush()
    logger.info("%s xoá cơ sở %s (%s)", actor.username, facility.name, facility.id)
    run_after_commit(db, invalidate_facility_data)


def _optional_date(value: Any, field_name: str, errors: dict[str, str]) -> date | None:
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        errors[field_name] = "Ngày không hợp lệ (định dạng YYYY-MM-DD)"
        return None


def update_certificate(db: Session, facility_id: uuid.UUID, data: dict[str, Any]) -> Facility:
    """Cập nhật thông tin GCN của một cơ sở."""
    facility = get_facility(db, facility_id)
    errors: dict[str, str] = {}

    certificate_date = _optional_date(data.get("certificate_date"), "certificate_date", errors)
    certificate_expiry = _optional_date(
        data.get("certificate_expiry"), "certificate_expiry", errors
    )
    if (
        certificate_date
        and certificate_expiry
        and certificate_expiry < certificate_date
    ):
        errors["certificate_expiry"] = "Ngày hết hạn phải sau ngày cấp"
    if errors:
        raise ValidationError("Thông tin GCN không hợp lệ", fields=errors)

    facility.is_certified = form_bool(data.get("is_certified"))
    facility.certificate_number = (data.get("certificate_number") or "").strip() or None
    facility.certificate_date = certificate_date
    facility.certificate_expiry = certificate_expiry
    db.flush()
    logger.info("Cập nhật GCN cơ sở %s", facility.id)
    run_after_commit(db, invalidate_facility_data)
    return facility


def parse_coordinate(value: Any, limit: float, label: str) -> float:
    try:
        number = float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        raise ValidationError(f"{label} phải là số")
    if not -limit <= number <= limit:
        raise ValidationError(f"{label} phải trong khoảng -{limit:g} đến {limit:g}")
    return number


def update_location(db: Session, facility_id: uuid.UUID, data: dict[str, Any]) -> Facility:
    facility = get_facility(db, facility_id)
    facility.latitude = parse_coordinate(data.get("latitude"), 90, "Vĩ độ")
    facility.longitude = parse_coordinate(data.get("longitude"), 180, "Kinh độ")
    db.flush()
    return facility


def serialize_facility(facility: Facility, today: date | None = None) -> dict[str, Any]:
    status = classify_certificate(facility, today)
    return {
        "id": str(facility.id),
        "name": facility.name,
        "owner_name": facility.owner_name,
        "address": facility.address,
        "type": facility.type,
        "province_code": facility.province_code,
        "status": facility.status,
        "is_certified": facility.is_certified,
        "certificate_number": facility.certificate_number,
        "certificate_date": facility.certificate_date,
        "certificate_expiry": facility.certificate_expiry,
        "certificate_status": status.value,
        "certificate_status_label": status.label,
        "latitude": facility.latitude,
        "longitude": facility.longitude,
    }
