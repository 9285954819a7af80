"""
Service cho lần kiểm tra (inspections): kiểm tra dữ liệu form, tạo mới,
tải lịch sử kèm rà soát quá hạn, đánh dấu đã khắc phục.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from ..core.cache import invalidate_facility_data
from ..core.db import run_after_commit
from ..core.error_handler import NotFoundError, ValidationError
from ..core.request_utils import form_bool
from ..models.entities import (
    INSPECTION_RESULTS,
    TEAM_TYPES,
    Facility,
    Inspection,
    normalize_result,
)
from .certificates import utc_today
from .remediation import SweepReport, sweep_overdue_remediations

logger = logging.getLogger(__name__)


def _parse_date(value: Any, field_name: str, errors: dict[str, str]) -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        errors[field_name] = "Ngày không hợp lệ (định dạng YYYY-MM-DD)"
        return None


def validate_inspection(data: dict[str, Any]) -> dict[str, Any]:
    """Kiểm tra payload form kiểm tra, trả về dict đã chuẩn hoá.

    Raise ValidationError kèm lỗi theo từng trường.
    """
    errors: dict[str, str] = {}

    inspection_date = _parse_date(data.get("inspection_date"), "inspection_date", errors)
    if inspection_date is None and "inspection_date" not in errors:
        errors["inspection_date"] = "Vui lòng chọn ngày kiểm tra"

    year = inspection_date.year if inspection_date else None
    if year is not None and not 2000 <= year <= 2100:
        errors["inspection_date"] = "Năm kiểm tra phải trong khoảng 2000 - 2100"

    team_type = data.get("team_type")
    if team_type not in TEAM_TYPES:
        errors["team_type"] = "Vui lòng chọn loại đoàn kiểm tra"

    result = normalize_result(data.get("result") or "dat")
    if result not in INSPECTION_RESULTS:
        errors["result"] = "Kết quả kiểm tra không hợp lệ"

    deadline = _parse_date(data.get("remediation_deadline"), "remediation_deadline", errors)
    if result == "cho_khac_phuc" and deadline is None and "remediation_deadline" not in errors:
        errors["remediation_deadline"] = (
            "Thời hạn khắc phục là bắt buộc khi kết quả là 'Chờ khắc phục'"
        )

    has_penalty = form_bool(data.get("has_penalty"))
    penalty_amount: Decimal | None = None
    raw_amount = data.get("penalty_amount")
    if raw_amount not in (None, ""):
        try:
            penalty_amount = Decimal(str(raw_amount))
        except InvalidOperation:
            errors["penalty_amount"] = "Số tiền xử phạt không hợp lệ"
    if has_penalty and "penalty_amount" not in errors and (
        penalty_amount is None or penalty_amount <= 0
    ):
        errors["penalty_amount"] = "Số tiền xử phạt phải lớn hơn 0"

    if errors:
        raise ValidationError("Dữ liệu kiểm tra không hợp lệ", fields=errors)

    # Thông tin xử phạt chỉ có nghĩa khi has_penalty = True
    return {
        "inspection_date": inspection_date,
        "year": year,
        "team_type": team_type,
        "result": result,
        "remediation_deadline": deadline,
        "has_penalty": has_penalty,
        "penalty_amount": penalty_amount if has_penalty else None,
        "penalty_agency": (data.get("penalty_agency") or None) if has_penalty else None,
        "sanction_type": (data.get("sanction_type") or None) if has_penalty else None,
        "notes": data.get("notes") or None,
    }


def create_inspection(db: Session, facility_id: uuid.UUID, data: dict[str, Any]) -> Inspection:
    facility = db.get(Facility, facility_id)
    if facility is None:
        raise NotFoundError("Cơ sở không tồn tại")

    values = validate_inspection(data)
    inspection = Inspection(facility_id=facility.id, **values)
    db.add(inspection)
    db.flush()
    logger.info("Tạo inspection %s cho cơ sở %s", inspection.id, facility.id)
    run_after_commit(db, invalidate_facility_data)
    return inspection


def load_history(
    db: Session,
    facility_id: uuid.UUID,
    today: date | None = None,
) -> tuple[list[Inspection], SweepReport]:
    """Tải lịch sử kiểm tra (mới nhất trước) và rà soát quá hạn khắc phục."""

    if db.get(Facility, facility_id) is None:
        raise NotFoundError("Cơ sở không tồn tại")

    inspections = (
        db.query(Inspection)
        .filter(Inspection.facility_id == facility_id)
        .order_by(Inspection.inspection_date.desc())
        .all()
    )
    report = sweep_overdue_remediations(db, inspections, today or utc_today())
    return inspections, report


def mark_remediated(db: Session, inspection_id: uuid.UUID) -> Inspection:
    inspection = db.get(Inspection, inspection_id)
    if inspection is None:
        raise NotFoundError("Lần kiểm tra không tồn tại")
    if normalize_result(inspection.result) != "cho_khac_phuc":
        raise ValidationError(
            "Chỉ lần kiểm tra đang 'Chờ khắc phục' mới đánh dấu đã khắc phục được",
            error_code="INVALID_TRANSITION",
        )
    inspection.result = "da_khac_phuc"
    db.flush()
    logger.info("Inspection %s đã khắc phục", inspection.id)
    run_after_commit(db, invalidate_facility_data)
    return inspection


def serialize_inspection(inspection: Inspection) -> dict[str, Any]:
    return {
        "id": str(inspection.id),
        "facility_id": str(inspection.facility_id),
        "inspection_date": inspection.inspection_date,
        "year": inspection.year,
        "team_type": inspection.team_type,
        "result": normalize_result(inspection.result),
        "remediation_deadline": inspection.remediation_deadline,
        "has_penalty": inspection.has_penalty,
        "penalty_amount": float(inspection.penalty_amount)
        if inspection.penalty_amount is not None
        else None,
        "penalty_agency": inspection.penalty_agency,
        "sanction_type": inspection.sanction_type,
        "notes": inspection.notes,
    }
