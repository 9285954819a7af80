"""
Factory functions để tạo test data nhanh chóng.

Các factory này giúp tạo test data với default values hợp lý,
giảm boilerplate code trong tests. Factory chỉ flush, test tự commit.
"""

from __future__ import annotations

import io
import uuid
from datetime import date, timedelta
from typing import Any

import bcrypt
import pandas as pd
from sqlalchemy.orm import Session

from attp.app.models.entities import Facility, FacilityType, Inspection, Profile
from attp.app.services.certificates import utc_today

# bcrypt với cost thấp cho tests
_HASH_CACHE: dict[str, str] = {}


def _fast_hash(password: str) -> str:
    if password not in _HASH_CACHE:
        _HASH_CACHE[password] = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=4)
        ).decode("utf-8")
    return _HASH_CACHE[password]


# ============================================================================
# Facility & FacilityType
# ============================================================================

def create_test_facility_type(
    db: Session,
    name: str | None = None,
    is_active: bool = True,
    **kwargs
) -> FacilityType:
    """Tạo test facility type."""
    facility_type = FacilityType(
        name=name or f"Loại hình {uuid.uuid4().hex[:6]}",
        is_active=is_active,
        **kwargs
    )
    db.add(facility_type)
    db.flush()
    return facility_type


def create_test_facility(
    db: Session,
    name: str | None = None,
    type: str = "Nhà hàng",
    province_code: str = "huyen",
    status: str = "active",
    is_certified: bool = False,
    certificate_expiry: date | None = None,
    **kwargs
) -> Facility:
    """Tạo test facility."""
    facility = Facility(
        name=name or f"Cơ sở Test {uuid.uuid4().hex[:6]}",
        type=type,
        province_code=province_code,
        status=status,
        is_certified=is_certified,
        certificate_expiry=certificate_expiry,
        **kwargs
    )
    db.add(facility)
    db.flush()
    return facility


def create_certified_facility(
    db: Session,
    days_left: int,
    today: date | None = None,
    **kwargs
) -> Facility:
    """Tạo cơ sở đã cấp GCN, hết hạn sau `days_left` ngày."""
    today = today or utc_today()
    return create_test_facility(
        db,
        is_certified=True,
        certificate_number=kwargs.pop("certificate_number", f"GCN-{uuid.uuid4().hex[:4]}"),
        certificate_date=today - timedelta(days=365),
        certificate_expiry=today + timedelta(days=days_left),
        **kwargs
    )


# ============================================================================
# Inspection
# ============================================================================

def create_test_inspection(
    db: Session,
    facility: Facility,
    inspection_date: date | None = None,
    team_type: str = "chuyen_nganh",
    result: str = "dat",
    **kwargs
) -> Inspection:
    """Tạo test inspection."""
    inspection_date = inspection_date or utc_today()
    inspection = Inspection(
        facility_id=facility.id,
        inspection_date=inspection_date,
        year=kwargs.pop("year", inspection_date.year),
        team_type=team_type,
        result=result,
        **kwargs
    )
    db.add(inspection)
    db.flush()
    return inspection


# ============================================================================
# Profile
# ============================================================================

def create_test_profile(
    db: Session,
    username: str | None = None,
    role: str = "staff",
    password: str = "secret123",
    **kwargs
) -> Profile:
    """Tạo test profile (tài khoản)."""
    profile = Profile(
        username=username or f"user_{uuid.uuid4().hex[:6]}",
        password_hash=_fast_hash(password),
        role=role,
        **kwargs
    )
    db.add(profile)
    db.flush()
    return profile


# ============================================================================
# Excel
# ============================================================================

def build_workbook(rows: list[dict[str, Any]], columns: list[str] | None = None) -> bytes:
    """Tạo file xlsx (bytes) từ danh sách dòng {header: giá trị}."""
    df = pd.DataFrame(rows, columns=columns)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False)
    return buffer.getvalue()
