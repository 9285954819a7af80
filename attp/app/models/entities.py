"""
Định nghĩa các bảng của hệ thống quản lý ATTP.

Lưu ý:
- Dùng UUID làm khóa chính (riêng site_config dùng id cố định "main").
- Tên bảng, tên cột và giá trị enum là hợp đồng dữ liệu, không đổi tuỳ ý.
- Enum được biểu diễn bằng String, giá trị hợp lệ khai báo ở các tuple bên dưới.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    String,
    Text,
    Date,
    DateTime,
    Boolean,
    Numeric,
    Integer,
    Float,
    ForeignKey,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, uuid_pk, utcnow

FACILITY_STATUSES = ("active", "inactive", "suspended")
MANAGEMENT_LEVELS = ("tinh", "huyen")
TEAM_TYPES = ("chuyen_nganh", "lien_nganh")
INSPECTION_RESULTS = ("dat", "cho_khac_phuc", "da_khac_phuc", "khong_dat")
ROLES = ("admin", "staff")

SITE_CONFIG_ID = "main"

FACILITY_STATUS_LABELS = {
    "active": "Hoạt động",
    "inactive": "Ngừng hoạt động",
    "suspended": "Tạm đình chỉ",
}
MANAGEMENT_LEVEL_LABELS = {
    "tinh": "Cấp Tỉnh",
    "huyen": "Cấp Huyện",
}
TEAM_TYPE_LABELS = {
    "chuyen_nganh": "Chuyên ngành",
    "lien_nganh": "Liên ngành",
}
RESULT_LABELS = {
    "dat": "Đạt",
    "cho_khac_phuc": "Chờ khắc phục",
    "da_khac_phuc": "Đã khắc phục",
    "khong_dat": "Không đạt",
}

# Giá trị cũ (tiếng Anh) còn sót trong dữ liệu lịch sử
LEGACY_RESULTS = {
    "passed": "dat",
    "failed": "khong_dat",
    "pending": "cho_khac_phuc",
}


def normalize_result(value: str | None) -> str | None:
    if value is None:
        return None
    return LEGACY_RESULTS.get(value, value)


class Facility(Base):
    """Bảng `facilities`: cơ sở kinh doanh dịch vụ ăn uống, sản xuất thực phẩm."""

    __tablename__ = "facilities"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), index=True)
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(255), index=True)  # theo tên facility_types
    province_code: Mapped[str] = mapped_column(String(10))  # tinh, huyen
    status: Mapped[str] = mapped_column(String(20), default="active")
    is_certified: Mapped[bool] = mapped_column(Boolean, default=False)
    certificate_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    certificate_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    certificate_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    inspections: Mapped[list["Inspection"]] = relationship(
        back_populates="facility",
        cascade="all, delete-orphan",
        order_by="Inspection.inspection_date.desc()",
    )


class FacilityType(Base):
    """Bảng `facility_types`: danh mục loại hình cơ sở."""

    __tablename__ = "facility_types"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Inspection(Base):
    """Bảng `inspections`: lần kiểm tra, kết quả và xử phạt."""

    __tablename__ = "inspections"

    id: Mapped[uuid.UUID] = uuid_pk()
    facility_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("facilities.id", ondelete="CASCADE"), index=True
    )
    inspection_date: Mapped[date] = mapped_column(Date)
    year: Mapped[int] = mapped_column(Integer, index=True)
    team_type: Mapped[str] = mapped_column(String(20))  # chuyen_nganh, lien_nganh
    result: Mapped[str] = mapped_column(String(20), default="dat")
    remediation_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    has_penalty: Mapped[bool] = mapped_column(Boolean, default=False)
    penalty_amount: Mapped[float | None] = mapped_column(Numeric(18, 2), nullable=True)
    penalty_agency: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sanction_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    facility: Mapped[Facility] = relationship(back_populates="inspections")


class Profile(Base):
    """Bảng `profiles`: tài khoản cán bộ (admin / staff)."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = uuid_pk()
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(10), default="staff")
    managed_area: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class SiteConfig(Base):
    """Bảng `site_config`: một dòng duy nhất (id = "main") cho logo, ảnh nền."""

    __tablename__ = "site_config"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=SITE_CONFIG_ID)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_height: Mapped[int] = mapped_column(Integer, default=40)
    login_background_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
