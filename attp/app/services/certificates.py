"""
Phân loại trạng thái Giấy chứng nhận (GCN) đủ điều kiện ATTP.

Quy ước thời gian: "hôm nay" là ngày theo UTC, hạn GCN là ngày lịch
(không có giờ). Mọi phép so sánh đều trên `date`.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable

from ..core.config import settings

logger = logging.getLogger(__name__)


class CertificateStatus(str, Enum):
    NOT_CERTIFIED = "not_certified"
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    VALID = "valid"

    @property
    def label(self) -> str:
        return CERTIFICATE_STATUS_LABELS[self]


CERTIFICATE_STATUS_LABELS = {
    CertificateStatus.NOT_CERTIFIED: "Chưa cấp",
    CertificateStatus.EXPIRED: "Hết hạn",
    CertificateStatus.EXPIRING_SOON: "Sắp hết hạn",
    CertificateStatus.VALID: "Còn hạn",
}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def as_date(value: Any) -> date | None:
    """Chuẩn hoá giá trị ngày lưu trữ (date, datetime hoặc chuỗi ISO)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def classify_certificate(
    facility: Any,
    today: date | None = None,
    warning_days: int | None = None,
) -> CertificateStatus:
    """Trả về trạng thái GCN của một cơ sở.

    - Chưa cấp GCN hoặc không có ngày hết hạn -> not_certified
    - Hết hạn vào hôm nay hoặc trước đó -> expired
    - Hết hạn trong vòng `warning_days` ngày tới (tính cả ngày biên) -> expiring_soon
    - Còn lại -> valid
    """
    today = today or utc_today()
    if warning_days is None:
        warning_days = settings.expiry_warning_days

    expiry = as_date(getattr(facility, "certificate_expiry", None))
    if not getattr(facility, "is_certified", False) or expiry is None:
        return CertificateStatus.NOT_CERTIFIED
    if expiry <= today:
        return CertificateStatus.EXPIRED
    if expiry <= today + timedelta(days=warning_days):
        return CertificateStatus.EXPIRING_SOON
    return CertificateStatus.VALID


def filter_by_status(
    facilities: Iterable[Any],
    status: CertificateStatus | str,
    today: date | None = None,
) -> list[Any]:
    """Lọc danh sách cơ sở theo trạng thái GCN (lọc phía ứng dụng)."""
    status = CertificateStatus(status)
    today = today or utc_today()
    return [f for f in facilities if classify_certificate(f, today) is status]
