"""
Rà soát các lần kiểm tra "Chờ khắc phục" đã quá hạn.

Chạy đồng bộ mỗi khi lịch sử kiểm tra của một cơ sở được tải: lần kiểm tra
có kết quả `cho_khac_phuc` và hạn khắc phục trước hôm nay chuyển sang
`khong_dat`. Mỗi bản ghi được commit riêng, lỗi ở bản ghi này không chặn
các bản ghi khác.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.cache import invalidate_facility_data
from ..models.entities import Inspection, normalize_result
from .certificates import as_date, utc_today

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    transitioned: list[uuid.UUID] = field(default_factory=list)
    failed: list[uuid.UUID] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.transitioned)

    @property
    def message(self) -> str | None:
        if not self.transitioned:
            return None
        return (
            f"{self.count} cơ sở đã quá hạn khắc phục được chuyển sang \"Không đạt\""
        )

    def to_dict(self) -> dict:
        return {
            "auto_failed_count": self.count,
            "failed_updates": [str(i) for i in self.failed],
            "message": self.message,
        }


def is_overdue(inspection: Inspection, today: date) -> bool:
    deadline = as_date(inspection.remediation_deadline)
    return (
        normalize_result(inspection.result) == "cho_khac_phuc"
        and deadline is not None
        and deadline < today
    )


def find_overdue(inspections: Iterable[Inspection], today: date | None = None) -> list[Inspection]:
    today = today or utc_today()
    return [i for i in inspections if is_overdue(i, today)]


def sweep_overdue_remediations(
    db: Session,
    inspections: Iterable[Inspection],
    today: date | None = None,
) -> SweepReport:
    """Chuyển các lần kiểm tra quá hạn khắc phục sang "Không đạt"."""

    report = SweepReport()
    for inspection in find_overdue(inspections, today):
        inspection_id = inspection.id
        try:
            inspection.result = "khong_dat"
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Không cập nhật được inspection %s: %s", inspection_id, e)
            report.failed.append(inspection_id)
            continue
        report.transitioned.append(inspection_id)

    if report.transitioned:
        logger.info(
            "Remediation sweep: %d inspection(s) chuyển sang khong_dat", report.count
        )
        invalidate_facility_data()
    return report
