"""
Services cho trang tổng quan (dashboard).

`build_dashboard` là phép gộp thuần trên danh sách cơ sở và danh sách
lần kiểm tra; `get_dashboard_stats` tải dữ liệu và cache kết quả.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Sequence

from sqlalchemy.orm import Session

from ..core.cache import DASHBOARD_KEY, query_cache
from ..models.entities import INSPECTION_RESULTS, Facility, Inspection, normalize_result
from .certificates import CertificateStatus, as_date, classify_certificate, utc_today

logger = logging.getLogger(__name__)

PASSED_RESULTS = ("dat", "da_khac_phuc")
FAILED_RESULTS = ("khong_dat",)
EXPIRING_SOON_LIMIT = 5


def build_dashboard(
    facilities: Sequence[Facility],
    inspections: Sequence[Inspection],
    today: date | None = None,
) -> dict[str, Any]:
    """Tổng hợp số liệu dashboard."""
    today = today or utc_today()

    statuses = [(f, classify_certificate(f, today)) for f in facilities]
    status_counts = Counter(status for _, status in statuses)

    expiring = sorted(
        (f for f, status in statuses if status is CertificateStatus.EXPIRING_SOON),
        key=lambda f: as_date(f.certificate_expiry),
    )[:EXPIRING_SOON_LIMIT]

    results = [normalize_result(i.result) for i in inspections]
    by_result = {r: 0 for r in INSPECTION_RESULTS}
    for r in results:
        if r in by_result:
            by_result[r] += 1

    total_penalties = sum(
        float(i.penalty_amount) for i in inspections if i.has_penalty and i.penalty_amount
    )
    penalty_count = sum(1 for i in inspections if i.has_penalty)

    # Pie: số cơ sở theo loại hình
    type_counts = Counter(f.type for f in facilities)
    pie = [{"name": name, "value": value} for name, value in type_counts.items()]

    # Bar: kết quả kiểm tra theo năm
    bar_map: dict[int, dict[str, int]] = {}
    for inspection, result in zip(inspections, results):
        bucket = bar_map.setdefault(
            inspection.year, {"year": inspection.year, "passed": 0, "failed": 0}
        )
        if result in PASSED_RESULTS:
            bucket["passed"] += 1
        elif result in FAILED_RESULTS:
            bucket["failed"] += 1
    bar = [bar_map[year] for year in sorted(bar_map)]

    return {
        "summary": {
            "total_facilities": len(facilities),
            "active_gcn_count": status_counts[CertificateStatus.VALID],
            "not_certified_or_expired_count": status_counts[CertificateStatus.NOT_CERTIFIED]
            + status_counts[CertificateStatus.EXPIRED],
            "inspections_this_year": sum(1 for i in inspections if i.year == today.year),
            "inspections_by_result": by_result,
            "total_penalties": total_penalties,
            "penalty_count": penalty_count,
        },
        "charts": {
            "pie": pie,
            "bar": bar,
        },
        "expiring_soon": [
            {
                "id": str(f.id),
                "name": f.name,
                "type": f.type,
                "certificate_number": f.certificate_number,
                "certificate_expiry": as_date(f.certificate_expiry),
            }
            for f in expiring
        ],
    }


def get_dashboard_stats(db: Session, today: date | None = None) -> dict[str, Any]:
    """Tải toàn bộ facilities + inspections rồi tổng hợp (có cache)."""
    today = today or utc_today()

    def compute() -> dict[str, Any]:
        facilities = db.query(Facility).all()
        inspections = db.query(Inspection).all()
        logger.debug(
            "Tính dashboard: %d cơ sở, %d lần kiểm tra", len(facilities), len(inspections)
        )
        return build_dashboard(facilities, inspections, today)

    return query_cache.get_or_compute(DASHBOARD_KEY + (today,), compute)
