"""
Chuyển giá trị kết quả kiểm tra cũ (passed / failed / pending) sang
giá trị tiếng Việt (dat / khong_dat / cho_khac_phuc).

Chạy lại nhiều lần không ảnh hưởng dữ liệu đã chuẩn hoá.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Thêm path để import attp modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from attp.app.core.db import get_session, init_db
from attp.app.models.entities import LEGACY_RESULTS, Inspection


def normalize_results() -> dict[str, int]:
    """Cập nhật các bản ghi cũ; trả về số bản ghi theo giá trị cũ."""
    counts: dict[str, int] = {}
    with get_session() as db:
        for legacy, canonical in LEGACY_RESULTS.items():
            updated = (
                db.query(Inspection)
                .filter(Inspection.result == legacy)
                .update({Inspection.result: canonical}, synchronize_session=False)
            )
            counts[legacy] = updated
    return counts


def main() -> int:
    init_db()
    counts = normalize_results()
    for legacy, n in counts.items():
        print(f"   {legacy} -> {LEGACY_RESULTS[legacy]}: {n} bản ghi")
    print(f"✅ Đã chuẩn hoá {sum(counts.values())} bản ghi")
    return 0


if __name__ == "__main__":
    sys.exit(main())
