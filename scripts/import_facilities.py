"""
Nhập danh sách cơ sở từ file Excel theo mẫu import.

Ví dụ:
  python scripts/import_facilities.py data/coso.xlsx --dry-run
  python scripts/import_facilities.py data/coso.xlsx
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Thêm path để import attp modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from attp.app.core.db import get_session, init_db
from attp.app.core.logging_config import setup_logging
from attp.app.services.facility_import import (
    ImportFileError,
    import_facilities,
    parse_facility_workbook,
)
from attp.app.services.facility_type_service import active_type_names


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import cơ sở từ file Excel")
    parser.add_argument("excel_path", help="Đường dẫn file Excel (.xlsx)")
    parser.add_argument(
        "--dry-run", action="store_true", help="Chỉ kiểm tra dữ liệu, không ghi vào DB"
    )
    args = parser.parse_args(argv)

    setup_logging()
    init_db()

    path = Path(args.excel_path)
    if not path.is_file():
        print(f"❌ Không tìm thấy file: {path}")
        return 1

    with get_session() as db:
        type_names = active_type_names(db)

    try:
        result = parse_facility_workbook(path.read_bytes(), type_names)
    except ImportFileError as e:
        print(f"❌ {e.message}")
        return 1

    print(f"📋 Tổng: {result.total} dòng, hợp lệ: {result.valid_count}, lỗi: {result.invalid_count}")
    for row in result.rows:
        for error in row.errors:
            print(f"   ❌ Dòng {row.row_index}: {error}")
        for warning in row.warnings:
            print(f"   ⚠️  Dòng {row.row_index}: {warning}")

    if args.dry_run:
        print("ℹ️  Chế độ --dry-run, không ghi dữ liệu")
        return 0

    with get_session() as db:
        report = import_facilities(db, result.rows)
    print(f"✅ Thành công: {report.success}, thất bại: {report.failed}")
    for error in report.errors:
        print(f"   ❌ {error}")
    return 0 if not report.failed else 2


if __name__ == "__main__":
    sys.exit(main())
