"""
Nhập / xuất danh sách cơ sở bằng file Excel.

- Tên cột tiếng Việt trong FACILITY_COLUMNS là mẫu chuẩn cho cả nhập và xuất,
  đổi tên cột sẽ làm hỏng việc nhập file.
- Mỗi dòng được kiểm tra độc lập; chỉ dòng hợp lệ mới được ghi vào DB,
  từng dòng một, không có transaction chung.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable

import pandas as pd
from openpyxl.utils import get_column_letter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.cache import invalidate_facility_data
from ..core.error_handler import ValidationError
from ..models.entities import Facility
from .certificates import utc_today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    required: bool = False
    width: int = 15


FACILITY_COLUMNS = [
    Column("name", "Tên cơ sở (*)", True, 30),
    Column("owner_name", "Chủ cơ sở", False, 20),
    Column("address", "Địa chỉ", False, 40),
    Column("type", "Loại hình (*)", True, 25),
    Column("province_code", "Cấp quản lý (*)", True, 15),
    Column("status", "Trạng thái", False, 15),
    Column("is_certified", "Đã cấp GCN", False, 12),
    Column("certificate_number", "Số GCN", False, 15),
    Column("certificate_date", "Ngày cấp GCN", False, 15),
    Column("certificate_expiry", "Ngày hết hạn GCN", False, 18),
    Column("latitude", "Vĩ độ", False, 12),
    Column("longitude", "Kinh độ", False, 12),
]
HEADERS = {c.key: c.header for c in FACILITY_COLUMNS}

DATA_SHEET = "DỮ LIỆU IMPORT"
GUIDE_SHEET = "HƯỚNG DẪN"
TYPES_SHEET = "DANH SÁCH LOẠI HÌNH"

STATUS_SYNONYMS = {
    "active": "active",
    "hoạt động": "active",
    "inactive": "inactive",
    "ngừng hoạt động": "inactive",
    "ngừng": "inactive",
    "suspended": "suspended",
    "tạm đình chỉ": "suspended",
    "đình chỉ": "suspended",
}
MANAGEMENT_LEVEL_SYNONYMS = {
    "tinh": "tinh",
    "huyen": "huyen",
    "tỉnh": "tinh",
    "huyện": "huyen",
}
TRUE_VALUES = {"true", "1", "có", "yes", "x"}

# Ngày 0 của số serial ngày trong Excel (hệ 1900)
EXCEL_EPOCH = date(1899, 12, 30)
_TIME = r"(?:[T ]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?"
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME + "$")
_YMD = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})" + _TIME + "$")


class ImportFileError(ValidationError):
    def __init__(self, message: str = "Không thể đọc file Excel. Vui lòng kiểm tra định dạng file."):
        super().__init__(message, error_code="IMPORT_FILE_ERROR")


@dataclass
class ParsedRow:
    data: dict[str, Any]
    row_index: int
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_index": self.row_index,
            "data": self.data,
            "errors": self.errors,
            "warnings": self.warnings,
            "is_valid": self.is_valid,
        }


@dataclass
class ParseResult:
    rows: list[ParsedRow]

    @property
    def total(self) -> int:
        return len(self.rows)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.rows if r.is_valid)

    @property
    def invalid_count(self) -> int:
        return self.total - self.valid_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "total": self.total,
            "valid_count": self.valid_count,
            "invalid_count": self.invalid_count,
        }


@dataclass
class ImportReport:
    success: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "errors": self.errors}


# ---------------------------------------------------------------------------
# Chuyển đổi giá trị ô
# ---------------------------------------------------------------------------

def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def safe_str(value: Any) -> str | None:
    """Chuyển đổi giá trị sang string an toàn."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def parse_cell_date(value: Any) -> date | None:
    """Đọc ngày từ ô Excel: DD/MM/YYYY, YYYY-MM-DD (có thể kèm giờ),
    ô kiểu ngày hoặc số serial.

    Chuỗi phải có đủ ngày, tháng, năm; giá trị khác trả về None.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 1:
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except OverflowError:
            return None

    text = str(value).strip()
    m = _DMY.match(text)
    if m:
        day, month, year = (int(x) for x in m.groups())
    else:
        m = _YMD.match(text)
        if not m:
            return None
        year, month, day = (int(x) for x in m.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return False
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in TRUE_VALUES


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None


def _cell(row: dict[str, Any], *headers: str) -> Any:
    for header in headers:
        value = row.get(header)
        if not is_blank(value):
            return value
    return None


# ---------------------------------------------------------------------------
# Kiểm tra từng dòng
# ---------------------------------------------------------------------------

def validate_row(row: dict[str, Any], row_index: int, valid_types: list[str]) -> ParsedRow:
    errors: list[str] = []
    warnings: list[str] = []
    data: dict[str, Any] = {}

    name = safe_str(_cell(row, HEADERS["name"], "Tên cơ sở"))
    if not name:
        errors.append("Tên cơ sở là bắt buộc")
    else:
        data["name"] = name

    owner_name = safe_str(row.get(HEADERS["owner_name"]))
    if owner_name:
        data["owner_name"] = owner_name

    address = safe_str(row.get(HEADERS["address"]))
    if address:
        data["address"] = address

    facility_type = safe_str(_cell(row, HEADERS["type"], "Loại hình"))
    if not facility_type:
        errors.append("Loại hình là bắt buộc")
    elif valid_types and facility_type not in valid_types:
        errors.append(
            f'Loại hình "{facility_type}" không hợp lệ. '
            f"Các giá trị hợp lệ: {', '.join(valid_types)}"
        )
    else:
        data["type"] = facility_type

    level = safe_str(_cell(row, HEADERS["province_code"], "Cấp quản lý"))
    if not level:
        errors.append("Cấp quản lý là bắt buộc")
    elif level.lower() not in MANAGEMENT_LEVEL_SYNONYMS:
        errors.append('Cấp quản lý phải là "tinh" hoặc "huyen"')
    else:
        data["province_code"] = MANAGEMENT_LEVEL_SYNONYMS[level.lower()]

    status = safe_str(row.get(HEADERS["status"]))
    if status is None:
        data["status"] = "active"
    else:
        data["status"] = STATUS_SYNONYMS.get(status.lower(), "active")
        if status.lower() not in STATUS_SYNONYMS:
            warnings.append(f'Trạng thái "{status}" không nhận diện được, dùng "active"')

    data["is_certified"] = parse_bool(row.get(HEADERS["is_certified"]))

    certificate_number = safe_str(row.get(HEADERS["certificate_number"]))
    if certificate_number:
        data["certificate_number"] = certificate_number

    for key in ("certificate_date", "certificate_expiry"):
        raw = row.get(HEADERS[key])
        if is_blank(raw):
            continue
        parsed = parse_cell_date(raw)
        if parsed is None:
            errors.append(f"{HEADERS[key]} không đúng định dạng (sử dụng DD/MM/YYYY)")
        else:
            data[key] = parsed

    for key, limit, label in (("latitude", 90, "Vĩ độ"), ("longitude", 180, "Kinh độ")):
        raw = row.get(HEADERS[key])
        if is_blank(raw):
            continue
        number = parse_number(raw)
        if number is None:
            errors.append(f"{label} phải là số")
        elif not -limit <= number <= limit:
            errors.append(f"{label} phải trong khoảng -{limit} đến {limit}")
        else:
            data[key] = number

    return ParsedRow(data=data, row_index=row_index, errors=errors, warnings=warnings)


def read_rows(file_bytes: bytes) -> list[tuple[int, dict[str, Any]]]:
    """Đọc sheet đầu tiên, trả về (số dòng trong Excel, dict theo tiêu đề cột)."""
    try:
        df = pd.read_excel(io.BytesIO(file_bytes), sheet_name=0, dtype=object, engine="openpyxl")
    except Exception as e:
        logger.warning("Không đọc được file Excel: %s", e)
        raise ImportFileError() from e

    df.columns = [str(c).strip() for c in df.columns]
    df = df.dropna(how="all")
    # +2: dòng 1 là tiêu đề, index của pandas bắt đầu từ 0
    return [(int(idx) + 2, row.to_dict()) for idx, row in df.iterrows()]


def parse_facility_workbook(file_bytes: bytes, valid_types: list[str]) -> ParseResult:
    rows = [validate_row(row, row_index, valid_types) for row_index, row in read_rows(file_bytes)]
    result = ParseResult(rows=rows)
    logger.info(
        "Đọc file import: %d dòng, %d hợp lệ, %d lỗi",
        result.total,
        result.valid_count,
        result.invalid_count,
    )
    return result


def import_facilities(db: Session, rows: Iterable[ParsedRow]) -> ImportReport:
    """Ghi từng dòng hợp lệ vào DB; lỗi ở một dòng không ảnh hưởng dòng khác."""
    report = ImportReport()
    for parsed in rows:
        if not parsed.is_valid:
            continue
        try:
            db.add(Facility(**parsed.data))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            report.failed += 1
            report.errors.append(f"Dòng {parsed.row_index}: {getattr(e, 'orig', None) or e}")
            logger.warning("Import dòng %d thất bại: %s", parsed.row_index, e)
        else:
            report.success += 1

    if report.success:
        invalidate_facility_data()
    logger.info("Import xong: %d thành công, %d lỗi", report.success, report.failed)
    return report


# ---------------------------------------------------------------------------
# File mẫu và xuất dữ liệu
# ---------------------------------------------------------------------------

GUIDE_LINES = [
    "HƯỚNG DẪN NHẬP LIỆU",
    "",
    "1. CÁC CỘT BẮT BUỘC (đánh dấu *)",
    "   - Tên cơ sở (*): Không được để trống",
    f'   - Loại hình (*): Phải là một trong các giá trị trong sheet "{TYPES_SHEET}"',
    '   - Cấp quản lý (*): Phải là "tinh" hoặc "huyen"',
    "",
    "2. ĐỊNH DẠNG DỮ LIỆU",
    "   - Ngày tháng: DD/MM/YYYY (ví dụ: 31/12/2024)",
    "   - Đã cấp GCN: true hoặc false (hoặc 1/0, có/không)",
    "   - Vĩ độ/Kinh độ: Số thập phân (ví dụ: 10.123456)",
    "",
    "3. GIÁ TRỊ HỢP LỆ",
    "   - Trạng thái:",
    "     + active: Hoạt động",
    "     + inactive: Ngừng hoạt động",
    "     + suspended: Tạm đình chỉ",
    "",
    "   - Cấp quản lý:",
    "     + tinh: Cấp Tỉnh",
    "     + huyen: Cấp Huyện",
    "",
    "4. LƯU Ý",
    "   - Các cột không bắt buộc có thể để trống",
    "   - Xóa dòng dữ liệu mẫu trước khi nhập liệu thực",
    "   - Không thay đổi tên các cột tiêu đề",
]


def _set_widths(worksheet: Any, widths: list[int]) -> None:
    for i, width in enumerate(widths, start=1):
        worksheet.column_dimensions[get_column_letter(i)].width = width


def template_filename(today: date | None = None) -> str:
    today = today or utc_today()
    return f"mau_import_coso_{today.strftime('%Y%m%d')}.xlsx"


def build_import_template(type_names: list[str]) -> bytes:
    """Tạo file mẫu gồm 3 sheet: dữ liệu, hướng dẫn, danh sách loại hình."""
    sample = {
        "name": "Quán ăn ABC",
        "owner_name": "Nguyễn Văn A",
        "address": "123 Đường XYZ, Phường ABC",
        "type": type_names[0] if type_names else "Dịch vụ ăn uống",
        "province_code": "huyen",
        "status": "active",
        "is_certified": "true",
        "certificate_number": "GCN-001",
        "certificate_date": "01/01/2024",
        "certificate_expiry": "01/01/2027",
        "latitude": "",
        "longitude": "",
    }
    data_df = pd.DataFrame(
        [[sample[c.key] for c in FACILITY_COLUMNS]],
        columns=[c.header for c in FACILITY_COLUMNS],
    )
    guide_df = pd.DataFrame([[line] for line in GUIDE_LINES])
    types_df = pd.DataFrame([[TYPES_SHEET], [""]] + [[name] for name in type_names])

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        data_df.to_excel(writer, sheet_name=DATA_SHEET, index=False)
        guide_df.to_excel(writer, sheet_name=GUIDE_SHEET, index=False, header=False)
        types_df.to_excel(writer, sheet_name=TYPES_SHEET, index=False, header=False)
        _set_widths(writer.sheets[DATA_SHEET], [c.width for c in FACILITY_COLUMNS])
        _set_widths(writer.sheets[GUIDE_SHEET], [80])
        _set_widths(writer.sheets[TYPES_SHEET], [40])
    return buffer.getvalue()


def _fmt_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def export_facilities(facilities: Iterable[Facility]) -> bytes:
    """Xuất danh sách cơ sở theo đúng mẫu cột dùng để nhập."""
    records = []
    for f in facilities:
        records.append([
            f.name,
            f.owner_name or "",
            f.address or "",
            f.type,
            f.province_code,
            f.status,
            "true" if f.is_certified else "false",
            f.certificate_number or "",
            _fmt_date(f.certificate_date),
            _fmt_date(f.certificate_expiry),
            f.latitude if f.latitude is not None else "",
            f.longitude if f.longitude is not None else "",
        ])
    df = pd.DataFrame(records, columns=[c.header for c in FACILITY_COLUMNS])

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=DATA_SHEET, index=False)
        _set_widths(writer.sheets[DATA_SHEET], [c.width for c in FACILITY_COLUMNS])
    return buffer.getvalue()
