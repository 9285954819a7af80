"""
Unit tests cho đọc / kiểm tra file import cơ sở.
"""

import io
from datetime import date, datetime

import pandas as pd
import pytest

from attp.app.models.entities import Facility
from attp.app.services.facility_import import (
    DATA_SHEET,
    GUIDE_SHEET,
    TYPES_SHEET,
    ImportFileError,
    ParsedRow,
    build_import_template,
    export_facilities,
    import_facilities,
    parse_bool,
    parse_cell_date,
    parse_facility_workbook,
    template_filename,
    validate_row,
)
from tests.utils.factories import build_workbook, create_test_facility

TYPES = ["Nhà hàng", "Bếp ăn tập thể"]


def row(**overrides):
    base = {
        "Tên cơ sở (*)": "Quán Phở Hà",
        "Loại hình (*)": "Nhà hàng",
        "Cấp quản lý (*)": "huyen",
    }
    base.update(overrides)
    return base


@pytest.mark.p0
def test_valid_row():
    parsed = validate_row(row(**{"Trạng thái": "hoạt động", "Đã cấp GCN": "Có"}), 2, TYPES)

    assert parsed.is_valid
    assert parsed.data["name"] == "Quán Phở Hà"
    assert parsed.data["province_code"] == "huyen"
    assert parsed.data["status"] == "active"
    assert parsed.data["is_certified"] is True


@pytest.mark.p0
def test_missing_name_is_error():
    parsed = validate_row(row(**{"Tên cơ sở (*)": "   "}), 3, TYPES)

    assert not parsed.is_valid
    assert "Tên cơ sở là bắt buộc" in parsed.errors


@pytest.mark.p0
def test_unknown_type_lists_valid_values():
    parsed = validate_row(row(**{"Loại hình (*)": "nhà hàng"}), 2, TYPES)

    assert parsed.errors == [
        'Loại hình "nhà hàng" không hợp lệ. Các giá trị hợp lệ: Nhà hàng, Bếp ăn tập thể'
    ]


def test_any_type_accepted_when_list_empty():
    assert validate_row(row(**{"Loại hình (*)": "Khác"}), 2, []).is_valid


def test_alternate_headers_without_asterisk():
    parsed = validate_row({"Tên cơ sở": "A", "Loại hình": "Nhà hàng", "Cấp quản lý": "Tỉnh"}, 2, TYPES)

    assert parsed.is_valid
    assert parsed.data["province_code"] == "tinh"


def test_management_level_rules():
    assert "Cấp quản lý là bắt buộc" in validate_row(row(**{"Cấp quản lý (*)": None}), 2, TYPES).errors
    assert validate_row(row(**{"Cấp quản lý (*)": "HUYỆN"}), 2, TYPES).data["province_code"] == "huyen"
    assert validate_row(row(**{"Cấp quản lý (*)": "xa"}), 2, TYPES).errors == [
        'Cấp quản lý phải là "tinh" hoặc "huyen"'
    ]


def test_status_synonyms_and_unknown_status_warning():
    assert validate_row(row(**{"Trạng thái": "Tạm đình chỉ"}), 2, TYPES).data["status"] == "suspended"
    assert validate_row(row(**{"Trạng thái": "ngừng"}), 2, TYPES).data["status"] == "inactive"

    parsed = validate_row(row(**{"Trạng thái": "đóng cửa"}), 2, TYPES)
    assert parsed.is_valid
    assert parsed.data["status"] == "active"
    assert parsed.warnings


def test_certificate_dates_and_invalid_format():
    parsed = validate_row(
        row(**{"Ngày cấp GCN": "01/02/2024", "Ngày hết hạn GCN": datetime(2027, 2, 1)}), 2, TYPES
    )
    assert parsed.data["certificate_date"] == date(2024, 2, 1)
    assert parsed.data["certificate_expiry"] == date(2027, 2, 1)

    bad = validate_row(row(**{"Ngày hết hạn GCN": "không rõ"}), 2, TYPES)
    assert bad.errors == ["Ngày hết hạn GCN không đúng định dạng (sử dụng DD/MM/YYYY)"]


def test_coordinates():
    parsed = validate_row(row(**{"Vĩ độ": "10,5", "Kinh độ": 105.25}), 2, TYPES)
    assert parsed.data["latitude"] == 10.5
    assert parsed.data["longitude"] == 105.25

    out_of_range = validate_row(row(**{"Vĩ độ": 95}), 2, TYPES)
    assert out_of_range.errors == ["Vĩ độ phải trong khoảng -90 đến 90"]

    not_number = validate_row(row(**{"Kinh độ": "abc"}), 2, TYPES)
    assert not_number.errors == ["Kinh độ phải là số"]


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("1", True), ("x", True), ("YES", True), (1, True), (True, True),
     ("false", False), ("không", False), (0, False), (None, False), (float("nan"), False)],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) is expected


def test_parse_cell_date_formats():
    assert parse_cell_date("2024-03-05") == date(2024, 3, 5)
    assert parse_cell_date("5/3/2024") == date(2024, 3, 5)
    assert parse_cell_date(45292) == date(2024, 1, 1)
    assert parse_cell_date(date(2024, 1, 1)) == date(2024, 1, 1)
    assert parse_cell_date("31/02/2024") is None


@pytest.mark.p0
@pytest.mark.parametrize(
    "value",
    ["2024-01-05 00:00:00", "2024-01-05T00:00:00", "2024-01-05T08:30", "05/01/2024 00:00:00"],
)
def test_parse_cell_date_keeps_month_for_date_time_text(value):
    assert parse_cell_date(value) == date(2024, 1, 5)


@pytest.mark.parametrize("value", [-3, 0, 0.5, "2024", "01/2024", "5 tháng 1"])
def test_parse_cell_date_rejects_partial_values(value):
    assert parse_cell_date(value) is None


def test_validate_row_rejects_bare_year():
    parsed = validate_row(row(**{"Ngày hết hạn GCN": "2027"}), 2, TYPES)

    assert not parsed.is_valid
    assert "certificate_expiry" not in parsed.data


@pytest.mark.p0
def test_parse_workbook_row_numbers_and_counts():
    content = build_workbook(
        [
            row(),
            row(**{"Tên cơ sở (*)": None}),
            row(**{"Loại hình (*)": "Karaoke"}),
        ]
    )

    result = parse_facility_workbook(content, TYPES)

    assert result.total == 3
    assert result.valid_count == 1
    assert result.invalid_count == 2
    assert [r.row_index for r in result.rows] == [2, 3, 4]
    assert result.to_dict()["rows"][1]["is_valid"] is False


def test_unreadable_file_raises_import_error():
    with pytest.raises(ImportFileError) as exc:
        parse_facility_workbook(b"not an excel file", TYPES)
    assert exc.value.message == "Không thể đọc file Excel. Vui lòng kiểm tra định dạng file."
    assert exc.value.status_code == 400


@pytest.mark.p0
def test_import_inserts_only_valid_rows(test_db):
    rows = [
        validate_row(row(), 2, TYPES),
        validate_row(row(**{"Tên cơ sở (*)": ""}), 3, TYPES),
        validate_row(row(**{"Tên cơ sở (*)": "Bếp trường A", "Loại hình (*)": "Bếp ăn tập thể"}), 4, TYPES),
    ]

    report = import_facilities(test_db, rows)

    assert report.success == 2
    assert report.failed == 0
    names = sorted(f.name for f in test_db.query(Facility).all())
    assert names == ["Bếp trường A", "Quán Phở Hà"]


def test_import_records_row_failure_and_continues(test_db):
    broken = ParsedRow(data={"name": "Thiếu loại hình"}, row_index=7)
    good = validate_row(row(), 8, TYPES)

    report = import_facilities(test_db, [broken, good])

    assert report.success == 1
    assert report.failed == 1
    assert report.errors[0].startswith("Dòng 7: ")
    assert test_db.query(Facility).count() == 1


def test_template_has_three_sheets():
    content = build_import_template(TYPES)
    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None)

    assert list(sheets) == [DATA_SHEET, GUIDE_SHEET, TYPES_SHEET]
    data = sheets[DATA_SHEET]
    assert data.iloc[0, 0] == "Tên cơ sở (*)"
    assert data.iloc[1, 3] == "Nhà hàng"
    assert "Bếp ăn tập thể" in sheets[TYPES_SHEET][0].tolist()
    assert template_filename(date(2024, 6, 15)) == "mau_import_coso_20240615.xlsx"


def test_export_uses_import_headers(test_db):
    create_test_facility(
        test_db,
        name="Nhà hàng Sen",
        is_certified=True,
        certificate_date=date(2024, 1, 1),
        certificate_expiry=date(2027, 1, 1),
    )
    test_db.commit()

    content = export_facilities(test_db.query(Facility).all())
    df = pd.read_excel(io.BytesIO(content), dtype=object)

    assert df.loc[0, "Tên cơ sở (*)"] == "Nhà hàng Sen"
    assert df.loc[0, "Ngày hết hạn GCN"] == "01/01/2027"

    # file xuất có thể nhập lại
    result = parse_facility_workbook(content, ["Nhà hàng"])
    assert result.valid_count == 1
    assert result.rows[0].data["certificate_expiry"] == date(2027, 1, 1)


def test_import_script_dry_run_then_import(test_db, temp_dir):
    from scripts.import_facilities import main

    path = temp_dir / "coso.xlsx"
    path.write_bytes(build_workbook([row(), row(**{"Tên cơ sở (*)": None})]))

    assert main([str(path), "--dry-run"]) == 0
    test_db.expire_all()
    assert test_db.query(Facility).count() == 0

    assert main([str(path)]) == 0
    test_db.expire_all()
    assert [f.name for f in test_db.query(Facility).all()] == ["Quán Phở Hà"]

    assert main([str(temp_dir / "khong_co.xlsx")]) == 1
