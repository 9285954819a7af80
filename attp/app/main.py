"""
Điểm vào chính của webapp quản lý ATTP (Robyn).

- Khởi tạo Robyn app
- Cấu hình DB, logging
- Render các trang HTML (Jinja2 + htmx) và đăng ký route API JSON.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from robyn import Robyn, Response, Request

from .core.config import settings
from .core.db import init_db, get_session
from .core.logging_config import setup_logging
from .core.auth import get_current_user, require_roles
from .core.error_handler import handle_errors
from .core.request_utils import path_uuid, query_param
from .api import accounts as accounts_api
from .api import dashboard as dashboard_api
from .api import facilities as facilities_api
from .api import facility_import as facility_import_api
from .api import facility_types as facility_types_api
from .api import inspections as inspections_api
from .api import settings as settings_api
from .models.entities import (
    FACILITY_STATUS_LABELS,
    MANAGEMENT_LEVEL_LABELS,
    RESULT_LABELS,
    TEAM_TYPE_LABELS,
    Profile,
)
from .services import facility_service, inspection_service
from .services.certificates import CERTIFICATE_STATUS_LABELS, utc_today
from .services.dashboard import get_dashboard_stats
from .services.facility_type_service import list_facility_types
from .services.site_config_service import get_site_config

BASE_DIR = Path(__file__).resolve().parent.parent.parent
TEMPLATES_DIR = BASE_DIR / "frontend" / "templates"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)
env.globals.update(
    app_name=settings.app_name,
    facility_status_labels=FACILITY_STATUS_LABELS,
    management_level_labels=MANAGEMENT_LEVEL_LABELS,
    result_labels=RESULT_LABELS,
    team_type_labels=TEAM_TYPE_LABELS,
    certificate_status_labels=CERTIFICATE_STATUS_LABELS,
)

app = Robyn(__file__)


def render_template(template_name: str, status_code: int = 200, **context: object) -> Response:
    """Helper render template Jinja2."""

    template = env.get_template(template_name)
    html = template.render(**context)
    return Response(
        status_code=status_code,
        headers={"Content-Type": "text/html; charset=utf-8"},
        description=html,
    )


def redirect(location: str) -> Response:
    return Response(status_code=303, headers={"Location": location}, description="")


def render_page(user: Profile, template_name: str, **context: object) -> Response:
    """Render trang trong layout chính (kèm user và cấu hình giao diện)."""

    with get_session() as db:
        site_config = get_site_config(db)
    return render_template(template_name, user=user, site_config=site_config, **context)


# ---------------------------------------------------------------------------
# Trang HTML
# ---------------------------------------------------------------------------

@app.get("/login")
@handle_errors
async def ui_login(request: Request) -> Response:  # type: ignore[override]
    """Trang đăng nhập."""

    if get_current_user(request) is not None:
        return redirect("/")
    with get_session() as db:
        site_config = get_site_config(db)
    return render_template("login.html", site_config=site_config)


def _dashboard_page(request: Request) -> Response:
    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    with get_session() as db:
        stats = get_dashboard_stats(db)
    return render_page(user, "dashboard.html", stats=stats)


@app.get("/")
@handle_errors
async def index(request: Request) -> Response:  # type: ignore[override]
    """Trang dashboard chính."""

    return _dashboard_page(request)


@app.get("/ui/dashboard")
@handle_errors
async def ui_dashboard(request: Request) -> Response:  # type: ignore[override]
    return _dashboard_page(request)


@app.get("/ui/facilities")
@handle_errors
async def ui_facilities(request: Request) -> Response:  # type: ignore[override]
    """Trang danh sách cơ sở (htmx target)."""

    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    with get_session() as db:
        types = list_facility_types(db, active_only=True)
    return render_page(user, "facilities/list.html", facility_types=types)


@app.get("/ui/facilities/table")
@handle_errors
async def ui_facilities_table(request: Request) -> Response:  # type: ignore[override]
    """Fragment bảng cơ sở, dùng cho htmx."""

    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    today = utc_today()
    with get_session() as db:
        facilities = facility_service.list_facilities(
            db,
            search=query_param(request, "search"),
            status=query_param(request, "status"),
            province_code=query_param(request, "province_code"),
            facility_type=query_param(request, "type"),
            today=today,
        )
        rows = [facility_service.serialize_facility(f, today) for f in facilities]
    return render_template("facilities/table.html", facilities=rows, user=user)


@app.get("/ui/facilities/:id")
@handle_errors
async def ui_facility_detail(request: Request) -> Response:  # type: ignore[override]
    """Trang chi tiết cơ sở (thông tin, GCN, bản đồ, lịch sử kiểm tra)."""

    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    with get_session() as db:
        facility = facility_service.get_facility(db, path_uuid(request))
        data = facility_service.serialize_facility(facility)
    return render_page(user, "facilities/detail.html", facility=data)


@app.get("/ui/facilities/:id/inspections")
@handle_errors
async def ui_facility_inspections(request: Request) -> Response:  # type: ignore[override]
    """Fragment lịch sử kiểm tra; chạy rà soát quá hạn khắc phục khi tải."""

    if get_current_user(request) is None:
        return redirect("/login")
    facility_id = path_uuid(request)
    with get_session() as db:
        inspections, report = inspection_service.load_history(db, facility_id)
        rows = [inspection_service.serialize_inspection(i) for i in inspections]
    return render_template(
        "inspections/history.html",
        facility_id=str(facility_id),
        inspections=rows,
        sweep=report,
    )


@app.get("/ui/certificates")
@handle_errors
async def ui_certificates(request: Request) -> Response:  # type: ignore[override]
    """Trang quản lý GCN."""

    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    return render_page(user, "certificates/list.html")


@app.get("/ui/facility-types")
@handle_errors
async def ui_facility_types(request: Request) -> Response:  # type: ignore[override]
    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    with get_session() as db:
        types = list_facility_types(db)
    return render_page(user, "facility_types/list.html", facility_types=types)


@app.get("/ui/account")
@handle_errors
async def ui_account(request: Request) -> Response:  # type: ignore[override]
    """Trang tài khoản cá nhân; admin thấy thêm phần quản lý tài khoản."""

    user = get_current_user(request)
    if user is None:
        return redirect("/login")
    return render_page(user, "accounts/index.html")


@app.get("/ui/settings")
@handle_errors
async def ui_settings(request: Request) -> Response:  # type: ignore[override]
    """Trang cấu hình giao diện (chỉ admin)."""

    if get_current_user(request) is None:
        return redirect("/login")
    user = require_roles(request, ["admin"])
    if not user:
        return render_template("forbidden.html", status_code=403)
    return render_page(user, "settings/index.html")


@app.get("/media/:name")
@handle_errors
async def media(request: Request) -> Response:  # type: ignore[override]
    return settings_api.serve_media(request)


# ---------------------------------------------------------------------------
# Auth & tài khoản
# ---------------------------------------------------------------------------

@app.post("/api/auth/login")
@handle_errors
async def api_login(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.login(request)


@app.post("/api/auth/logout")
@handle_errors
async def api_logout(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.logout(request)


@app.get("/api/account/profile")
@handle_errors
async def api_get_profile(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.get_profile(request)


@app.put("/api/account/profile")
@handle_errors
async def api_update_profile(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.update_profile(request)


@app.put("/api/account/password")
@handle_errors
async def api_change_password(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.change_password(request)


@app.get("/api/accounts")
@handle_errors
async def api_list_accounts(request: Request) -> Response:  # type: ignore[override]
    """API: Danh sách tài khoản (admin)."""
    return accounts_api.list_accounts(request)


@app.post("/api/accounts")
@handle_errors
async def api_create_account(request: Request) -> Response:  # type: ignore[override]
    """API: Tạo tài khoản (admin)."""
    return accounts_api.create_account(request)


@app.delete("/api/accounts/:id")
@handle_errors
async def api_delete_account(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.delete_account(request)


@app.put("/api/accounts/:id/password")
@handle_errors
async def api_reset_password(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.reset_password(request)


@app.get("/api/accounts/:id/sub-accounts")
@handle_errors
async def api_list_sub_accounts(request: Request) -> Response:  # type: ignore[override]
    return accounts_api.list_sub_accounts(request)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@app.get("/api/dashboard")
@handle_errors
async def api_dashboard(request: Request) -> Response:  # type: ignore[override]
    """API: Số liệu tổng quan."""
    return dashboard_api.get_dashboard(request)


# ---------------------------------------------------------------------------
# Cơ sở, GCN, import/export
# ---------------------------------------------------------------------------

@app.get("/api/facilities")
@handle_errors
async def api_list_facilities(request: Request) -> Response:  # type: ignore[override]
    """API: Danh sách cơ sở."""
    return facilities_api.list_facilities(request)


@app.post("/api/facilities")
@handle_errors
async def api_create_facility(request: Request) -> Response:  # type: ignore[override]
    """API: Thêm cơ sở."""
    return facilities_api.create_facility(request)


@app.get("/api/facilities/export")
@handle_errors
async def api_export_facilities(request: Request) -> Response:  # type: ignore[override]
    """API: Xuất Excel danh sách cơ sở."""
    return facility_import_api.export_facilities(request)


@app.get("/api/facilities/import/template")
@handle_errors
async def api_import_template(request: Request) -> Response:  # type: ignore[override]
    """API: Tải file mẫu import."""
    return facility_import_api.download_template(request)


@app.post("/api/facilities/import/preview")
@handle_errors
async def api_import_preview(request: Request) -> Response:  # type: ignore[override]
    """API: Xem trước kết quả kiểm tra file import."""
    return facility_import_api.preview_import(request)


@app.post("/api/facilities/import")
@handle_errors
async def api_import_facilities(request: Request) -> Response:  # type: ignore[override]
    """API: Import cơ sở từ Excel."""
    return facility_import_api.run_import(request)


@app.get("/api/facilities/:id")
@handle_errors
async def api_get_facility(request: Request) -> Response:  # type: ignore[override]
    return facilities_api.get_facility(request)


@app.put("/api/facilities/:id")
@handle_errors
async def api_update_facility(request: Request) -> Response:  # type: ignore[override]
    return facilities_api.update_facility(request)


@app.delete("/api/facilities/:id")
@handle_errors
async def api_delete_facility(request: Request) -> Response:  # type: ignore[override]
    """API: Xoá cơ sở (admin)."""
    return facilities_api.delete_facility(request)


@app.put("/api/facilities/:id/certificate")
@handle_errors
async def api_update_certificate(request: Request) -> Response:  # type: ignore[override]
    """API: Cập nhật GCN."""
    return facilities_api.update_certificate(request)


@app.put("/api/facilities/:id/location")
@handle_errors
async def api_update_location(request: Request) -> Response:  # type: ignore[override]
    """API: Cập nhật toạ độ."""
    return facilities_api.update_location(request)


@app.get("/api/certificates")
@handle_errors
async def api_list_certificates(request: Request) -> Response:  # type: ignore[override]
    """API: Danh sách GCN theo trạng thái."""
    return facilities_api.list_certificates(request)


# ---------------------------------------------------------------------------
# Kiểm tra
# ---------------------------------------------------------------------------

@app.get("/api/facilities/:id/inspections")
@handle_errors
async def api_list_inspections(request: Request) -> Response:  # type: ignore[override]
    """API: Lịch sử kiểm tra của cơ sở."""
    return inspections_api.list_facility_inspections(request)


@app.post("/api/facilities/:id/inspections")
@handle_errors
async def api_create_inspection(request: Request) -> Response:  # type: ignore[override]
    """API: Ghi nhận lần kiểm tra."""
    return inspections_api.create_inspection(request)


@app.post("/api/inspections/:id/remediated")
@handle_errors
async def api_mark_remediated(request: Request) -> Response:  # type: ignore[override]
    """API: Đánh dấu đã khắc phục."""
    return inspections_api.mark_remediated(request)


# ---------------------------------------------------------------------------
# Loại hình cơ sở
# ---------------------------------------------------------------------------

@app.get("/api/facility-types")
@handle_errors
async def api_list_facility_types(request: Request) -> Response:  # type: ignore[override]
    return facility_types_api.list_facility_types(request)


@app.post("/api/facility-types")
@handle_errors
async def api_create_facility_type(request: Request) -> Response:  # type: ignore[override]
    return facility_types_api.create_facility_type(request)


@app.put("/api/facility-types/:id")
@handle_errors
async def api_update_facility_type(request: Request) -> Response:  # type: ignore[override]
    return facility_types_api.update_facility_type(request)


@app.delete("/api/facility-types/:id")
@handle_errors
async def api_delete_facility_type(request: Request) -> Response:  # type: ignore[override]
    return facility_types_api.delete_facility_type(request)


# ---------------------------------------------------------------------------
# Cấu hình giao diện
# ---------------------------------------------------------------------------

@app.get("/api/settings/site-config")
@handle_errors
async def api_get_site_config(request: Request) -> Response:  # type: ignore[override]
    return settings_api.get_site_config(request)


@app.put("/api/settings/site-config")
@handle_errors
async def api_update_site_config(request: Request) -> Response:  # type: ignore[override]
    return settings_api.update_site_config(request)


@app.delete("/api/settings/site-config")
@handle_errors
async def api_reset_site_config(request: Request) -> Response:  # type: ignore[override]
    return settings_api.reset_site_config(request)


@app.post("/api/settings/upload/:kind")
@handle_errors
async def api_upload_asset(request: Request) -> Response:  # type: ignore[override]
    """API: Upload logo / ảnh nền đăng nhập."""
    return settings_api.upload_asset(request)


def setup() -> None:
    """Chạy các bước khởi tạo khi start app."""

    setup_logging()
    init_db()


if __name__ == "__main__":
    setup()
    app.start(host=settings.host, port=settings.port)
