"""
E2E tests cho cấu hình giao diện và loại hình cơ sở.

Priority: P1
"""

from pathlib import Path

import pytest

from attp.app.core.config import settings
from attp.app.services.site_config_service import DEFAULT_LOGO_URL


@pytest.mark.e2e
@pytest.mark.p1
def test_site_config_is_public(test_client, test_db):
    response = test_client.get("/api/settings/site-config")

    assert response.status_code == 200
    data = test_client.json_response(response)
    assert data["logo_url"] == DEFAULT_LOGO_URL
    assert data["logo_height"] == 40


@pytest.mark.e2e
@pytest.mark.p1
def test_admin_updates_and_resets_site_config(admin_client, test_db):
    """
    Given: admin đã đăng nhập
    When: cập nhật chiều cao logo, thử giá trị ngoài khoảng, rồi khôi phục mặc định
    Then: cấu hình đổi theo; giá trị ngoài 20-200 bị từ chối
    """
    response = admin_client.put("/api/settings/site-config", json={"logo_height": 72})
    assert response.status_code == 200
    assert admin_client.json_response(response)["logo_height"] == 72

    response = admin_client.put("/api/settings/site-config", json={"logo_height": 10})
    assert response.status_code == 400
    assert "logo_height" in admin_client.json_response(response)["fields"]

    data = admin_client.json_response(admin_client.get("/api/settings/site-config"))
    assert data["logo_height"] == 72

    response = admin_client.delete("/api/settings/site-config")
    assert response.status_code == 200
    assert admin_client.json_response(response)["logo_height"] == 40


@pytest.mark.e2e
@pytest.mark.p1
def test_upload_logo_flow(admin_client, test_db):
    """
    Given: admin upload file logo.png
    When: POST /api/settings/upload/logo
    Then:
    - File được ghi vào STORAGE_DIR và phục vụ qua /media/<tên file>
    - logo_url trong cấu hình trỏ tới file mới
    """
    response = admin_client.post(
        "/api/settings/upload/logo", files={"logo.png": b"\x89PNG\r\n\x1a\nfake"}
    )

    assert response.status_code == 200
    data = admin_client.json_response(response)
    url = data["url"]
    assert url.startswith("/media/logo_")
    assert data["config"]["logo_url"] == url
    assert (Path(settings.storage_dir) / url.removeprefix("/media/")).is_file()

    media = admin_client.get(url)
    assert media.status_code == 200
    assert admin_client.body_bytes(media) == b"\x89PNG\r\n\x1a\nfake"
    assert admin_client.header(media, "Content-Type") == "image/png"


@pytest.mark.e2e
@pytest.mark.p1
def test_staff_cannot_change_settings(staff_client, test_db):
    response = staff_client.put("/api/settings/site-config", json={"logo_height": 50})
    assert response.status_code == 403

    response = staff_client.post(
        "/api/settings/upload/logo", files={"logo.png": b"png"}
    )
    assert response.status_code == 403

    response = staff_client.get("/ui/settings")
    assert response.status_code == 403


@pytest.mark.e2e
@pytest.mark.p1
def test_facility_type_catalogue_flow(admin_client, test_db):
    """
    Given: admin đã đăng nhập
    When: thêm, đổi trạng thái và xoá loại hình
    Then: danh sách ?active=true chỉ chứa loại hình đang hoạt động; tên trùng bị từ chối
    """
    response = admin_client.post(
        "/api/facility-types", json={"name": "Nhà hàng", "description": "Phục vụ ăn uống"}
    )
    assert response.status_code == 201
    created = admin_client.json_response(response)

    response = admin_client.post("/api/facility-types", json={"name": "Nhà hàng"})
    assert response.status_code == 409

    response = admin_client.post("/api/facility-types", json={"name": "Tạp hóa"})
    assert response.status_code == 201

    response = admin_client.put(
        f"/api/facility-types/{created['id']}", json={"name": "Nhà hàng", "is_active": False}
    )
    assert response.status_code == 200

    active = admin_client.json_response(
        admin_client.get("/api/facility-types", params={"active": "true"})
    )
    assert [t["name"] for t in active] == ["Tạp hóa"]

    response = admin_client.delete(f"/api/facility-types/{created['id']}")
    assert response.status_code == 200
    all_types = admin_client.json_response(admin_client.get("/api/facility-types"))
    assert [t["name"] for t in all_types] == ["Tạp hóa"]


@pytest.mark.e2e
@pytest.mark.p1
def test_staff_cannot_edit_facility_types(staff_client, test_db):
    response = staff_client.post("/api/facility-types", json={"name": "Karaoke"})
    assert response.status_code == 403

    response = staff_client.get("/api/facility-types")
    assert response.status_code == 200
