"""
E2E tests cho đăng nhập, hồ sơ cá nhân và quản lý tài khoản.

Priority: P0
"""

import pytest

from attp.app.core.auth import read_session, verify_password
from attp.app.models.entities import Profile
from tests.utils.factories import create_test_profile


def _cookie_value(set_cookie: str) -> str:
    return set_cookie.split(";", 1)[0].split("=", 1)[1]


@pytest.mark.e2e
@pytest.mark.p0
def test_login_with_username_sets_session_cookie(test_client, staff_user):
    """
    Test Description: Đăng nhập bằng tên đăng nhập

    Given: tài khoản "canbo" / "canbo123"
    When: POST /api/auth/login
    Then:
    - Trả về thông tin user (không có password_hash)
    - Set-Cookie chứa phiên đã ký trỏ về đúng tài khoản
    """
    response = test_client.post(
        "/api/auth/login", json={"username": "canbo", "password": "canbo123"}
    )

    assert response.status_code == 200
    user = test_client.json_response(response)["user"]
    assert user["username"] == "canbo"
    assert "password_hash" not in user

    set_cookie = test_client.header(response, "Set-Cookie")
    assert set_cookie.startswith("attp_session=")
    assert "HttpOnly" in set_cookie
    assert read_session(_cookie_value(set_cookie)) == staff_user.id


@pytest.mark.e2e
@pytest.mark.p0
def test_login_with_email(test_client, test_db):
    create_test_profile(test_db, username="thanhtra", email="thanhtra@attp.vn", password="matkhau9")
    test_db.commit()

    response = test_client.post(
        "/api/auth/login", json={"email": "thanhtra@attp.vn", "password": "matkhau9"}
    )

    assert response.status_code == 200
    assert test_client.json_response(response)["user"]["username"] == "thanhtra"


@pytest.mark.e2e
@pytest.mark.p0
@pytest.mark.parametrize(
    "payload, error_code, message",
    [
        (
            {"username": "khongtontai", "password": "abc123"},
            "UNKNOWN_USERNAME",
            "Không tìm thấy tài khoản với tên đăng nhập này",
        ),
        (
            {"username": "canbo", "password": "saimatkhau"},
            "INVALID_CREDENTIALS",
            "Tên đăng nhập hoặc mật khẩu không đúng",
        ),
        (
            {"email": "khongco@attp.vn", "password": "abc123"},
            "INVALID_CREDENTIALS",
            "Email hoặc mật khẩu không đúng",
        ),
    ],
)
def test_login_errors(test_client, staff_user, payload, error_code, message):
    response = test_client.post("/api/auth/login", json=payload)

    assert response.status_code == 401
    data = test_client.json_response(response)
    assert data["error_code"] == error_code
    assert data["error"] == message
    assert test_client.header(response, "Set-Cookie") is None


@pytest.mark.e2e
@pytest.mark.p1
def test_logout_clears_cookie(staff_client):
    response = staff_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert "Max-Age=0" in staff_client.header(response, "Set-Cookie")


@pytest.mark.e2e
@pytest.mark.p0
def test_profile_and_password_flow(staff_client, test_db, staff_user):
    """
    Given: cán bộ đã đăng nhập
    When: cập nhật họ tên, đổi mật khẩu (sai xác nhận rồi đúng)
    Then: hồ sơ được cập nhật, mật khẩu mới có hiệu lực
    """
    response = staff_client.put("/api/account/profile", json={"full_name": "Phạm Thị D"})
    assert response.status_code == 200
    assert staff_client.json_response(response)["full_name"] == "Phạm Thị D"

    response = staff_client.get("/api/account/profile")
    assert staff_client.json_response(response)["full_name"] == "Phạm Thị D"

    response = staff_client.put(
        "/api/account/password",
        json={"new_password": "matkhaumoi", "confirm_password": "matkhaukhac"},
    )
    assert response.status_code == 400
    assert staff_client.json_response(response)["error"] == "Mật khẩu xác nhận không khớp"

    response = staff_client.put(
        "/api/account/password",
        json={"new_password": "abc", "confirm_password": "abc"},
    )
    assert response.status_code == 400
    assert staff_client.json_response(response)["error"] == "Mật khẩu phải có ít nhất 6 ký tự"

    response = staff_client.put(
        "/api/account/password",
        json={"new_password": "matkhaumoi", "confirm_password": "matkhaumoi"},
    )
    assert response.status_code == 200
    assert staff_client.json_response(response)["message"] == "Đổi mật khẩu thành công"

    test_db.expire_all()
    profile = test_db.get(Profile, staff_user.id)
    assert verify_password("matkhaumoi", profile.password_hash)


@pytest.mark.e2e
@pytest.mark.p0
def test_admin_manages_accounts(admin_client, test_db, admin_user):
    """
    Test Description: Admin tạo, xem, đặt lại mật khẩu và xoá tài khoản con

    Given: admin đã đăng nhập
    When: gọi lần lượt các API quản lý tài khoản
    Then:
    - Tài khoản con ghi nhận created_by là admin
    - Tên đăng nhập trùng bị từ chối (409)
    - Admin không tự xoá được chính mình
    """
    response = admin_client.post(
        "/api/accounts",
        json={
            "username": "canbo_xa",
            "password": "123456",
            "full_name": "Võ Văn E",
            "managed_area": "Xã Mỹ An",
        },
    )
    assert response.status_code == 201
    child = admin_client.json_response(response)
    assert child["role"] == "staff"
    assert child["created_by"] == str(admin_user.id)

    response = admin_client.post(
        "/api/accounts", json={"username": "canbo_xa", "password": "123456"}
    )
    assert response.status_code == 409

    response = admin_client.get("/api/accounts")
    assert [p["username"] for p in admin_client.json_response(response)] == ["canbo_xa"]

    response = admin_client.get(f"/api/accounts/{admin_user.id}/sub-accounts")
    assert [p["id"] for p in admin_client.json_response(response)] == [child["id"]]

    response = admin_client.put(
        f"/api/accounts/{child['id']}/password", json={"new_password": "doimatkhau"}
    )
    assert response.status_code == 200

    login = admin_client.post(
        "/api/auth/login", json={"username": "canbo_xa", "password": "doimatkhau"}
    )
    assert login.status_code == 200

    response = admin_client.delete(f"/api/accounts/{admin_user.id}")
    assert response.status_code == 400

    response = admin_client.delete(f"/api/accounts/{child['id']}")
    assert response.status_code == 200

    test_db.expire_all()
    assert test_db.query(Profile).filter(Profile.username == "canbo_xa").first() is None


@pytest.mark.e2e
@pytest.mark.p0
def test_staff_cannot_manage_accounts(staff_client, admin_user):
    response = staff_client.get("/api/accounts")
    assert response.status_code == 403

    response = staff_client.post(
        "/api/accounts", json={"username": "hacker", "password": "123456"}
    )
    assert response.status_code == 403

    response = staff_client.delete(f"/api/accounts/{admin_user.id}")
    assert response.status_code == 403


@pytest.mark.e2e
@pytest.mark.p1
def test_html_pages_require_login(test_client, test_db):
    response = test_client.get("/ui/facilities")

    assert response.status_code == 303
    assert test_client.header(response, "Location") == "/login"

    response = test_client.get("/login")
    assert response.status_code == 200
    assert "text/html" in test_client.header(response, "Content-Type")
