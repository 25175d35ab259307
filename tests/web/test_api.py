from __future__ import annotations

from datetime import date

import pytest

from attendance_tracker.core.enums import LeaveType, Role


def test_register_returns_created_user_without_secrets(client):
    resp = client.post(
        "/api/auth/register",
        json={"username": "zoe", "email": "zoe@x.com", "password": "secret123", "firstName": "Zoe"},
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["username"] == "zoe"
    assert body["data"]["role"] == "USER"
    assert "passwordHash" not in body["data"]
    assert "error" not in body


def test_duplicate_registration_is_409(client, make_user):
    make_user("yann")

    resp = client.post("/api/auth/register", json={"username": "yann", "email": "y2@x.com", "password": "secret123"})

    assert resp.status_code == 409
    body = resp.get_json()
    assert body["success"] is False
    assert body["errorCode"] == 4009
    assert "data" not in body


def test_login_failure_and_anonymous_access(client, make_user):
    make_user("xena")

    bad = client.post("/api/auth/login", json={"username": "xena", "password": "nope"})
    assert bad.status_code == 401
    assert bad.get_json()["errorCode"] == 4001

    anon = client.get("/api/users/profile")
    assert anon.status_code == 401


def test_login_then_logout(client, make_user, login):
    make_user("will")

    login("will")
    assert client.get("/api/users/profile").get_json()["data"]["username"] == "will"

    client.post("/api/auth/logout")
    assert client.get("/api/users/profile").status_code == 401


def test_login_accepts_email(client, make_user):
    make_user("vera")

    resp = client.post("/api/auth/login", json={"usernameOrEmail": "vera@example.com", "password": "secret123"})

    assert resp.status_code == 200


def test_disabled_user_loses_session(client, make_user, login, directory):
    admin = make_user("boss", role=Role.ADMIN)
    user = make_user("ursula")
    login("ursula")

    directory.toggle_enabled(acting_user_id=admin.user_id, target_id=user.user_id)

    assert client.get("/api/users/profile").status_code == 401


def test_admin_routes_require_admin(client, make_user, login):
    make_user("tess")
    login("tess")

    resp = client.get("/api/admin/users")

    assert resp.status_code == 403
    assert resp.get_json()["errorCode"] == 4003


def test_admin_cannot_disable_self(client, make_user, login):
    admin = make_user("sven", role=Role.ADMIN)
    login("sven")

    resp = client.put(f"/api/admin/users/{admin.user_id}/toggle-status")

    assert resp.status_code == 400
    assert resp.get_json()["errorCode"] == 4031


def test_admin_stats(client, make_user, login, workflow):
    make_user("rhea", role=Role.ADMIN)
    user = make_user("quin")
    workflow.request_leave(user.user_id, LeaveType.ANNUAL, date(2024, 4, 1), date(2024, 4, 2))
    login("rhea")

    data = client.get("/api/admin/stats").get_json()["data"]

    assert data["totalUsers"] == 2
    assert data["adminCount"] == 1
    assert data["pendingLeaves"] == 1


def test_mark_twice_is_conflict(client, make_user, login):
    make_user("pam")
    login("pam")

    first = client.post("/api/attendance/mark", json={"notes": "early"})
    assert first.status_code == 200
    assert first.get_json()["data"]["date"] == "2024-03-15"
    assert first.get_json()["data"]["checkInTime"] == "2024-03-15T09:30:00"

    second = client.post("/api/attendance/mark", json={"present": False})
    assert second.status_code == 409
    assert second.get_json()["errorCode"] == 4091

    status = client.get("/api/attendance/today-status").get_json()["data"]
    assert status == {"marked": True, "present": True, "checkedOut": False}


def test_my_records_page_shape(client, make_user, login, ledger):
    user = make_user("omar")
    for day in range(1, 13):
        ledger.mark_attendance(user.user_id, date(2024, 3, day), True)
    login("omar")

    data = client.get("/api/attendance/my-records").get_json()["data"]

    assert data["pageSize"] == 10
    assert data["totalElements"] == 12
    assert data["totalPages"] == 2
    assert data["first"] is True and data["hasNext"] is True
    assert data["content"][0]["date"] == "2024-03-12"


def test_bad_date_parameter_is_400(client, make_user, login):
    make_user("nell")
    login("nell")

    resp = client.get("/api/attendance/my-stats?startDate=03/01/2024")

    assert resp.status_code == 400
    assert resp.get_json()["errorCode"] == 4000


def test_range_requires_dates(client, make_user, login):
    make_user("moe")
    login("moe")

    assert client.get("/api/attendance/range?startDate=2024-03-01").status_code == 400


def test_users_cannot_read_each_others_attendance(client, make_user, login):
    other = make_user("lou")
    make_user("kit")
    login("kit")

    assert client.get(f"/api/attendance/user/{other.user_id}").status_code == 403
    assert client.get(f"/api/users/{other.user_id}").status_code == 403


def test_leave_flow_over_http(client, make_user, login):
    make_user("jade")
    make_user("ivan", role=Role.MANAGER)
    login("jade")

    created = client.post(
        "/api/leaves/request",
        json={"leaveType": "ANNUAL", "startDate": "2024-03-01", "endDate": "2024-03-05", "reason": "trip"},
    )
    assert created.status_code == 200
    leave = created.get_json()["data"]
    assert (leave["status"], leave["days"]) == ("PENDING", 5)

    overlap = client.post(
        "/api/leaves/request",
        json={"leaveType": "SICK", "startDate": "2024-03-04", "endDate": "2024-03-10"},
    )
    assert overlap.status_code == 400
    assert overlap.get_json()["errorCode"] == 4006

    assert client.get("/api/leaves/admin/pending").status_code == 403

    login("ivan")
    assert client.get("/api/leaves/admin/pending-count").get_json()["data"] == {"count": 1}
    approved = client.post(f"/api/leaves/admin/{leave['id']}/approve", json={"comment": "ok"})
    assert approved.get_json()["data"]["status"] == "APPROVED"
    assert approved.get_json()["data"]["approvedByName"] == "Ivan Tester"

    again = client.post(f"/api/leaves/admin/{leave['id']}/reject")
    assert again.status_code == 400
    assert again.get_json()["errorCode"] == 4007


def test_invalid_leave_range_over_http(client, make_user, login):
    make_user("hugo")
    login("hugo")

    resp = client.post(
        "/api/leaves/request",
        json={"leaveType": "ANNUAL", "startDate": "2024-01-10", "endDate": "2024-01-05"},
    )

    assert resp.status_code == 400
    assert resp.get_json()["errorCode"] == 4005


def test_unknown_route_uses_envelope(client):
    resp = client.get("/api/nothing-here")

    assert resp.status_code == 404
    body = resp.get_json()
    assert body["success"] is False
    assert body["errorCode"] == 4004


@pytest.mark.parametrize(
    "payload",
    [
        {"username": 123, "email": "num@x.com", "password": "secret123"},
        {"username": "num", "email": 5, "password": "secret123"},
        {"username": "num", "email": "num@x.com", "password": 12345678},
    ],
)
def test_register_rejects_non_string_fields(client, payload):
    resp = client.post("/api/auth/register", json=payload)

    assert resp.status_code == 400
    assert resp.get_json()["errorCode"] == 4000


@pytest.mark.parametrize(
    "payload",
    [
        {"username": 42, "password": "secret123"},
        {"username": "gail", "password": 12345678},
        {"usernameOrEmail": ["gail"], "password": "secret123"},
    ],
)
def test_login_with_non_string_fields_is_unauthorized(client, make_user, payload):
    make_user("gail")

    resp = client.post("/api/auth/login", json=payload)

    assert resp.status_code == 401
    assert resp.get_json()["errorCode"] == 4001


def test_change_password_with_non_string_fields(client, make_user, login):
    make_user("fred")
    login("fred")

    wrong_type_current = client.post(
        "/api/users/change-password",
        json={"currentPassword": 123456, "newPassword": "abcdef", "confirmPassword": "abcdef"},
    )
    assert wrong_type_current.status_code == 400

    wrong_type_new = client.post(
        "/api/users/change-password",
        json={"currentPassword": "secret123", "newPassword": 1234567, "confirmPassword": 1234567},
    )
    assert wrong_type_new.status_code == 400
    assert wrong_type_new.get_json()["errorCode"] == 4000
