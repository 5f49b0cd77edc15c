"""
Tests for registration, login and token handling.
"""

from datetime import timedelta

from sqlmodel import select

from app.core.security import create_access_token
from app.models.employee import Employee


def test_register_employee_creates_profile_with_code(client, db_session):
    # Act
    response = client.post(
        "/api/auth/register",
        json={
            "name": "Jane Doe",
            "email": "Jane.Doe@Example.com",
            "password": "secret123",
            "role": "employee",
            "department": "design",
        },
    )

    # Assert
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token"]
    assert body["data"]["user"]["email"] == "jane.doe@example.com"
    assert body["data"]["user"]["role"] == "employee"

    employee = db_session.exec(select(Employee)).one()
    assert employee.employee_code == "EMP0001"
    assert employee.department == "Design"
    assert body["data"]["profile_id"] == employee.id


def test_register_rejects_duplicate_email(client, employee):
    response = client.post(
        "/api/auth/register",
        json={"name": "Someone", "email": employee[1].email, "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_first_admin_may_self_register_but_not_the_second(client):
    first = client.post(
        "/api/auth/register",
        json={"name": "Root", "email": "root@example.com", "password": "secret123", "role": "admin"},
    )
    second = client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "other@example.com", "password": "secret123", "role": "admin"},
    )

    assert first.status_code == 201
    assert second.status_code == 403


def test_register_validation_error_is_400(client):
    response = client.post(
        "/api/auth/register", json={"name": "X", "email": "bad", "password": "1"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"]


def test_login_and_me(client, employee):
    # Act
    login = client.post(
        "/api/auth/login", json={"email": "EMPLOYEE1@example.com", "password": "secret123"}
    )

    # Assert
    assert login.status_code == 200
    token = login.json()["data"]["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    data = me.json()["data"]
    assert data["user"]["name"] == "Eve Employee"
    assert data["profile"]["employee_code"] == "EMP0001"


def test_login_wrong_password(client, employee):
    response = client.post(
        "/api/auth/login", json={"email": employee[1].email, "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_login_deactivated_account(client, db_session, employee):
    # Arrange
    _, user = employee
    user.is_active = False
    db_session.add(user)
    db_session.commit()

    # Act
    response = client.post(
        "/api/auth/login", json={"email": user.email, "password": "secret123"}
    )

    # Assert
    assert response.status_code == 401


def test_missing_and_expired_tokens(client, employee):
    missing = client.get("/api/auth/verify")
    expired = client.get(
        "/api/auth/verify",
        headers={
            "Authorization": f"Bearer {create_access_token(employee[1], timedelta(minutes=-1))}"
        },
    )

    assert missing.status_code == 401
    assert missing.json()["message"] == "Not authorized, no token"
    assert expired.status_code == 401
    assert expired.json()["message"] == "Token has expired"


def test_update_password(client, employee, headers_for):
    headers = headers_for(employee[1])

    wrong = client.put(
        "/api/auth/update-password",
        headers=headers,
        json={"current_password": "nope", "new_password": "newsecret"},
    )
    changed = client.put(
        "/api/auth/update-password",
        headers=headers,
        json={"current_password": "secret123", "new_password": "newsecret"},
    )
    login = client.post(
        "/api/auth/login", json={"email": employee[1].email, "password": "newsecret"}
    )

    assert wrong.status_code == 400
    assert changed.status_code == 200
    assert login.status_code == 200


def test_role_guard_rejects_other_roles(client, employee_headers):
    response = client.get("/api/admin/employees", headers=employee_headers)

    assert response.status_code == 403


def test_account_timestamps_round_trip_as_naive_datetimes(db_session, employee):
    employee_row, user = employee
    db_session.expire_all()

    stored = db_session.get(Employee, employee_row.id)

    assert stored.created_at.tzinfo is None
    assert stored.joining_date is not None
    assert user.created_at.tzinfo is None
