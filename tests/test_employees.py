"""
Tests for admin employee management.
"""

import pytest

from app.models.employee import Employee
from app.models.user import User


def _payload(**overrides):
    payload = {
        "name": "John Smith",
        "email": "john.smith@example.com",
        "designation": "Backend Engineer",
        "department": "development",
        "salary": 50000,
        "skills": ["python", "sql"],
        "address": {"city": "Colombo", "country": "Sri Lanka"},
    }
    payload.update(overrides)
    return payload


def test_create_employee_assigns_sequential_codes(client, admin_headers):
    # Act
    first = client.post("/api/admin/employees", json=_payload(), headers=admin_headers)
    second = client.post(
        "/api/admin/employees",
        json=_payload(name="Mary Major", email="mary@example.com"),
        headers=admin_headers,
    )

    # Assert
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["data"]["employee_code"] == "EMP0001"
    assert second.json()["data"]["employee_code"] == "EMP0002"
    assert first.json()["data"]["department"] == "Development"
    assert first.json()["data"]["address"]["city"] == "Colombo"


def test_create_employee_with_unknown_manager(client, admin_headers):
    response = client.post(
        "/api/admin/employees", json=_payload(reporting_to=999), headers=admin_headers
    )

    assert response.status_code == 400


def test_create_employee_invalid_department(client, admin_headers):
    response = client.post(
        "/api/admin/employees", json=_payload(department="Astrology"), headers=admin_headers
    )

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_list_employees_search_and_department(client, admin_headers, make_employee):
    # Arrange
    make_employee(name="Alice Designer", department="Design")
    make_employee(name="Bob Builder", department="Development")
    make_employee(name="Carol Coder", department="Development")

    # Act
    by_department = client.get(
        "/api/admin/employees", params={"department": "development"}, headers=admin_headers
    )
    by_search = client.get(
        "/api/admin/employees", params={"search": "alice"}, headers=admin_headers
    )
    paged = client.get(
        "/api/admin/employees", params={"page": 2, "limit": 2}, headers=admin_headers
    )

    # Assert
    assert by_department.json()["total"] == 2
    assert [row["name"] for row in by_search.json()["data"]] == ["Alice Designer"]
    assert paged.json()["count"] == 1
    assert paged.json()["pages"] == 2


def test_update_employee_merges_address_and_updates_user(
    client, admin_headers, make_employee, db_session
):
    # Arrange
    employee, user = make_employee(address={"city": "Kandy", "street": "Main St"})

    # Act
    response = client.put(
        f"/api/admin/employees/{employee.id}",
        json={"name": "Renamed Person", "address": {"city": "Galle"}},
        headers=admin_headers,
    )

    # Assert
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Renamed Person"
    assert data["address"]["city"] == "Galle"
    assert data["address"]["street"] == "Main St"
    db_session.refresh(user)
    assert user.name == "Renamed Person"


def test_employee_cannot_report_to_themselves(client, admin_headers, employee):
    response = client.put(
        f"/api/admin/employees/{employee[0].id}",
        json={"reporting_to": employee[0].id},
        headers=admin_headers,
    )

    assert response.status_code == 400


def test_delete_employee_is_soft(client, admin_headers, employee, db_session):
    # Act
    response = client.delete(f"/api/admin/employees/{employee[0].id}", headers=admin_headers)

    # Assert
    assert response.status_code == 200
    stored = db_session.get(Employee, employee[0].id)
    db_session.refresh(stored)
    assert stored is not None
    assert stored.is_active is False
    assert db_session.get(User, stored.user_id).is_active is False

    listed = client.get("/api/admin/employees", headers=admin_headers)
    inactive = client.get(
        "/api/admin/employees", params={"status": "inactive"}, headers=admin_headers
    )
    assert listed.json()["total"] == 0
    assert inactive.json()["total"] == 1


def test_get_missing_employee(client, admin_headers):
    response = client.get("/api/admin/employees/12345", headers=admin_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Employee not found"}


@pytest.mark.parametrize("field", ["name", "designation", "department", "address"])
def test_update_employee_rejects_null_for_required_fields(
    client, admin_headers, employee, db_session, field
):
    # Act
    response = client.put(
        f"/api/admin/employees/{employee[0].id}", json={field: None}, headers=admin_headers
    )

    # Assert
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == f"{field} cannot be null"
    db_session.refresh(employee[1])
    assert employee[1].name == "Eve Employee"


def test_update_employee_allows_clearing_optional_fields(client, admin_headers, employee):
    response = client.put(
        f"/api/admin/employees/{employee[0].id}",
        json={"phone": None, "date_of_birth": None},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["phone"] is None


def test_employee_profile_rejects_null_name(client, employee_headers):
    response = client.put("/api/employee/profile", json={"name": None}, headers=employee_headers)

    assert response.status_code == 400
