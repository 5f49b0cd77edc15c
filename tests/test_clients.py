"""
Tests for admin client management and the client profile.
"""

from app.models.client import Client
from app.models.project import Project


def _payload(**overrides):
    payload = {
        "name": "Carla Contact",
        "email": "Carla@Globex.com",
        "company_name": "Globex",
        "industry": "finance",
        "company_size": "51-200",
        "contact_person": {"name": "Carla Contact", "designation": "CTO"},
    }
    payload.update(overrides)
    return payload


def test_create_client(client, admin_headers):
    response = client.post("/api/admin/clients", json=_payload(), headers=admin_headers)
    duplicate = client.post("/api/admin/clients", json=_payload(), headers=admin_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["client_code"] == "CLI0001"
    assert data["email"] == "carla@globex.com"
    assert data["industry"] == "Finance"
    assert data["contact_person"]["designation"] == "CTO"
    assert duplicate.status_code == 400


def test_create_client_invalid_industry(client, admin_headers):
    response = client.post(
        "/api/admin/clients", json=_payload(industry="Piracy"), headers=admin_headers
    )

    assert response.status_code == 400


def test_list_clients_with_project_counts(client, admin_headers, make_client, db_session):
    # Arrange
    acme, _ = make_client(company_name="Acme Corp", industry="Technology")
    make_client(company_name="Initech", industry="Finance")
    db_session.add_all(
        [
            Project(project_code="PRJ0001", name="A", client_id=acme.id, status="in-progress"),
            Project(project_code="PRJ0002", name="B", client_id=acme.id, status="completed"),
        ]
    )
    db_session.commit()

    # Act
    searched = client.get("/api/admin/clients", params={"search": "acme"}, headers=admin_headers)
    finance = client.get(
        "/api/admin/clients", params={"industry": "FINANCE"}, headers=admin_headers
    )

    # Assert
    row = searched.json()["data"][0]
    assert searched.json()["total"] == 1
    assert row["total_projects"] == 2
    assert row["active_projects"] == 1
    assert row["completed_projects"] == 1
    assert [r["company_name"] for r in finance.json()["data"]] == ["Initech"]


def test_update_and_soft_delete_client(client, admin_headers, client_account, db_session):
    client_id = client_account[0].id

    updated = client.put(
        f"/api/admin/clients/{client_id}",
        json={"company_name": "Acme International", "rating": 4.2},
        headers=admin_headers,
    )
    deleted = client.delete(f"/api/admin/clients/{client_id}", headers=admin_headers)
    listed = client.get("/api/admin/clients", headers=admin_headers)

    assert updated.json()["data"]["company_name"] == "Acme International"
    assert updated.json()["data"]["rating"] == 4.2
    assert deleted.status_code == 200
    assert db_session.get(Client, client_id).is_active is False
    assert listed.json()["total"] == 0


def test_deactivated_client_cannot_log_in(client, admin_headers, client_account):
    client.delete(f"/api/admin/clients/{client_account[0].id}", headers=admin_headers)

    response = client.post(
        "/api/auth/login", json={"email": "client1@example.com", "password": "secret123"}
    )

    assert response.status_code == 401


def test_client_updates_own_profile(client, client_headers):
    response = client.put(
        "/api/client/profile",
        json={"company_website": "https://acme.example", "address": {"city": "Lisbon"}},
        headers=client_headers,
    )
    profile = client.get("/api/client/profile", headers=client_headers)

    assert response.status_code == 200
    assert profile.json()["data"]["company_website"] == "https://acme.example"
    assert profile.json()["data"]["address"]["city"] == "Lisbon"


def test_get_missing_client(client, admin_headers):
    response = client.get("/api/admin/clients/999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Client not found"


def test_update_client_rejects_null_company_name(client, admin_headers, client_account):
    response = client.put(
        f"/api/admin/clients/{client_account[0].id}",
        json={"company_name": None},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "company_name cannot be null"


def test_update_client_can_clear_industry(client, admin_headers, client_account):
    response = client.put(
        f"/api/admin/clients/{client_account[0].id}",
        json={"industry": None, "company_website": None},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["data"]["industry"] is None


def test_client_profile_rejects_null_address(client, client_headers):
    response = client.put("/api/client/profile", json={"address": None}, headers=client_headers)

    assert response.status_code == 400
