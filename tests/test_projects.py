"""
Tests for admin project management and the client project portal.
"""

import pytest
from sqlmodel import select

from app.models.notification import Notification
from app.models.project import Project


@pytest.fixture
def project_payload(client_account, make_employee):
    manager, _ = make_employee(name="Manny Manager")
    developer, _ = make_employee(name="Dev One")
    return {
        "name": "Website Revamp",
        "description": "Rebuild the marketing site",
        "client_id": client_account[0].id,
        "project_manager_id": manager.id,
        "team": [{"employee_id": developer.id, "role": "developer"}],
        "priority": "High",
        "start_date": "2026-01-01",
        "end_date": "2026-06-30",
        "budget": 10000,
    }


def _create(client, admin_headers, payload):
    response = client.post("/api/admin/projects", json=payload, headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_project_populates_relations_and_notifies_client(
    client, admin_headers, project_payload, client_account, db_session
):
    # Act
    project = _create(client, admin_headers, project_payload)

    # Assert
    assert project["project_code"] == "PRJ0001"
    assert project["priority"] == "high"
    assert project["status"] == "planning"
    assert project["client"]["company_name"] == "Acme Corp"
    assert project["project_manager"]["name"] == "Manny Manager"
    assert [member["employee"]["name"] for member in project["team"]] == ["Dev One"]

    notifications = db_session.exec(
        select(Notification).where(Notification.recipient_id == client_account[1].id)
    ).all()
    assert len(notifications) == 1
    assert notifications[0].type == "project"


def test_create_project_rejects_inverted_dates(client, admin_headers, project_payload):
    project_payload["end_date"] = "2025-12-01"

    response = client.post("/api/admin/projects", json=project_payload, headers=admin_headers)

    assert response.status_code == 400


def test_create_project_unknown_client(client, admin_headers, project_payload):
    project_payload["client_id"] = 999

    response = client.post("/api/admin/projects", json=project_payload, headers=admin_headers)

    assert response.status_code == 400


def test_completing_a_project_sets_progress_and_end_date(
    client, admin_headers, project_payload
):
    project = _create(client, admin_headers, project_payload)

    response = client.put(
        f"/api/admin/projects/{project['id']}",
        json={"status": "completed"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["progress"] == 100
    assert data["actual_end_date"] is not None


def test_assign_team_adds_and_replaces(client, admin_headers, project_payload, make_employee):
    # Arrange
    project = _create(client, admin_headers, project_payload)
    newcomer, _ = make_employee(name="New Tester")

    # Act
    added = client.post(
        f"/api/admin/projects/{project['id']}/assign",
        json={"members": [{"employee_id": newcomer.id, "role": "Tester"}]},
        headers=admin_headers,
    )
    replaced = client.post(
        f"/api/admin/projects/{project['id']}/assign",
        json={"members": [{"employee_id": newcomer.id, "role": "Team Lead"}], "replace": True},
        headers=admin_headers,
    )

    # Assert
    assert len(added.json()["data"]["team"]) == 2
    team = replaced.json()["data"]["team"]
    assert len(team) == 1
    assert team[0]["role"] == "Team Lead"


def test_list_projects_filters_and_soft_delete(client, admin_headers, project_payload):
    project = _create(client, admin_headers, project_payload)
    _create(client, admin_headers, {**project_payload, "name": "Mobile App", "priority": "low"})

    high = client.get("/api/admin/projects", params={"priority": "high"}, headers=admin_headers)
    client.delete(f"/api/admin/projects/{project['id']}", headers=admin_headers)
    remaining = client.get("/api/admin/projects", headers=admin_headers)

    assert high.json()["total"] == 1
    assert [row["name"] for row in remaining.json()["data"]] == ["Mobile App"]


def test_milestones_and_stats(client, admin_headers, project_payload):
    project = _create(client, admin_headers, project_payload)

    created = client.post(
        f"/api/admin/projects/{project['id']}/milestones",
        json={"name": "Design sign-off", "due_date": "2026-02-01"},
        headers=admin_headers,
    )
    milestone_id = created.json()["data"]["id"]
    completed = client.put(
        f"/api/admin/projects/{project['id']}/milestones/{milestone_id}",
        json={"status": "completed"},
        headers=admin_headers,
    )
    stats = client.get(f"/api/admin/projects/{project['id']}/stats", headers=admin_headers)
    timeline = client.get(f"/api/admin/projects/{project['id']}/timeline", headers=admin_headers)

    assert created.status_code == 201
    assert completed.json()["data"]["completed_at"] is not None
    assert stats.json()["data"]["team_size"] == 1
    assert stats.json()["data"]["total_tasks"] == 0
    assert any(entry["type"] == "milestone" for entry in timeline.json()["data"])


def test_client_requests_project(client, client_headers, admin_user, db_session):
    # Act
    response = client.post(
        "/api/client/projects",
        json={"name": "Data Warehouse", "description": "Consolidate reporting", "budget": 5000},
        headers=client_headers,
    )

    # Assert
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["is_client_request"] is True
    assert data["status"] == "planning"
    assert data["project_manager"] is None

    admin_inbox = db_session.exec(
        select(Notification).where(Notification.role == "admin")
    ).all()
    assert [n.title for n in admin_inbox] == ["New project request"]


def test_client_sees_only_own_projects(
    client, admin_headers, project_payload, make_client, headers_for
):
    project = _create(client, admin_headers, project_payload)
    _, other_user = make_client(company_name="Other Co")

    response = client.get(
        f"/api/client/projects/{project['id']}", headers=headers_for(other_user)
    )

    assert response.status_code == 404


def test_client_feedback_updates_rating(
    client, admin_headers, project_payload, client_headers, client_account, db_session
):
    project = _create(client, admin_headers, project_payload)

    for rating in (5, 4):
        response = client.post(
            f"/api/client/projects/{project['id']}/feedback",
            json={"rating": rating, "comment": "Going well"},
            headers=client_headers,
        )
        assert response.status_code == 201

    listed = client.get(f"/api/client/projects/{project['id']}/feedback", headers=client_headers)
    db_session.refresh(client_account[0])

    assert len(listed.json()["data"]) == 2
    assert client_account[0].rating == 4.5


def test_client_approves_completed_milestone_only(
    client, admin_headers, project_payload, client_headers
):
    project = _create(client, admin_headers, project_payload)
    milestone = client.post(
        f"/api/admin/projects/{project['id']}/milestones",
        json={"name": "Beta"},
        headers=admin_headers,
    ).json()["data"]
    url = f"/api/client/projects/{project['id']}/milestones/{milestone['id']}/approve"

    too_early = client.put(url, headers=client_headers)
    client.put(
        f"/api/admin/projects/{project['id']}/milestones/{milestone['id']}",
        json={"status": "completed"},
        headers=admin_headers,
    )
    approved = client.put(url, headers=client_headers)

    assert too_early.status_code == 400
    assert approved.status_code == 200
    assert approved.json()["data"]["client_approved"] is True


def test_client_progress_and_message(client, admin_headers, project_payload, client_headers):
    project = _create(client, admin_headers, project_payload)

    progress = client.get(
        f"/api/client/projects/{project['id']}/progress", headers=client_headers
    )
    message = client.post(
        f"/api/client/projects/{project['id']}/send-to-admin",
        json={"subject": "Timeline", "message": "Can we move the launch?"},
        headers=client_headers,
    )

    assert progress.json()["data"]["project_code"] == project["project_code"]
    assert message.status_code == 200
    assert message.json()["success"] is True


def test_project_stored_codes_are_unique(client, admin_headers, project_payload, db_session):
    for name in ("One", "Two", "Three"):
        _create(client, admin_headers, {**project_payload, "name": name})

    codes = [project.project_code for project in db_session.exec(select(Project)).all()]

    assert sorted(codes) == ["PRJ0001", "PRJ0002", "PRJ0003"]


def test_update_project_rejects_null_for_required_fields(
    client, admin_headers, project_payload
):
    project = _create(client, admin_headers, project_payload)

    for field in ("name", "client_id", "status", "budget"):
        response = client.put(
            f"/api/admin/projects/{project['id']}", json={field: None}, headers=admin_headers
        )
        assert response.status_code == 400, field
        assert response.json()["message"] == f"{field} cannot be null"

    cleared = client.put(
        f"/api/admin/projects/{project['id']}", json={"end_date": None}, headers=admin_headers
    )
    assert cleared.status_code == 200
    assert cleared.json()["data"]["end_date"] is None


def test_update_milestone_rejects_null_name(client, admin_headers, project_payload):
    project = _create(client, admin_headers, project_payload)
    created = client.post(
        f"/api/admin/projects/{project['id']}/milestones",
        json={"name": "Kickoff"},
        headers=admin_headers,
    )

    response = client.put(
        f"/api/admin/projects/{project['id']}/milestones/{created.json()['data']['id']}",
        json={"name": None},
        headers=admin_headers,
    )

    assert response.status_code == 400
