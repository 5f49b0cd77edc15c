"""
Tests for meeting scheduling across the three portals.
"""

from sqlmodel import select

from app.models.meeting import Meeting
from app.models.notification import Notification


def _meeting(**overrides):
    payload = {
        "title": "Sprint planning",
        "meeting_type": "Team",
        "start_time": "2026-03-02T10:00:00",
        "end_time": "2026-03-02T11:30:00",
        "agenda": ["Backlog", "Estimates"],
    }
    payload.update(overrides)
    return payload


def test_admin_schedules_meeting_and_invites(client, admin_headers, employee, db_session):
    # Act
    response = client.post(
        "/api/meetings/admin",
        json=_meeting(participant_ids=[employee[1].id]),
        headers=admin_headers,
    )

    # Assert
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["meeting_code"] == "MTG00001"
    assert data["duration_minutes"] == 90
    assert data["organizer_name"] == "Ada Admin"
    statuses = {p["name"]: p["status"] for p in data["participants"]}
    assert statuses == {"Ada Admin": "accepted", "Eve Employee": "invited"}

    invite = db_session.exec(
        select(Notification).where(Notification.recipient_id == employee[1].id)
    ).one()
    assert invite.title == "Meeting scheduled"
    assert invite.link == f"/employee/meetings/{data['id']}"


def test_schedule_rejects_unknown_participant(client, admin_headers):
    response = client.post(
        "/api/meetings/admin", json=_meeting(participant_ids=[999]), headers=admin_headers
    )

    assert response.status_code == 400


def test_schedule_rejects_inverted_window(client, admin_headers):
    response = client.post(
        "/api/meetings/admin",
        json=_meeting(end_time="2026-03-02T09:00:00"),
        headers=admin_headers,
    )

    assert response.status_code == 400


def test_employee_sees_and_answers_invitation(
    client, admin_headers, employee, employee_headers, make_employee, headers_for
):
    # Arrange
    meeting = client.post(
        "/api/meetings/admin",
        json=_meeting(participant_ids=[employee[1].id]),
        headers=admin_headers,
    ).json()["data"]
    _, outsider = make_employee(name="Not Invited")

    # Act
    listed = client.get("/api/meetings/employee", headers=employee_headers)
    accepted = client.patch(
        f"/api/meetings/employee/{meeting['id']}/status",
        json={"status": "Accepted"},
        headers=employee_headers,
    )
    hidden = client.get(
        f"/api/meetings/employee/{meeting['id']}", headers=headers_for(outsider)
    )
    bad_status = client.patch(
        f"/api/meetings/employee/{meeting['id']}/status",
        json={"status": "attended"},
        headers=employee_headers,
    )

    # Assert
    assert listed.json()["total"] == 1
    answered = {p["name"]: p["status"] for p in accepted.json()["data"]["participants"]}
    assert answered["Eve Employee"] == "accepted"
    assert hidden.status_code == 404
    assert bad_status.status_code == 400


def test_admin_cancel_keeps_record(client, admin_headers, employee, employee_headers, db_session):
    meeting = client.post(
        "/api/meetings/admin",
        json=_meeting(participant_ids=[employee[1].id]),
        headers=admin_headers,
    ).json()["data"]

    cancelled = client.delete(
        f"/api/meetings/admin/{meeting['id']}",
        params={"reason": "Clash"},
        headers=admin_headers,
    )
    twice = client.delete(f"/api/meetings/admin/{meeting['id']}", headers=admin_headers)
    respond = client.patch(
        f"/api/meetings/employee/{meeting['id']}/status",
        json={"status": "accepted"},
        headers=employee_headers,
    )

    assert cancelled.status_code == 200
    stored = db_session.get(Meeting, meeting["id"])
    db_session.refresh(stored)
    assert stored.status == "cancelled"
    assert stored.cancellation_reason == "Clash"
    assert twice.status_code == 400
    assert respond.status_code == 400


def test_minutes_complete_the_meeting(client, admin_headers, employee):
    meeting = client.post(
        "/api/meetings/admin",
        json=_meeting(participant_ids=[employee[1].id]),
        headers=admin_headers,
    ).json()["data"]

    response = client.post(
        f"/api/meetings/admin/{meeting['id']}/minutes",
        json={
            "discussion": "Agreed on sprint scope",
            "decisions": ["Ship login first"],
            "action_items": [{"task": "Draft stories", "assigned_to": employee[1].id}],
        },
        headers=admin_headers,
    )

    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["minutes_decisions"] == ["Ship login first"]
    assert data["minutes_action_items"][0]["task"] == "Draft stories"


def test_client_meeting_invites_all_admins(
    client, client_headers, client_account, admin_user, db_session
):
    # Act
    response = client.post(
        "/api/meetings/client",
        json=_meeting(title="Kickoff", meeting_type="client"),
        headers=client_headers,
    )

    # Assert
    assert response.status_code == 201
    names = {p["name"] for p in response.json()["data"]["participants"]}
    assert names == {"Client Contact 1", "Ada Admin"}
    assert db_session.exec(
        select(Notification).where(Notification.recipient_id == admin_user.id)
    ).first() is not None


def test_only_organizer_client_can_cancel(
    client, admin_headers, client_account, client_headers
):
    meeting = client.post(
        "/api/meetings/admin",
        json=_meeting(participant_ids=[client_account[1].id], meeting_type="client"),
        headers=admin_headers,
    ).json()["data"]

    response = client.delete(f"/api/meetings/client/{meeting['id']}", headers=client_headers)

    assert response.status_code == 403


def test_list_filters_by_status(client, admin_headers):
    client.post("/api/meetings/admin", json=_meeting(), headers=admin_headers)
    second = client.post(
        "/api/meetings/admin", json=_meeting(title="Retro"), headers=admin_headers
    ).json()["data"]
    client.delete(f"/api/meetings/admin/{second['id']}", headers=admin_headers)

    scheduled = client.get(
        "/api/meetings/admin", params={"status": "scheduled"}, headers=admin_headers
    )
    searched = client.get("/api/meetings/admin", params={"search": "retro"}, headers=admin_headers)

    assert scheduled.json()["total"] == 1
    assert [row["title"] for row in searched.json()["data"]] == ["Retro"]


def test_update_meeting_rejects_null_start_time(client, admin_headers):
    meeting = client.post("/api/meetings/admin", json=_meeting(), headers=admin_headers)

    response = client.put(
        f"/api/meetings/admin/{meeting.json()['data']['id']}",
        json={"start_time": None},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "start_time cannot be null"
