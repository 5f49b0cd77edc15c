"""
Tests for daily reports and the admin report endpoints.
"""

from datetime import date, datetime, timedelta

from sqlmodel import select

from app.models.notification import Notification
from app.models.task import Task


def _submit(client, headers, **overrides):
    payload = {
        "tasks_completed": [{"title": "Login form", "hours_spent": 3}],
        "planned_for_tomorrow": ["Signup form"],
        "achievements": "Finished login",
        "total_hours_worked": 7.5,
        "productivity_rating": 4,
        "mood": "Good",
    }
    payload.update(overrides)
    return client.post("/api/employee/reports/daily", json=payload, headers=headers)


def test_submit_daily_report_once_per_day(client, employee_headers, admin_user, db_session):
    # Act
    first = _submit(client, employee_headers)
    second = _submit(client, employee_headers)
    future = _submit(
        client,
        employee_headers,
        report_date=(date.today() + timedelta(days=1)).isoformat(),
    )

    # Assert
    assert first.status_code == 201
    data = first.json()["data"]
    assert data["report_code"] == "RPT00001"
    assert data["report_date"] == date.today().isoformat()
    assert data["mood"] == "good"
    assert data["status"] == "submitted"
    assert second.status_code == 400
    assert future.status_code == 400

    admin_inbox = db_session.exec(select(Notification).where(Notification.role == "admin")).all()
    assert [n.title for n in admin_inbox] == ["Daily report submitted"]


def test_report_rating_is_bounded(client, employee_headers):
    response = _submit(client, employee_headers, productivity_rating=9)

    assert response.status_code == 400


def test_employee_edits_until_reviewed(client, employee_headers, admin_headers):
    report = _submit(client, employee_headers).json()["data"]
    url = f"/api/employee/reports/{report['id']}"

    edited = client.put(url, json={"blockers": "Waiting on API keys"}, headers=employee_headers)
    client.put(
        f"/api/admin/reports/daily/{report['id']}/review",
        json={"status": "reviewed"},
        headers=admin_headers,
    )
    locked = client.put(url, json={"blockers": "None"}, headers=employee_headers)

    assert edited.json()["data"]["blockers"] == "Waiting on API keys"
    assert locked.status_code == 400


def test_admin_lists_and_reviews_reports(
    client, admin_headers, employee, employee_headers, make_employee, headers_for, db_session
):
    # Arrange
    _, designer = make_employee(name="Dana Designer", department="Design")
    mine = _submit(client, employee_headers).json()["data"]
    _submit(
        client,
        headers_for(designer),
        report_date=(date.today() - timedelta(days=1)).isoformat(),
    )

    # Act
    everyone = client.get("/api/admin/reports/daily", headers=admin_headers)
    design = client.get(
        "/api/admin/reports/daily", params={"department": "design"}, headers=admin_headers
    )
    submitted_in_submit_state = client.put(
        f"/api/admin/reports/daily/{mine['id']}/review",
        json={"status": "submitted"},
        headers=admin_headers,
    )
    approved = client.put(
        f"/api/admin/reports/daily/{mine['id']}/review",
        json={"status": "approved", "feedback": "Great progress"},
        headers=admin_headers,
    )
    approved_only = client.get(
        "/api/admin/reports/daily", params={"status": "approved"}, headers=admin_headers
    )

    # Assert
    assert everyone.json()["total"] == 2
    assert everyone.json()["data"][0]["id"] == mine["id"]
    assert [row["employee"]["name"] for row in design.json()["data"]] == ["Dana Designer"]
    assert submitted_in_submit_state.status_code == 400
    data = approved.json()["data"]
    assert data["status"] == "approved"
    assert data["reviewer_feedback"] == "Great progress"
    assert data["reviewed_at"] is not None
    assert approved_only.json()["total"] == 1

    note = db_session.exec(
        select(Notification).where(Notification.recipient_id == employee[1].id)
    ).one()
    assert note.type == "success"
    assert note.message == "Great progress"


def test_get_missing_daily_report(client, admin_headers):
    response = client.get("/api/admin/reports/daily/404", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Report not found"


def test_performance_report_endpoint(client, admin_headers, employee, db_session):
    db_session.add_all(
        [
            Task(task_code="TSK0001", title="Done", assigned_to=employee[0].id,
                 status="completed", completed_at=datetime(2026, 3, 3, 10, 0),
                 created_at=datetime(2026, 3, 2, 9, 0)),
            Task(task_code="TSK0002", title="Todo", assigned_to=employee[0].id,
                 created_at=datetime(2026, 3, 2, 9, 0)),
            Task(task_code="TSK0003", title="Old", assigned_to=employee[0].id,
                 created_at=datetime(2025, 12, 1, 9, 0)),
        ]
    )
    db_session.commit()

    response = client.get(
        "/api/admin/reports/performance",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=admin_headers,
    )
    inverted = client.get(
        "/api/admin/reports/performance",
        params={"start_date": "2026-03-31", "end_date": "2026-03-01"},
        headers=admin_headers,
    )

    row = response.json()["data"]["employees"][0]
    assert row["employee"]["name"] == "Eve Employee"
    assert row["total_tasks"] == 2
    assert row["completed"] == 1
    assert row["completion_rate"] == 50.0
    assert inverted.status_code == 400


def test_report_edit_rejects_null_lists(client, employee_headers):
    report = _submit(client, employee_headers).json()["data"]

    rejected = client.put(
        f"/api/employee/reports/{report['id']}",
        json={"tasks_completed": None},
        headers=employee_headers,
    )
    cleared = client.put(
        f"/api/employee/reports/{report['id']}",
        json={"mood": None, "productivity_rating": None},
        headers=employee_headers,
    )

    assert rejected.status_code == 400
    assert cleared.status_code == 200
    assert cleared.json()["data"]["mood"] is None
