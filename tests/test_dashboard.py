"""
Tests for the admin, employee and client dashboards and company settings.
"""

from datetime import date, datetime, timedelta

import pytest

from app.core.dashboard_service import admin_dashboard, format_time_ago
from app.models.attendance import Attendance
from app.models.project import Project
from app.models.task import Task

NOW = datetime(2026, 3, 2, 12, 0, 0)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=45), "45 minutes ago"),
        (timedelta(hours=2), "2 hours ago"),
        (timedelta(days=1, hours=3), "1 day ago"),
        (timedelta(days=65), "2 months ago"),
        (timedelta(days=800), "2 years ago"),
    ],
)
def test_format_time_ago(delta, expected):
    assert format_time_ago(NOW - delta, NOW) == expected


def test_format_time_ago_without_timestamp():
    assert format_time_ago(None, NOW) == "just now"


def test_admin_dashboard_counts(db_session, make_employee, client_account):
    # Arrange
    first, _ = make_employee(name="First In")
    second, _ = make_employee(name="Second In")
    inactive, _ = make_employee(name="Gone")
    inactive.is_active = False
    today = date.today().isoformat()
    db_session.add_all(
        [
            inactive,
            Project(project_code="PRJ0001", name="Portal", client_id=client_account[0].id,
                    status="in-progress", created_at=NOW - timedelta(hours=3)),
            Project(project_code="PRJ0002", name="Planning only",
                    client_id=client_account[0].id, created_at=NOW - timedelta(hours=5)),
            Task(task_code="TSK0001", title="Open", assigned_to=first.id,
                 created_at=NOW - timedelta(minutes=10)),
            Task(task_code="TSK0002", title="Done", assigned_to=first.id, status="completed",
                 created_at=NOW - timedelta(days=2)),
            Attendance(employee_id=first.id, date=today, status="present",
                       check_in_time=datetime.now().replace(hour=8, minute=55),
                       created_at=NOW - timedelta(minutes=1)),
            Attendance(employee_id=second.id, date=today, status="late", is_late=True,
                       check_in_time=datetime.now().replace(hour=9, minute=40),
                       created_at=NOW - timedelta(minutes=2)),
        ]
    )
    db_session.commit()

    # Act
    dashboard = admin_dashboard(db_session, now=NOW)

    # Assert
    assert dashboard.total_employees == 2
    assert dashboard.total_clients == 1
    assert dashboard.active_projects == 1
    assert dashboard.pending_tasks == 1
    assert dashboard.present_today == 2
    assert [row.employee_name for row in dashboard.attendance_data] == ["Second In", "First In"]
    # The two-day-old task falls outside the five most recent entries
    assert [item.type for item in dashboard.recent_activity] == [
        "attendance",
        "attendance",
        "task",
        "project",
        "project",
    ]
    assert dashboard.recent_activity[2].time == "10 minutes ago"


def test_admin_dashboard_endpoint(client, admin_headers, employee, client_account):
    response = client.get("/api/admin/dashboard", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_employees"] == 1
    assert data["total_clients"] == 1
    assert data["attendance_data"] == []


def test_employee_dashboard(client, employee, employee_headers, db_session):
    # Arrange
    yesterday = date.today() - timedelta(days=1)
    db_session.add_all(
        [
            Task(task_code="TSK0001", title="Late work", assigned_to=employee[0].id,
                 due_date=yesterday),
            Task(task_code="TSK0002", title="Shipped", assigned_to=employee[0].id,
                 status="completed", completed_at=datetime.now()),
        ]
    )
    db_session.commit()

    # Act
    response = client.get("/api/employee/dashboard", headers=employee_headers)

    # Assert
    data = response.json()["data"]
    assert data["name"] == "Eve Employee"
    assert data["active_tasks"] == 1
    assert data["overdue_tasks"] == 1
    assert data["completed_this_month"] == 1
    assert data["today_attendance"] is None
    assert len(data["recent_tasks"]) == 2


def test_client_dashboard(client, client_account, client_headers, db_session):
    db_session.add_all(
        [
            Project(project_code="PRJ0001", name="One", client_id=client_account[0].id,
                    status="in-progress", budget=1000, progress=40),
            Project(project_code="PRJ0002", name="Two", client_id=client_account[0].id,
                    status="completed", budget=2500.5, progress=100),
        ]
    )
    db_session.commit()

    response = client.get("/api/client/dashboard", headers=client_headers)

    data = response.json()["data"]
    assert data["company_name"] == "Acme Corp"
    assert data["total_projects"] == 2
    assert data["projects_by_status"]["completed"] == 1
    assert data["total_investment"] == 3500.5
    assert data["average_progress"] == 70.0


def test_settings_defaults_and_merge(client, admin_headers):
    defaults = client.get("/api/admin/settings", headers=admin_headers)
    updated = client.put(
        "/api/admin/settings",
        json={"company": {"name": "Acme HQ"}, "attendance": {"late_grace_minutes": 10}},
        headers=admin_headers,
    )
    reread = client.get("/api/admin/settings", headers=admin_headers)

    assert defaults.json()["data"]["company"]["name"] == "OfficeSphere"
    data = updated.json()["data"]
    assert data["company"]["name"] == "Acme HQ"
    assert data["company"]["timezone"] == "UTC"
    assert data["attendance"]["late_grace_minutes"] == 10
    assert data["attendance"]["work_start_time"] == "09:00"
    assert reread.json()["data"] == data


def test_settings_require_admin(client, employee_headers):
    response = client.get("/api/admin/settings", headers=employee_headers)

    assert response.status_code == 403


def test_admin_dashboard_ignores_deactivated_employees(db_session, make_employee):
    # Arrange
    active, _ = make_employee(name="Active Person")
    gone, _ = make_employee(name="Deactivated Person")
    today = date.today().isoformat()
    db_session.add_all(
        [
            Attendance(employee_id=active.id, date=today, status="present",
                       check_in_time=datetime.now().replace(hour=8, minute=50)),
            Attendance(employee_id=gone.id, date=today, status="present",
                       check_in_time=datetime.now().replace(hour=8, minute=40)),
        ]
    )
    gone.is_active = False
    db_session.add(gone)
    db_session.commit()

    # Act
    dashboard = admin_dashboard(db_session, now=NOW)

    # Assert
    assert dashboard.total_employees == 1
    assert dashboard.present_today == 1
    assert [row.employee_name for row in dashboard.attendance_data] == ["Active Person"]
