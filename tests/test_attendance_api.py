"""
Integration tests for attendance self-service and admin review.
"""

from datetime import date, datetime, time, timedelta, timezone

from sqlmodel import select

from app.models.attendance import Attendance
from app.models.employee import Employee
from app.models.notification import Notification


def _last_weekday(before: date) -> date:
    day = before - timedelta(days=1)
    while day.weekday() >= 5:
        day -= timedelta(days=1)
    return day


def test_check_in_then_check_out(client, employee_headers, employee, db_session):
    # Act
    checked_in = client.post(
        "/api/employee/attendance/checkin", json={"location": "HQ"}, headers=employee_headers
    )
    again = client.post("/api/employee/attendance/checkin", json={}, headers=employee_headers)
    status = client.get("/api/employee/attendance/status", headers=employee_headers)
    checked_out = client.post(
        "/api/employee/attendance/checkout", json={}, headers=employee_headers
    )
    out_again = client.post(
        "/api/employee/attendance/checkout", json={}, headers=employee_headers
    )

    # Assert
    assert checked_in.status_code == 201
    assert checked_in.json()["data"]["status"] in ("present", "late")
    assert checked_in.json()["data"]["date"] == date.today().isoformat()
    assert again.status_code == 400
    assert status.json()["data"]["has_checked_in"] is True
    assert status.json()["data"]["can_check_in"] is False
    assert checked_out.status_code == 200
    assert checked_out.json()["data"]["check_out_time"] is not None
    assert out_again.status_code == 400

    db_session.refresh(employee[0])
    assert employee[0].total_present == 1


def test_check_out_without_check_in(client, employee_headers):
    response = client.post("/api/employee/attendance/checkout", json={}, headers=employee_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "You have not checked in today"


def test_status_before_check_in(client, employee_headers):
    response = client.get("/api/employee/attendance/status", headers=employee_headers)

    data = response.json()["data"]
    assert data["has_checked_in"] is False
    assert data["can_check_in"] is True


def test_correction_flow(client, employee_headers, admin_headers, employee, db_session):
    # Arrange
    day = _last_weekday(date.today())
    check_in = datetime.combine(day, datetime.min.time()).replace(hour=8, minute=55)
    check_out = check_in.replace(hour=17, minute=55)

    # Act
    requested = client.post(
        "/api/employee/attendance/correction",
        json={
            "date": day.isoformat(),
            "reason": "Forgot to check in",
            "correct_check_in_time": check_in.isoformat(),
            "correct_check_out_time": check_out.isoformat(),
        },
        headers=employee_headers,
    )
    duplicate = client.post(
        "/api/employee/attendance/correction",
        json={
            "date": day.isoformat(),
            "reason": "Trying again",
            "correct_check_in_time": check_in.isoformat(),
        },
        headers=employee_headers,
    )
    pending = client.get("/api/admin/attendance/corrections/pending", headers=admin_headers)
    record_id = requested.json()["data"]["id"]
    approved = client.put(
        f"/api/admin/attendance/correction/{record_id}/approve",
        json={"admin_notes": "ok"},
        headers=admin_headers,
    )

    # Assert
    assert requested.status_code == 201
    assert duplicate.status_code == 400
    assert pending.json()["total"] == 1
    assert pending.json()["data"][0]["employee"]["name"] == "Eve Employee"
    data = approved.json()["data"]
    assert data["correction_status"] == "approved"
    assert data["status"] == "present"
    assert data["work_hours"] == 9.0

    inbox = db_session.exec(
        select(Notification).where(Notification.recipient_id == employee[1].id)
    ).all()
    assert [n.title for n in inbox] == ["Correction approved"]


def test_correction_for_future_date_rejected(client, employee_headers):
    tomorrow = date.today() + timedelta(days=1)

    response = client.post(
        "/api/employee/attendance/correction",
        json={
            "date": tomorrow.isoformat(),
            "reason": "Time travel",
            "correct_check_in_time": f"{tomorrow.isoformat()}T09:00:00",
        },
        headers=employee_headers,
    )

    assert response.status_code == 400


def test_correction_needs_a_time(client, employee_headers):
    response = client.post(
        "/api/employee/attendance/correction",
        json={"date": "2026-03-02", "reason": "No times given"},
        headers=employee_headers,
    )

    assert response.status_code == 400


def test_leave_request_covers_weekdays_only(client, employee_headers, admin_headers, db_session):
    # Arrange: Friday 2026-03-06 to Monday 2026-03-09
    payload = {
        "start_date": "2026-03-06",
        "end_date": "2026-03-09",
        "leave_type": "Annual",
        "reason": "Family trip",
    }

    # Act
    requested = client.post("/api/employee/attendance/leave", json=payload, headers=employee_headers)
    repeated = client.post("/api/employee/attendance/leave", json=payload, headers=employee_headers)

    # Assert
    assert requested.status_code == 201
    assert [row["date"] for row in requested.json()["data"]] == ["2026-03-06", "2026-03-09"]
    assert all(row["leave_status"] == "pending" for row in requested.json()["data"])
    assert repeated.status_code == 400

    pending = client.get("/api/admin/attendance/leaves/pending", headers=admin_headers)
    assert pending.json()["total"] == 2


def test_weekend_only_leave_rejected(client, employee_headers):
    response = client.post(
        "/api/employee/attendance/leave",
        json={
            "start_date": "2026-03-07",
            "end_date": "2026-03-08",
            "leave_type": "casual",
            "reason": "Weekend",
        },
        headers=employee_headers,
    )

    assert response.status_code == 400


def test_approve_and_reject_leave(client, employee_headers, admin_headers, employee, db_session):
    rows = client.post(
        "/api/employee/attendance/leave",
        json={
            "start_date": "2026-03-02",
            "end_date": "2026-03-03",
            "leave_type": "sick",
            "reason": "Flu",
        },
        headers=employee_headers,
    ).json()["data"]

    approved = client.put(
        f"/api/admin/attendance/leave/{rows[0]['id']}/approve", json={}, headers=admin_headers
    )
    rejected = client.put(
        f"/api/admin/attendance/leave/{rows[1]['id']}/reject",
        json={"admin_notes": "Need a certificate"},
        headers=admin_headers,
    )
    twice = client.put(
        f"/api/admin/attendance/leave/{rows[0]['id']}/approve", json={}, headers=admin_headers
    )

    assert approved.json()["data"]["status"] == "leave"
    assert rejected.json()["data"]["leave_status"] == "rejected"
    assert rejected.json()["data"]["leave_admin_notes"] == "Need a certificate"
    assert twice.status_code == 400
    assert db_session.get(Employee, employee[0].id).total_leaves == 1


def test_admin_views_and_delete(client, employee_headers, admin_headers, employee, db_session):
    # Arrange
    record = Attendance(
        employee_id=employee[0].id,
        date="2026-03-02",
        status="late",
        is_late=True,
        late_minutes=30,
        check_in_time=datetime(2026, 3, 2, 9, 30),
    )
    db_session.add(record)
    db_session.commit()

    # Act
    listed = client.get(
        "/api/admin/attendance",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31", "status": "late"},
        headers=admin_headers,
    )
    daily = client.get(
        "/api/admin/attendance/daily", params={"date": "2026-03-02"}, headers=admin_headers
    )
    late = client.get(
        "/api/admin/attendance/late-arrivals",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=admin_headers,
    )
    history = client.get(
        f"/api/admin/attendance/employee/{employee[0].id}",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=admin_headers,
    )
    inverted = client.get(
        "/api/admin/attendance",
        params={"start_date": "2026-03-31", "end_date": "2026-03-01"},
        headers=admin_headers,
    )
    deleted = client.delete(f"/api/admin/attendance/{record.id}", headers=admin_headers)

    # Assert
    assert listed.json()["total"] == 1
    assert daily.json()["data"]["late"] == 1
    assert late.json()["data"][0]["late_minutes"] == 30
    assert history.json()["data"]["summary"]["days_late"] == 1
    assert inverted.status_code == 400
    assert deleted.status_code == 200
    assert db_session.exec(select(Attendance)).all() == []


def test_admin_reports(client, admin_headers, employee):
    report = client.get(
        "/api/admin/attendance/report",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=admin_headers,
    )
    monthly = client.get(
        "/api/admin/attendance/monthly", params={"year": 2026, "month": 3}, headers=admin_headers
    )
    reports_alias = client.get(
        "/api/admin/reports/attendance",
        params={"start_date": "2026-03-01", "end_date": "2026-03-31"},
        headers=admin_headers,
    )

    assert report.json()["data"]["total_employees"] == 1
    assert monthly.json()["data"]["month"] == "2026-03"
    assert monthly.json()["data"]["working_days"] == 22
    assert reports_alias.json()["data"]["total_employees"] == 1


def test_daily_view_classifies_approved_leave_ahead_of_absent(
    client, admin_headers, employee, employee_headers, make_employee, headers_for, db_session
):
    # Arrange
    day = "2026-03-02"
    early, _ = make_employee(name="Early Bird")
    _, pending_user = make_employee(name="Pending Pat")
    gone, _ = make_employee(name="Gone Person")
    db_session.add_all(
        [
            Attendance(employee_id=early.id, date=day, status="present",
                       check_in_time=datetime(2026, 3, 2, 8, 50)),
            Attendance(employee_id=gone.id, date=day, status="present",
                       check_in_time=datetime(2026, 3, 2, 8, 40)),
        ]
    )
    gone.is_active = False
    db_session.add(gone)
    db_session.commit()

    leave = {"start_date": day, "end_date": day, "leave_type": "annual", "reason": "Trip"}
    approved = client.post(
        "/api/employee/attendance/leave", json=leave, headers=employee_headers
    ).json()["data"][0]
    client.put(
        f"/api/admin/attendance/leave/{approved['id']}/approve", json={}, headers=admin_headers
    )
    client.post("/api/employee/attendance/leave", json=leave, headers=headers_for(pending_user))

    # Act
    response = client.get(
        "/api/admin/attendance/daily", params={"date": day}, headers=admin_headers
    )

    # Assert
    data = response.json()["data"]
    assert data["total_employees"] == 3
    assert [(row["employee"]["name"], row["status"]) for row in data["records"]] == [
        ("Early Bird", "present"),
        ("Eve Employee", "leave"),
        ("Pending Pat", "absent"),
    ]
    assert (data["present"], data["on_leave"], data["absent"]) == (1, 1, 1)


def test_correction_times_with_offset_are_stored_as_local_time(
    client, employee_headers, employee, db_session
):
    # Arrange
    day = _last_weekday(date.today())
    check_in = datetime.combine(day, time(8, 55), tzinfo=timezone.utc)
    expected = check_in.astimezone().replace(tzinfo=None)

    # Act
    response = client.post(
        "/api/employee/attendance/correction",
        json={
            "date": day.isoformat(),
            "reason": "Badge reader was down",
            "correct_check_in_time": check_in.isoformat().replace("+00:00", "Z"),
        },
        headers=employee_headers,
    )

    # Assert
    assert response.status_code == 201
    record = db_session.get(Attendance, response.json()["data"]["id"])
    db_session.refresh(record)
    assert record.correction_check_in == expected


def _late_record(db_session, employee_row, day):
    record = Attendance(
        employee_id=employee_row.id,
        date=day.isoformat(),
        status="late",
        is_late=True,
        check_in_time=datetime.combine(day, time(9, 45)),
    )
    employee_row.total_present += 1
    employee_row.total_late += 1
    db_session.add_all([record, employee_row])
    db_session.commit()
    db_session.refresh(record)
    return record


def test_correction_that_removes_lateness_updates_counters(
    client, employee_headers, admin_headers, employee, db_session
):
    # Arrange
    day = _last_weekday(date.today())
    record = _late_record(db_session, employee[0], day)
    client.post(
        "/api/employee/attendance/correction",
        json={
            "date": day.isoformat(),
            "reason": "Was in a client meeting",
            "correct_check_in_time": datetime.combine(day, time(8, 50)).isoformat(),
        },
        headers=employee_headers,
    )

    # Act
    approved = client.put(
        f"/api/admin/attendance/correction/{record.id}/approve", json={}, headers=admin_headers
    )

    # Assert
    assert approved.json()["data"]["status"] == "present"
    stored = db_session.get(Employee, employee[0].id)
    db_session.refresh(stored)
    assert (stored.total_present, stored.total_late) == (1, 0)


def test_deleting_records_reverses_counters(
    client, employee_headers, admin_headers, employee, db_session
):
    # Arrange
    late = _late_record(db_session, employee[0], date(2026, 3, 2))
    leave = client.post(
        "/api/employee/attendance/leave",
        json={
            "start_date": "2026-03-03",
            "end_date": "2026-03-03",
            "leave_type": "sick",
            "reason": "Flu",
        },
        headers=employee_headers,
    ).json()["data"][0]
    client.put(
        f"/api/admin/attendance/leave/{leave['id']}/approve", json={}, headers=admin_headers
    )

    # Act
    client.delete(f"/api/admin/attendance/{late.id}", headers=admin_headers)
    client.delete(f"/api/admin/attendance/{leave['id']}", headers=admin_headers)

    # Assert
    stored = db_session.get(Employee, employee[0].id)
    db_session.refresh(stored)
    assert (stored.total_present, stored.total_late, stored.total_leaves) == (0, 0, 0)
