"""
Unit tests for attendance classification and aggregation.
"""

from datetime import date, datetime, time

import pytest

from app.core.attendance_rules import (
    attendance_rate,
    classify_check_in,
    classify_day,
    compute_work_hours,
    daily_sort_key,
    early_leave_minutes,
    late_minutes,
    normalize_attendance_status,
    parse_hhmm,
    working_days,
)
from app.core.attendance_service import (
    apply_check_in,
    apply_check_out,
    daily_attendance,
    month_bounds,
    monthly_attendance,
    recalculate,
    summarize,
)
from app.models.attendance import Attendance
from app.models.enums import AttendanceStatus

START = time(9, 0)


@pytest.mark.parametrize(
    "check_in, expected_status, expected_minutes",
    [
        (datetime(2026, 3, 2, 8, 45), AttendanceStatus.PRESENT, 0),
        (datetime(2026, 3, 2, 9, 15), AttendanceStatus.PRESENT, 0),
        (datetime(2026, 3, 2, 9, 16), AttendanceStatus.LATE, 16),
        (datetime(2026, 3, 2, 10, 30), AttendanceStatus.LATE, 90),
    ],
)
def test_classify_check_in_respects_grace_period(check_in, expected_status, expected_minutes):
    status, minutes = classify_check_in(check_in, START, grace_minutes=15)

    assert status == expected_status
    assert minutes == expected_minutes


def test_late_minutes_without_grace():
    assert late_minutes(datetime(2026, 3, 2, 9, 1), START, grace_minutes=0) == 1


def test_early_leave_and_work_hours():
    check_in = datetime(2026, 3, 2, 9, 0)
    check_out = datetime(2026, 3, 2, 16, 30)

    assert early_leave_minutes(check_out, time(18, 0)) == 90
    assert early_leave_minutes(datetime(2026, 3, 2, 18, 5), time(18, 0)) == 0
    assert compute_work_hours(check_in, check_out) == 7.5
    assert compute_work_hours(check_out, check_in) == 0.0
    assert compute_work_hours(check_in, None) == 0.0


def test_parse_hhmm():
    assert parse_hhmm("09:30") == time(9, 30)
    with pytest.raises(ValueError):
        parse_hhmm("nine")


@pytest.mark.parametrize(
    "status, check_in, is_late, expected",
    [
        (None, None, False, "absent"),
        ("leave", None, False, "leave"),
        ("absent", None, False, "absent"),
        ("present", datetime(2026, 3, 2, 9, 0), False, "present"),
        ("present", datetime(2026, 3, 2, 9, 40), True, "late"),
        ("work-from-home", datetime(2026, 3, 2, 9, 0), False, "work-from-home"),
    ],
)
def test_classify_day(status, check_in, is_late, expected):
    assert classify_day(status, check_in, is_late) == expected


def test_daily_sort_key_orders_status_then_check_in():
    rows = [
        ("absent", None),
        ("late", datetime(2026, 3, 2, 9, 30)),
        ("present", datetime(2026, 3, 2, 8, 55)),
        ("present", datetime(2026, 3, 2, 8, 30)),
    ]

    ordered = sorted(rows, key=lambda row: daily_sort_key(*row))

    assert ordered == [
        ("present", datetime(2026, 3, 2, 8, 30)),
        ("present", datetime(2026, 3, 2, 8, 55)),
        ("late", datetime(2026, 3, 2, 9, 30)),
        ("absent", None),
    ]


def test_working_days_and_rate():
    # 2026-03-02 is a Monday
    assert working_days(date(2026, 3, 2), date(2026, 3, 8)) == 5
    assert working_days(date(2026, 3, 7), date(2026, 3, 8)) == 0
    assert attendance_rate(3, 4) == 75.0
    assert attendance_rate(1, 0) == 0.0


def test_status_aliases():
    assert normalize_attendance_status("WFH") == AttendanceStatus.WORK_FROM_HOME
    assert normalize_attendance_status("On Leave") == AttendanceStatus.LEAVE
    assert normalize_attendance_status("half_day") == AttendanceStatus.HALF_DAY
    with pytest.raises(ValueError):
        normalize_attendance_status("sleeping")


def test_month_bounds():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValueError):
        month_bounds(2024, 13)


def test_recalculate_after_correction():
    record = Attendance(employee_id=1, date="2026-03-02")
    apply_check_in(record, datetime(2026, 3, 2, 10, 0))
    apply_check_out(record, datetime(2026, 3, 2, 18, 0))
    assert record.is_late is True

    record.check_in_time = datetime(2026, 3, 2, 8, 50)
    recalculate(record)

    assert record.status == "present"
    assert record.is_late is False
    assert record.late_minutes == 0
    assert record.work_hours == 9.17


def test_summarize_counts_leave_and_absence():
    # Mon 2 .. Fri 6 March 2026
    records = [
        Attendance(
            employee_id=1,
            date="2026-03-02",
            status="present",
            check_in_time=datetime(2026, 3, 2, 9, 0),
            work_hours=8,
        ),
        Attendance(
            employee_id=1,
            date="2026-03-03",
            status="late",
            is_late=True,
            check_in_time=datetime(2026, 3, 3, 9, 45),
            work_hours=7,
        ),
        Attendance(employee_id=1, date="2026-03-04", status="leave"),
    ]

    summary = summarize(1, records, date(2026, 3, 2), date(2026, 3, 6))

    assert summary.working_days == 5
    assert summary.days_present == 1
    assert summary.days_late == 1
    assert summary.days_on_leave == 1
    assert summary.days_absent == 2
    assert summary.total_work_hours == 15
    assert summary.attendance_rate == 40.0


def test_daily_attendance_lists_every_active_employee(db_session, make_employee):
    # Arrange
    early, _ = make_employee(name="Early Bird")
    late, _ = make_employee(name="Late Comer")
    make_employee(name="No Show")
    day = date(2026, 3, 2)
    for employee, when in ((early, datetime(2026, 3, 2, 8, 50)), (late, datetime(2026, 3, 2, 9, 50))):
        record = Attendance(employee_id=employee.id, date=day.isoformat())
        apply_check_in(record, when)
        db_session.add(record)
    db_session.commit()

    # Act
    result = daily_attendance(db_session, day)

    # Assert
    assert result.total_employees == 3
    assert (result.present, result.late, result.absent) == (1, 1, 1)
    assert [row.employee.name for row in result.records] == ["Early Bird", "Late Comer", "No Show"]
    assert result.attendance_rate == 66.67


def test_deactivated_employees_drop_out_of_daily_and_monthly(db_session, make_employee):
    # Arrange
    staying, _ = make_employee(name="Still Here")
    leaving, _ = make_employee(name="Moved On")
    day = date(2026, 3, 2)
    for employee in (staying, leaving):
        record = Attendance(employee_id=employee.id, date=day.isoformat())
        apply_check_in(record, datetime(2026, 3, 2, 8, 45))
        db_session.add(record)
    leaving.is_active = False
    db_session.add(leaving)
    db_session.commit()

    # Act
    daily = daily_attendance(db_session, day)
    monthly = monthly_attendance(db_session, 2026, 3)

    # Assert
    assert daily.total_employees == 1
    assert [row.employee.name for row in daily.records] == ["Still Here"]
    assert daily.present == 1
    assert [row.employee.name for row in monthly.employees] == ["Still Here"]
