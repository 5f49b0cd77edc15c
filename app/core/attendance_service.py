"""
Attendance workflows and aggregation.

Check-in/check-out mutate a single record; the aggregation functions
build daily, per-employee, monthly and period views across employees.
"""

import calendar
from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Optional

from sqlmodel import Session, col, select

from app.core.attendance_rules import (
    ATTENDED_STATUSES,
    attendance_rate,
    classify_check_in,
    classify_day,
    compute_work_hours,
    daily_sort_key,
    early_leave_minutes,
    parse_hhmm,
    working_days,
)
from app.core.config import settings
from app.core.populate import attendance_with_employees, to_employee_summary
from app.models.attendance import (
    Attendance,
    AttendanceReport,
    AttendanceSummary,
    AttendanceWithEmployee,
    DailyAttendance,
    DailyAttendanceRow,
    MonthlyAttendance,
    MonthlyEmployeeRow,
)
from app.models.employee import Employee
from app.models.enums import AttendanceStatus
from app.models.user import User


def today_str() -> str:
    return date.today().isoformat()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def apply_check_in(record: Attendance, when: datetime) -> None:
    status, minutes = classify_check_in(when, parse_hhmm(settings.WORK_START_TIME))
    record.check_in_time = when
    record.status = status.value
    record.is_late = minutes > 0
    record.late_minutes = minutes
    record.expected_start_time = settings.WORK_START_TIME
    record.expected_end_time = settings.WORK_END_TIME
    record.updated_at = datetime.utcnow()


def apply_check_out(record: Attendance, when: datetime) -> None:
    record.check_out_time = when
    record.work_hours = compute_work_hours(record.check_in_time, when)
    minutes = early_leave_minutes(when, parse_hhmm(settings.WORK_END_TIME))
    record.is_early_leave = minutes > 0
    record.early_leave_minutes = minutes
    record.updated_at = datetime.utcnow()


def recalculate(record: Attendance) -> None:
    """Re-derive status, lateness and hours after the times were corrected."""
    if record.check_in_time is not None:
        apply_check_in(record, record.check_in_time)
    if record.check_out_time is not None:
        apply_check_out(record, record.check_out_time)


COUNTER_FIELDS = ("total_present", "total_late", "total_leaves")


def counter_contribution(record: Attendance) -> dict[str, int]:
    """What one record adds to its employee's running attendance counters."""
    attended = record.check_in_time is not None
    return {
        "total_present": int(attended),
        "total_late": int(attended and record.is_late),
        "total_leaves": int(record.status == AttendanceStatus.LEAVE.value),
    }


def adjust_counters(employee: Employee, before: dict[str, int], after: dict[str, int]) -> None:
    for field in COUNTER_FIELDS:
        value = getattr(employee, field) + after[field] - before[field]
        setattr(employee, field, max(0, value))


def get_record(session: Session, employee_id: int, day: str) -> Optional[Attendance]:
    return session.exec(
        select(Attendance).where(
            Attendance.employee_id == employee_id, Attendance.date == day
        )
    ).first()


def records_between(
    session: Session, start: date, end: date, employee_id: Optional[int] = None
) -> list[Attendance]:
    statement = select(Attendance).where(
        Attendance.date >= start.isoformat(), Attendance.date <= end.isoformat()
    )
    if employee_id is not None:
        statement = statement.where(Attendance.employee_id == employee_id)
    return list(session.exec(statement.order_by(col(Attendance.date).desc())).all())


def summarize(
    employee_id: int, records: list[Attendance], start: date, end: date
) -> AttendanceSummary:
    """Counts for one employee. Future days are not counted as absences."""
    effective_end = min(end, date.today())
    expected = working_days(start, effective_end) if effective_end >= start else 0

    attended = [record for record in records if record.check_in_time is not None]
    days_late = sum(1 for record in attended if record.is_late)
    on_leave = sum(
        1
        for record in records
        if record.check_in_time is None and record.status == AttendanceStatus.LEAVE.value
    )
    total_hours = round(sum(record.work_hours for record in attended), 2)

    return AttendanceSummary(
        employee_id=employee_id,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        working_days=expected,
        days_present=len(attended) - days_late,
        days_late=days_late,
        days_absent=max(expected - len(attended) - on_leave, 0),
        days_on_leave=on_leave,
        half_days=sum(1 for r in attended if r.status == AttendanceStatus.HALF_DAY.value),
        work_from_home=sum(
            1 for r in attended if r.status == AttendanceStatus.WORK_FROM_HOME.value
        ),
        total_work_hours=total_hours,
        average_work_hours=round(total_hours / len(attended), 2) if attended else 0.0,
        attendance_rate=attendance_rate(len(attended), expected),
    )


def _active_employees(
    session: Session, department: Optional[str] = None
) -> list[tuple[Employee, User]]:
    statement = (
        select(Employee, User)
        .join(User, Employee.user_id == User.id)
        .where(Employee.is_active == True)  # noqa: E712
    )
    if department:
        statement = statement.where(Employee.department == department)
    return list(session.exec(statement).all())


def daily_attendance(
    session: Session, day: date, department: Optional[str] = None
) -> DailyAttendance:
    """
    Every active employee for one day, classified present/late/leave/absent.

    Rows are ordered by status, then by check-in time.
    """
    employees = _active_employees(session, department)
    records = {
        record.employee_id: record
        for record in session.exec(
            select(Attendance).where(Attendance.date == day.isoformat())
        ).all()
    }

    rows = []
    for employee, user in employees:
        record = records.get(employee.id)
        status = classify_day(
            record.status if record else None,
            record.check_in_time if record else None,
            record.is_late if record else False,
        )
        rows.append(
            DailyAttendanceRow(
                employee=to_employee_summary(employee, user),
                status=status,
                check_in_time=record.check_in_time if record else None,
                check_out_time=record.check_out_time if record else None,
                work_hours=record.work_hours if record else 0,
                is_late=record.is_late if record else False,
                late_minutes=record.late_minutes if record else 0,
                attendance_id=record.id if record else None,
            )
        )
    rows.sort(key=lambda row: daily_sort_key(row.status, row.check_in_time))

    counts = Counter(row.status for row in rows)
    attended = sum(counts[status] for status in ATTENDED_STATUSES)
    return DailyAttendance(
        date=day.isoformat(),
        total_employees=len(rows),
        present=attended - counts[AttendanceStatus.LATE.value],
        late=counts[AttendanceStatus.LATE.value],
        absent=counts[AttendanceStatus.ABSENT.value],
        on_leave=counts[AttendanceStatus.LEAVE.value],
        attendance_rate=attendance_rate(attended, len(rows)),
        records=rows,
    )


def monthly_attendance(
    session: Session, year: int, month: int, department: Optional[str] = None
) -> MonthlyAttendance:
    start, end = month_bounds(year, month)
    employees = _active_employees(session, department)
    by_employee: dict[int, list[Attendance]] = defaultdict(list)
    for record in records_between(session, start, end):
        by_employee[record.employee_id].append(record)

    rows = []
    for employee, user in employees:
        summary = summarize(employee.id, by_employee.get(employee.id, []), start, end)
        rows.append(
            MonthlyEmployeeRow(
                employee=to_employee_summary(employee, user),
                present=summary.days_present,
                late=summary.days_late,
                absent=summary.days_absent,
                leave=summary.days_on_leave,
                total_work_hours=summary.total_work_hours,
                attendance_rate=summary.attendance_rate,
            )
        )
    rows.sort(key=lambda row: row.employee.employee_code)

    effective_end = min(end, date.today())
    return MonthlyAttendance(
        month=f"{year:04d}-{month:02d}",
        working_days=working_days(start, effective_end) if effective_end >= start else 0,
        employees=rows,
    )


def attendance_report(
    session: Session, start: date, end: date, department: Optional[str] = None
) -> AttendanceReport:
    employees = _active_employees(session, department)
    departments = {employee.id: employee.department for employee, _ in employees}
    records = [
        record
        for record in records_between(session, start, end)
        if record.employee_id in departments
    ]

    status_breakdown = Counter(record.status for record in records)
    department_breakdown: dict[str, dict[str, int]] = defaultdict(Counter)
    for record in records:
        department_breakdown[departments[record.employee_id]][record.status] += 1

    attended = [record for record in records if record.check_in_time is not None]
    effective_end = min(end, date.today())
    expected = (
        working_days(start, effective_end) * len(employees) if effective_end >= start else 0
    )

    return AttendanceReport(
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        generated_at=datetime.utcnow(),
        total_employees=len(employees),
        total_records=len(records),
        status_breakdown=dict(status_breakdown),
        department_breakdown={
            name: dict(counts) for name, counts in department_breakdown.items()
        },
        average_work_hours=round(
            sum(record.work_hours for record in attended) / len(attended), 2
        )
        if attended
        else 0.0,
        attendance_rate=attendance_rate(len(attended), expected),
        late_arrivals=sum(1 for record in attended if record.is_late),
    )


def late_arrivals(session: Session, start: date, end: date) -> list[AttendanceWithEmployee]:
    records = [
        record
        for record in records_between(session, start, end)
        if record.is_late and record.check_in_time is not None
    ]
    records.sort(key=lambda record: record.late_minutes, reverse=True)
    return attendance_with_employees(session, records)
