"""
Attendance classification rules.

Pure functions over timestamps so they can be reused by check-in/out,
correction approval and the daily aggregation.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from app.core.config import settings
from app.models.enums import AttendanceStatus, normalize_choice

# Display order for daily rows
STATUS_ORDER = {
    AttendanceStatus.PRESENT.value: 0,
    AttendanceStatus.LATE.value: 1,
    AttendanceStatus.HALF_DAY.value: 2,
    AttendanceStatus.WORK_FROM_HOME.value: 3,
    AttendanceStatus.LEAVE.value: 4,
    AttendanceStatus.ABSENT.value: 5,
}

# Statuses that count as attending
ATTENDED_STATUSES = {
    AttendanceStatus.PRESENT.value,
    AttendanceStatus.LATE.value,
    AttendanceStatus.HALF_DAY.value,
    AttendanceStatus.WORK_FROM_HOME.value,
}


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" into a time."""
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")


def normalize_attendance_status(value) -> AttendanceStatus:
    return normalize_choice(value, AttendanceStatus)


def late_minutes(
    check_in: datetime,
    start: Optional[time] = None,
    grace_minutes: Optional[int] = None,
) -> int:
    """
    Minutes after the start of the working day, or 0 when within the grace period.
    """
    start = start or parse_hhmm(settings.WORK_START_TIME)
    grace = settings.LATE_GRACE_MINUTES if grace_minutes is None else grace_minutes

    day_start = datetime.combine(check_in.date(), start)
    if check_in <= day_start + timedelta(minutes=grace):
        return 0
    return int((check_in - day_start).total_seconds() // 60)


def classify_check_in(
    check_in: datetime,
    start: Optional[time] = None,
    grace_minutes: Optional[int] = None,
) -> tuple[AttendanceStatus, int]:
    """Return (present|late, minutes late)."""
    minutes = late_minutes(check_in, start, grace_minutes)
    if minutes > 0:
        return AttendanceStatus.LATE, minutes
    return AttendanceStatus.PRESENT, 0


def early_leave_minutes(check_out: datetime, end: Optional[time] = None) -> int:
    end = end or parse_hhmm(settings.WORK_END_TIME)
    day_end = datetime.combine(check_out.date(), end)
    if check_out >= day_end:
        return 0
    return int((day_end - check_out).total_seconds() // 60)


def compute_work_hours(check_in: Optional[datetime], check_out: Optional[datetime]) -> float:
    """Hours between check-in and check-out, rounded to 2 decimals."""
    if check_in is None or check_out is None or check_out <= check_in:
        return 0.0
    return round((check_out - check_in).total_seconds() / 3600, 2)


def classify_day(status: Optional[str], check_in: Optional[datetime], is_late: bool = False) -> str:
    """
    Daily status of one employee.

    No record or no check-in is absent, unless the day is a requested leave.
    A check-in is late when flagged so at check-in time.
    """
    if check_in is None:
        if status == AttendanceStatus.LEAVE.value:
            return AttendanceStatus.LEAVE.value
        return AttendanceStatus.ABSENT.value
    if is_late or status == AttendanceStatus.LATE.value:
        return AttendanceStatus.LATE.value
    if status in (AttendanceStatus.HALF_DAY.value, AttendanceStatus.WORK_FROM_HOME.value):
        return status
    return AttendanceStatus.PRESENT.value


def daily_sort_key(status: str, check_in: Optional[datetime]) -> tuple:
    """Order by status, then earliest check-in; rows without check-in go last."""
    return (
        STATUS_ORDER.get(status, len(STATUS_ORDER)),
        check_in is None,
        check_in or datetime.max,
    )


def working_days(start: date, end: date) -> int:
    """Weekdays in the inclusive date range."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def attendance_rate(attended: int, expected: int) -> float:
    if expected <= 0:
        return 0.0
    return round(attended / expected * 100, 2)
