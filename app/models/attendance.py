"""
Attendance database models and schemas.

Includes attendance tracking with:
- Check-in/Check-out times and locations
- Late arrival and early leave tracking
- Work hours calculation
- Correction requests reviewed by an admin
- Leave requests reviewed by an admin
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.employee import EmployeeSummary
from app.models.enums import AttendanceStatus, LeaveType, normalize_choice


# Database Model


class Attendance(SQLModel, table=True):
    """
    ORM model for Attendance table.

    One record per employee per day. Correction and leave requests live on
    the record they apply to.
    """

    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("employee_id", "date"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    employee_id: int = Field(foreign_key="employees.id", index=True, nullable=False)

    # Date and times
    date: str = Field(index=True, nullable=False, max_length=10)  # YYYY-MM-DD format
    check_in_time: Optional[datetime] = Field(default=None, nullable=True)
    check_out_time: Optional[datetime] = Field(default=None, nullable=True)

    # Where and how
    check_in_location: Optional[str] = Field(default=None, max_length=255)
    check_out_location: Optional[str] = Field(default=None, max_length=255)
    check_in_method: str = Field(default="web", max_length=20)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    device_info: Optional[str] = Field(default=None, max_length=255)

    # Status
    status: str = Field(default=AttendanceStatus.ABSENT.value, index=True, max_length=20)

    # Late arrival tracking
    is_late: bool = Field(default=False)
    late_minutes: int = Field(default=0)
    expected_start_time: str = Field(default="09:00", max_length=5)  # HH:MM format

    # Early leave tracking
    is_early_leave: bool = Field(default=False)
    early_leave_minutes: int = Field(default=0)
    expected_end_time: str = Field(default="18:00", max_length=5)  # HH:MM format

    work_hours: float = Field(default=0)

    # Notes
    notes: Optional[str] = Field(default=None, max_length=500)
    check_in_notes: Optional[str] = Field(default=None, max_length=255)
    check_out_notes: Optional[str] = Field(default=None, max_length=255)

    # Correction request
    correction_status: Optional[str] = Field(default=None, index=True, max_length=20)
    correction_reason: Optional[str] = Field(default=None, max_length=500)
    correction_check_in: Optional[datetime] = Field(default=None)
    correction_check_out: Optional[datetime] = Field(default=None)
    correction_requested_at: Optional[datetime] = Field(default=None)
    correction_reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    correction_reviewed_at: Optional[datetime] = Field(default=None)
    correction_admin_notes: Optional[str] = Field(default=None, max_length=500)

    # Leave request
    leave_status: Optional[str] = Field(default=None, index=True, max_length=20)
    leave_type: Optional[str] = Field(default=None, max_length=20)
    leave_reason: Optional[str] = Field(default=None, max_length=500)
    leave_requested_at: Optional[datetime] = Field(default=None)
    leave_reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    leave_reviewed_at: Optional[datetime] = Field(default=None)
    leave_admin_notes: Optional[str] = Field(default=None, max_length=500)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Request Schemas


class CheckInRequest(SQLModel):
    """Schema for self-service check-in."""

    location: Optional[str] = Field(default=None, max_length=255)
    method: str = Field(default="web", max_length=20)
    device_info: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=255)


class CheckOutRequest(SQLModel):
    """Schema for self-service check-out."""

    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=255)


class CorrectionRequest(SQLModel):
    """Employee asks for the times on a given day to be corrected."""

    date: date
    reason: str = Field(min_length=5, max_length=500)
    correct_check_in_time: Optional[datetime] = None
    correct_check_out_time: Optional[datetime] = None

    @field_validator("correct_check_in_time", "correct_check_out_time")
    @classmethod
    def to_local_time(cls, value):
        # Times are stored as naive local time, like check-in and check-out
        if value is not None and value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def check_times(self):
        if self.correct_check_in_time is None and self.correct_check_out_time is None:
            raise ValueError("Provide a corrected check-in or check-out time")
        if (
            self.correct_check_in_time
            and self.correct_check_out_time
            and self.correct_check_out_time <= self.correct_check_in_time
        ):
            raise ValueError("Corrected check-out must be after check-in")
        return self


class LeaveRequest(SQLModel):
    """Leave over an inclusive date range."""

    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str = Field(min_length=3, max_length=500)

    @field_validator("leave_type", mode="before")
    @classmethod
    def normalize_leave_type(cls, value):
        return normalize_choice(value, LeaveType)

    @model_validator(mode="after")
    def check_range(self):
        if self.start_date > self.end_date:
            raise ValueError("Start date cannot be after end date")
        if (self.end_date - self.start_date).days > 60:
            raise ValueError("Leave requests are limited to 60 days")
        return self


class ReviewRequest(SQLModel):
    """Admin decision on a correction or leave request."""

    admin_notes: Optional[str] = Field(default=None, max_length=500)


# Response Schemas


class AttendancePublic(SQLModel):
    """Schema for attendance responses."""

    id: int
    employee_id: int
    date: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_location: Optional[str] = None
    check_out_location: Optional[str] = None
    status: str
    is_late: bool = False
    late_minutes: int = 0
    is_early_leave: bool = False
    early_leave_minutes: int = 0
    work_hours: float = 0
    notes: Optional[str] = None
    correction_status: Optional[str] = None
    correction_reason: Optional[str] = None
    correction_check_in: Optional[datetime] = None
    correction_check_out: Optional[datetime] = None
    correction_admin_notes: Optional[str] = None
    leave_status: Optional[str] = None
    leave_type: Optional[str] = None
    leave_reason: Optional[str] = None
    leave_admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AttendanceWithEmployee(AttendancePublic):
    employee: Optional[EmployeeSummary] = None


class AttendanceStatusResponse(BaseModel):
    """Response for today's attendance status."""

    date: str
    has_checked_in: bool
    has_checked_out: bool
    can_check_in: bool
    can_check_out: bool
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    status: str
    is_late: bool = False
    late_minutes: int = 0
    hours_worked_so_far: float = 0
    record: Optional[AttendancePublic] = None


class DailyAttendanceRow(BaseModel):
    """One active employee on a given day, with or without a record."""

    employee: EmployeeSummary
    status: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    work_hours: float = 0
    is_late: bool = False
    late_minutes: int = 0
    attendance_id: Optional[int] = None


class DailyAttendance(BaseModel):
    date: str
    total_employees: int
    present: int
    late: int
    absent: int
    on_leave: int
    attendance_rate: float
    records: list[DailyAttendanceRow]


class AttendanceSummary(BaseModel):
    """Counts for one employee over a period."""

    employee_id: int
    start_date: str
    end_date: str
    working_days: int
    days_present: int
    days_late: int
    days_absent: int
    days_on_leave: int
    half_days: int
    work_from_home: int
    total_work_hours: float
    average_work_hours: float
    attendance_rate: float


class MonthlyEmployeeRow(BaseModel):
    employee: EmployeeSummary
    present: int
    late: int
    absent: int
    leave: int
    total_work_hours: float
    attendance_rate: float


class MonthlyAttendance(BaseModel):
    month: str  # YYYY-MM format
    working_days: int
    employees: list[MonthlyEmployeeRow]


class AttendanceReport(BaseModel):
    """Period report across all employees."""

    start_date: str
    end_date: str
    generated_at: datetime
    total_employees: int
    total_records: int
    status_breakdown: dict[str, int]
    department_breakdown: dict[str, dict[str, int]]
    average_work_hours: float
    attendance_rate: float
    late_arrivals: int


class EmployeeAttendanceHistory(BaseModel):
    """Schema for employee attendance history."""

    employee: EmployeeSummary
    summary: AttendanceSummary
    records: list[AttendancePublic]
