from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from app.api.dependencies import (
    AdminDep,
    CurrentEmployeeDep,
    EmployeeUserDep,
    PaginationDep,
    SessionDep,
)
from app.core.attendance_rules import compute_work_hours, normalize_attendance_status
from app.core.attendance_service import (
    COUNTER_FIELDS,
    adjust_counters,
    apply_check_in,
    apply_check_out,
    attendance_report,
    counter_contribution,
    daily_attendance,
    get_record,
    late_arrivals,
    month_bounds,
    monthly_attendance,
    recalculate,
    records_between,
    summarize,
    today_str,
)
from app.core.database import paginate
from app.core.events import AttendanceMarkedEvent, EventType
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import attendance_with_employees, employee_with_user, to_employee_summary
from app.core.realtime import ADMIN_ROOM, emit_event, employee_room
from app.models.attendance import (
    Attendance,
    AttendancePublic,
    AttendanceReport,
    AttendanceStatusResponse,
    AttendanceSummary,
    AttendanceWithEmployee,
    CheckInRequest,
    CheckOutRequest,
    CorrectionRequest,
    DailyAttendance,
    EmployeeAttendanceHistory,
    LeaveRequest,
    MonthlyAttendance,
    ReviewRequest,
)
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.employee import Employee
from app.models.enums import (
    AttendanceStatus,
    Department,
    NotificationType,
    RequestStatus,
    UserRole,
    normalize_choice,
)
from app.models.user import User

logger = get_logger(__name__)

# Self-service endpoints, mounted under /api/employee
employee_router = APIRouter(
    prefix="/attendance",
    tags=["employee-attendance"],
    responses={404: {"description": "Attendance record not found"}},
)

# Review and reporting endpoints, mounted under /api/admin
admin_router = APIRouter(
    prefix="/attendance",
    tags=["admin-attendance"],
    responses={404: {"description": "Attendance record not found"}},
)


def _marked_event(record: Attendance, employee: Employee, user: User) -> AttendanceMarkedEvent:
    return AttendanceMarkedEvent(
        attendance_id=record.id,
        employee_id=employee.id,
        employee_code=employee.employee_code,
        employee_name=user.name,
        date=record.date,
        status=record.status,
        check_in_time=record.check_in_time,
        check_out_time=record.check_out_time,
        is_late=record.is_late,
        late_minutes=record.late_minutes,
        work_hours=record.work_hours,
    )


def _rooms(user_id: int) -> list[str]:
    return [ADMIN_ROOM, employee_room(user_id)]


def _status_filter(statement, status: Optional[str]):
    if not status:
        return statement
    try:
        return statement.where(Attendance.status == normalize_attendance_status(status).value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _date_range(statement, start_date: Optional[date], end_date: Optional[date]):
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date cannot be after end_date")
    if start_date:
        statement = statement.where(Attendance.date >= start_date.isoformat())
    if end_date:
        statement = statement.where(Attendance.date <= end_date.isoformat())
    return statement


def _current_month() -> tuple[date, date]:
    today = date.today()
    return month_bounds(today.year, today.month)


def report_period(start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date]:
    """Default to the current month; reject inverted ranges."""
    month_start, month_end = _current_month()
    start = start_date or month_start
    end = end_date or month_end
    if start > end:
        raise HTTPException(status_code=400, detail="start_date cannot be after end_date")
    return start, end


def department_filter(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return normalize_choice(value, Department).value
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _public(record: Attendance) -> AttendancePublic:
    return AttendancePublic.model_validate(record)


# Employee self-service


@employee_router.post("/checkin", response_model=ApiResponse[AttendancePublic], status_code=201)
async def check_in(
    request: CheckInRequest,
    http_request: Request,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Record today's check-in for the signed-in employee.

    Lateness is measured against the configured work start time; arriving
    after the grace period marks the day late.

    Returns:
        The attendance record for today

    Raises:
        HTTPException: 400 if already checked in today
    """
    today = today_str()
    now = datetime.now()
    logger.info(f"Check-in initiated by {user.email} for {today}")

    record = get_record(session, employee.id, today)
    if record is not None and record.check_in_time is not None:
        raise HTTPException(status_code=400, detail="You have already checked in today")
    if record is not None and record.leave_status == RequestStatus.APPROVED.value:
        raise HTTPException(status_code=400, detail="You are on approved leave today")

    if record is None:
        record = Attendance(employee_id=employee.id, date=today)
    apply_check_in(record, now)
    record.check_in_location = request.location
    record.check_in_method = request.method
    record.check_in_notes = request.notes
    record.device_info = request.device_info
    record.ip_address = http_request.client.host if http_request.client else None

    employee.total_present += 1
    if record.is_late:
        employee.total_late += 1
    session.add(record)
    session.add(employee)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Concurrent check-in for employee {employee.id} on {today}")
        raise HTTPException(status_code=400, detail="You have already checked in today")
    session.refresh(record)
    logger.info(
        f"Employee {employee.employee_code} checked in at {now} "
        f"({record.status}, {record.late_minutes} min late)"
    )

    await emit_event(
        EventType.ATTENDANCE_MARKED,
        _marked_event(record, employee, user),
        _rooms(user.id),
        actor=user,
    )
    message = "Checked in successfully"
    if record.is_late:
        message = f"Checked in {record.late_minutes} minutes late"
    return ApiResponse(message=message, data=_public(record))


@employee_router.post("/checkout", response_model=ApiResponse[AttendancePublic])
async def check_out(
    request: CheckOutRequest,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Record today's check-out and compute the hours worked.

    Raises:
        HTTPException: 400 if not checked in or already checked out
    """
    record = get_record(session, employee.id, today_str())
    if record is None or record.check_in_time is None:
        raise HTTPException(status_code=400, detail="You have not checked in today")
    if record.check_out_time is not None:
        raise HTTPException(status_code=400, detail="You have already checked out today")

    apply_check_out(record, datetime.now())
    record.check_out_location = request.location
    record.check_out_notes = request.notes
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Employee {employee.employee_code} checked out after {record.work_hours}h")

    await emit_event(
        EventType.ATTENDANCE_UPDATED,
        _marked_event(record, employee, user),
        _rooms(user.id),
        actor=user,
    )
    return ApiResponse(message="Checked out successfully", data=_public(record))


@employee_router.get("", response_model=PaginatedResponse[AttendancePublic])
async def my_attendance(
    session: SessionDep,
    employee: CurrentEmployeeDep,
    pagination: PaginationDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
):
    """Own attendance history, newest first."""
    statement = select(Attendance).where(Attendance.employee_id == employee.id)
    statement = _status_filter(_date_range(statement, start_date, end_date), status)
    rows, total = paginate(
        session,
        statement.order_by(col(Attendance.date).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        [_public(row) for row in rows], total, pagination.page, pagination.limit
    )


@employee_router.get("/status", response_model=ApiResponse[AttendanceStatusResponse])
async def attendance_status(session: SessionDep, employee: CurrentEmployeeDep):
    """What the check-in widget needs: can the employee check in or out right now."""
    today = today_str()
    record = get_record(session, employee.id, today)
    checked_in = record is not None and record.check_in_time is not None
    checked_out = record is not None and record.check_out_time is not None
    on_leave = record is not None and record.leave_status == RequestStatus.APPROVED.value

    hours = 0.0
    if checked_out:
        hours = record.work_hours
    elif checked_in:
        hours = compute_work_hours(record.check_in_time, datetime.now())

    return ApiResponse(
        data=AttendanceStatusResponse(
            date=today,
            has_checked_in=checked_in,
            has_checked_out=checked_out,
            can_check_in=not checked_in and not on_leave,
            can_check_out=checked_in and not checked_out,
            check_in_time=record.check_in_time if record else None,
            check_out_time=record.check_out_time if record else None,
            status=record.status if record else "not-marked",
            is_late=record.is_late if record else False,
            late_minutes=record.late_minutes if record else 0,
            hours_worked_so_far=hours,
            record=_public(record) if record else None,
        )
    )


@employee_router.get("/today", response_model=ApiResponse[Optional[AttendancePublic]])
async def today_attendance(session: SessionDep, employee: CurrentEmployeeDep):
    record = get_record(session, employee.id, today_str())
    if record is None:
        return ApiResponse(message="No attendance marked today", data=None)
    return ApiResponse(data=_public(record))


@employee_router.get("/summary", response_model=ApiResponse[AttendanceSummary])
async def my_summary(
    session: SessionDep,
    employee: CurrentEmployeeDep,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    """Monthly summary, the current month by default."""
    today = date.today()
    start, end = month_bounds(year or today.year, month or today.month)
    records = records_between(session, start, end, employee.id)
    return ApiResponse(data=summarize(employee.id, records, start, end))


@employee_router.post(
    "/correction", response_model=ApiResponse[AttendancePublic], status_code=201
)
async def request_correction(
    request: CorrectionRequest,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Ask an admin to correct the check-in/check-out times of a past day.

    Raises:
        HTTPException: 400 for a future date or when a correction is already pending
    """
    if request.date > date.today():
        raise HTTPException(status_code=400, detail="Cannot request a correction for a future date")

    day = request.date.isoformat()
    record = get_record(session, employee.id, day)
    if record is None:
        record = Attendance(employee_id=employee.id, date=day)
    elif record.correction_status == RequestStatus.PENDING.value:
        raise HTTPException(
            status_code=400, detail="A correction request is already pending for this date"
        )

    record.correction_status = RequestStatus.PENDING.value
    record.correction_reason = request.reason
    record.correction_check_in = request.correct_check_in_time
    record.correction_check_out = request.correct_check_out_time
    record.correction_requested_at = datetime.utcnow()
    record.correction_reviewed_by = None
    record.correction_reviewed_at = None
    record.correction_admin_notes = None
    record.updated_at = datetime.utcnow()
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Correction requested by {employee.employee_code} for {day}")

    await emit_event(
        EventType.CORRECTION_REQUESTED,
        {
            "attendance_id": record.id,
            "employee_id": employee.id,
            "employee_name": user.name,
            "date": day,
            "reason": request.reason,
        },
        [ADMIN_ROOM],
        actor=user,
    )
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="Attendance correction requested",
        message=f"{user.name} requested a correction for {day}",
        type=NotificationType.ATTENDANCE,
        link="/admin/attendance/corrections",
        data={"attendance_id": record.id},
    )
    return ApiResponse(message="Correction request submitted", data=_public(record))


@employee_router.get("/corrections", response_model=PaginatedResponse[AttendancePublic])
async def my_corrections(
    session: SessionDep, employee: CurrentEmployeeDep, pagination: PaginationDep
):
    statement = (
        select(Attendance)
        .where(
            Attendance.employee_id == employee.id,
            col(Attendance.correction_status).is_not(None),
        )
        .order_by(col(Attendance.correction_requested_at).desc())
    )
    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        [_public(row) for row in rows], total, pagination.page, pagination.limit
    )


@employee_router.post(
    "/leave", response_model=ApiResponse[list[AttendancePublic]], status_code=201
)
async def request_leave(
    request: LeaveRequest,
    session: SessionDep,
    employee: CurrentEmployeeDep,
    user: EmployeeUserDep,
):
    """
    Request leave for every weekday in an inclusive date range.

    Raises:
        HTTPException: 400 if the range has no weekdays, a day is already
            attended, or leave is already requested for a day
    """
    days = []
    current = request.start_date
    while current <= request.end_date:
        if current.weekday() < 5:
            days.append(current.isoformat())
        current += timedelta(days=1)
    if not days:
        raise HTTPException(status_code=400, detail="The selected range has no working days")

    existing = {
        record.date: record
        for record in session.exec(
            select(Attendance).where(
                Attendance.employee_id == employee.id, col(Attendance.date).in_(days)
            )
        ).all()
    }
    for day, record in existing.items():
        if record.check_in_time is not None:
            raise HTTPException(status_code=400, detail=f"Attendance already marked on {day}")
        if record.leave_status in (RequestStatus.PENDING.value, RequestStatus.APPROVED.value):
            raise HTTPException(status_code=400, detail=f"Leave already requested for {day}")

    now = datetime.utcnow()
    records = []
    for day in days:
        record = existing.get(day) or Attendance(employee_id=employee.id, date=day)
        record.leave_status = RequestStatus.PENDING.value
        record.leave_type = request.leave_type.value
        record.leave_reason = request.reason
        record.leave_requested_at = now
        record.leave_reviewed_by = None
        record.leave_reviewed_at = None
        record.leave_admin_notes = None
        record.updated_at = now
        session.add(record)
        records.append(record)
    session.commit()
    for record in records:
        session.refresh(record)
    logger.info(
        f"Leave requested by {employee.employee_code} for {len(days)} day(s) "
        f"from {days[0]} to {days[-1]}"
    )

    await emit_event(
        EventType.LEAVE_REQUESTED,
        {
            "employee_id": employee.id,
            "employee_name": user.name,
            "leave_type": request.leave_type.value,
            "start_date": request.start_date.isoformat(),
            "end_date": request.end_date.isoformat(),
            "days": len(days),
            "attendance_ids": [record.id for record in records],
        },
        [ADMIN_ROOM],
        actor=user,
    )
    await notify(
        session,
        role=UserRole.ADMIN.value,
        sender=user,
        title="Leave requested",
        message=(
            f"{user.name} requested {request.leave_type.value} leave "
            f"from {request.start_date} to {request.end_date}"
        ),
        type=NotificationType.ATTENDANCE,
        link="/admin/attendance/leaves",
        data={"employee_id": employee.id},
    )
    return ApiResponse(
        message="Leave request submitted", data=[_public(record) for record in records]
    )


@employee_router.get("/leaves", response_model=PaginatedResponse[AttendancePublic])
async def my_leaves(session: SessionDep, employee: CurrentEmployeeDep, pagination: PaginationDep):
    statement = (
        select(Attendance)
        .where(Attendance.employee_id == employee.id, col(Attendance.leave_status).is_not(None))
        .order_by(col(Attendance.date).desc())
    )
    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        [_public(row) for row in rows], total, pagination.page, pagination.limit
    )


# Admin


def _get_record_or_404(session: Session, attendance_id: int) -> Attendance:
    record = session.get(Attendance, attendance_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return record


def _pending_list(session: Session, pagination, clause, order_column) -> PaginatedResponse:
    statement = select(Attendance).where(clause).order_by(col(order_column).asc())
    rows, total = paginate(session, statement, pagination.offset, pagination.limit)
    return PaginatedResponse.build(
        attendance_with_employees(session, rows), total, pagination.page, pagination.limit
    )


async def _announce_review(
    session: Session,
    record: Attendance,
    event_type: EventType,
    admin: User,
    title: str,
    message: str,
) -> None:
    employee = session.get(Employee, record.employee_id)
    if employee is None:
        return
    payload = _public(record).model_dump(mode="json")
    await emit_event(event_type, payload, _rooms(employee.user_id), actor=admin)
    await notify(
        session,
        role=UserRole.EMPLOYEE.value,
        recipient_id=employee.user_id,
        sender=admin,
        title=title,
        message=message,
        type=NotificationType.ATTENDANCE,
        link="/employee/attendance",
        data={"attendance_id": record.id},
    )


@admin_router.get("", response_model=PaginatedResponse[AttendanceWithEmployee])
async def list_attendance(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    employee_id: Optional[int] = Query(None, gt=0),
    department: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
):
    """
    All attendance records, newest date first.

    **RBAC:** Admin only.
    """
    statement = select(Attendance)
    if employee_id:
        statement = statement.where(Attendance.employee_id == employee_id)
    dept = department_filter(department)
    if dept:
        statement = statement.join(Employee, Attendance.employee_id == Employee.id).where(
            Employee.department == dept
        )
    statement = _status_filter(_date_range(statement, start_date, end_date), status)

    rows, total = paginate(
        session,
        statement.order_by(col(Attendance.date).desc(), col(Attendance.check_in_time).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        attendance_with_employees(session, rows), total, pagination.page, pagination.limit
    )


@admin_router.get("/daily", response_model=ApiResponse[DailyAttendance])
async def get_daily_attendance(
    session: SessionDep,
    admin: AdminDep,
    day: Optional[date] = Query(None, alias="date"),
    department: Optional[str] = Query(None),
):
    """
    Every active employee for one day (today by default) classified as
    present, late, leave or absent, ordered by status then check-in time.

    **RBAC:** Admin only.
    """
    return ApiResponse(
        data=daily_attendance(session, day or date.today(), department_filter(department))
    )


@admin_router.get("/monthly", response_model=ApiResponse[MonthlyAttendance])
async def get_monthly_attendance(
    session: SessionDep,
    admin: AdminDep,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    department: Optional[str] = Query(None),
):
    """
    Per-employee monthly counts.

    **RBAC:** Admin only.
    """
    today = date.today()
    return ApiResponse(
        data=monthly_attendance(
            session, year or today.year, month or today.month, department_filter(department)
        )
    )


@admin_router.get("/report", response_model=ApiResponse[AttendanceReport])
async def get_attendance_report(
    session: SessionDep,
    admin: AdminDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    department: Optional[str] = Query(None),
):
    """
    Status and department breakdown with the attendance rate for a period.

    **RBAC:** Admin only.
    """
    start, end = report_period(start_date, end_date)
    return ApiResponse(data=attendance_report(session, start, end, department_filter(department)))


@admin_router.get("/late-arrivals", response_model=ApiResponse[list[AttendanceWithEmployee]])
async def get_late_arrivals(
    session: SessionDep,
    admin: AdminDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """
    Late check-ins in a period, most minutes late first.

    **RBAC:** Admin only.
    """
    start, end = report_period(start_date, end_date)
    return ApiResponse(data=late_arrivals(session, start, end))


@admin_router.get(
    "/employee/{employee_id}", response_model=ApiResponse[EmployeeAttendanceHistory]
)
async def get_employee_attendance(
    employee_id: int,
    session: SessionDep,
    admin: AdminDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """
    One employee's records and summary for a period.

    **RBAC:** Admin only.
    """
    row = employee_with_user(session, employee_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    employee, user = row

    start, end = report_period(start_date, end_date)
    records = records_between(session, start, end, employee.id)
    return ApiResponse(
        data=EmployeeAttendanceHistory(
            employee=to_employee_summary(employee, user),
            summary=summarize(employee.id, records, start, end),
            records=[_public(record) for record in records],
        )
    )


@admin_router.get(
    "/corrections/pending", response_model=PaginatedResponse[AttendanceWithEmployee]
)
async def pending_corrections(session: SessionDep, admin: AdminDep, pagination: PaginationDep):
    """
    **RBAC:** Admin only.
    """
    return _pending_list(
        session,
        pagination,
        Attendance.correction_status == RequestStatus.PENDING.value,
        Attendance.correction_requested_at,
    )


@admin_router.get("/leaves/pending", response_model=PaginatedResponse[AttendanceWithEmployee])
async def pending_leaves(session: SessionDep, admin: AdminDep, pagination: PaginationDep):
    """
    **RBAC:** Admin only.
    """
    return _pending_list(
        session,
        pagination,
        Attendance.leave_status == RequestStatus.PENDING.value,
        Attendance.date,
    )


@admin_router.put(
    "/correction/{attendance_id}/approve", response_model=ApiResponse[AttendancePublic]
)
async def approve_correction(
    attendance_id: int, request: ReviewRequest, session: SessionDep, admin: AdminDep
):
    """
    Apply the requested times and re-derive status, lateness and hours.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if no correction is pending on the record
    """
    record = _get_record_or_404(session, attendance_id)
    if record.correction_status != RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail="No pending correction for this record")

    before = counter_contribution(record)
    if record.correction_check_in is not None:
        record.check_in_time = record.correction_check_in
    if record.correction_check_out is not None:
        record.check_out_time = record.correction_check_out
    recalculate(record)

    employee = session.get(Employee, record.employee_id)
    if employee is not None:
        adjust_counters(employee, before, counter_contribution(record))
        session.add(employee)

    now = datetime.utcnow()
    record.correction_status = RequestStatus.APPROVED.value
    record.correction_reviewed_by = admin.id
    record.correction_reviewed_at = now
    record.correction_admin_notes = request.admin_notes
    record.updated_at = now
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Correction on attendance {record.id} approved by {admin.email}")

    await _announce_review(
        session,
        record,
        EventType.CORRECTION_REVIEWED,
        admin,
        "Correction approved",
        f"Your attendance correction for {record.date} was approved",
    )
    return ApiResponse(message="Correction approved", data=_public(record))


@admin_router.put(
    "/correction/{attendance_id}/reject", response_model=ApiResponse[AttendancePublic]
)
async def reject_correction(
    attendance_id: int, request: ReviewRequest, session: SessionDep, admin: AdminDep
):
    """
    **RBAC:** Admin only.
    """
    record = _get_record_or_404(session, attendance_id)
    if record.correction_status != RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail="No pending correction for this record")

    now = datetime.utcnow()
    record.correction_status = RequestStatus.REJECTED.value
    record.correction_reviewed_by = admin.id
    record.correction_reviewed_at = now
    record.correction_admin_notes = request.admin_notes
    record.updated_at = now
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Correction on attendance {record.id} rejected by {admin.email}")

    await _announce_review(
        session,
        record,
        EventType.CORRECTION_REVIEWED,
        admin,
        "Correction rejected",
        f"Your attendance correction for {record.date} was rejected",
    )
    return ApiResponse(message="Correction rejected", data=_public(record))


@admin_router.put("/leave/{attendance_id}/approve", response_model=ApiResponse[AttendancePublic])
async def approve_leave(
    attendance_id: int, request: ReviewRequest, session: SessionDep, admin: AdminDep
):
    """
    Approve leave for one day. The day then counts as leave, not absence.

    **RBAC:** Admin only.
    """
    record = _get_record_or_404(session, attendance_id)
    if record.leave_status != RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail="No pending leave request for this record")

    now = datetime.utcnow()
    record.leave_status = RequestStatus.APPROVED.value
    record.status = AttendanceStatus.LEAVE.value
    record.leave_reviewed_by = admin.id
    record.leave_reviewed_at = now
    record.leave_admin_notes = request.admin_notes
    record.updated_at = now
    employee = session.get(Employee, record.employee_id)
    if employee is not None:
        employee.total_leaves += 1
        session.add(employee)
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Leave on attendance {record.id} approved by {admin.email}")

    await _announce_review(
        session,
        record,
        EventType.LEAVE_REVIEWED,
        admin,
        "Leave approved",
        f"Your leave for {record.date} was approved",
    )
    return ApiResponse(message="Leave approved", data=_public(record))


@admin_router.put("/leave/{attendance_id}/reject", response_model=ApiResponse[AttendancePublic])
async def reject_leave(
    attendance_id: int, request: ReviewRequest, session: SessionDep, admin: AdminDep
):
    """
    **RBAC:** Admin only.
    """
    record = _get_record_or_404(session, attendance_id)
    if record.leave_status != RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail="No pending leave request for this record")

    now = datetime.utcnow()
    record.leave_status = RequestStatus.REJECTED.value
    record.leave_reviewed_by = admin.id
    record.leave_reviewed_at = now
    record.leave_admin_notes = request.admin_notes
    record.updated_at = now
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(f"Leave on attendance {record.id} rejected by {admin.email}")

    await _announce_review(
        session,
        record,
        EventType.LEAVE_REVIEWED,
        admin,
        "Leave rejected",
        f"Your leave for {record.date} was rejected",
    )
    return ApiResponse(message="Leave rejected", data=_public(record))


@admin_router.delete("/{attendance_id}", response_model=MessageResponse)
async def delete_attendance(attendance_id: int, session: SessionDep, admin: AdminDep):
    """
    Permanently remove an attendance record and take it out of the
    employee's running counters.

    **RBAC:** Admin only.
    """
    record = _get_record_or_404(session, attendance_id)
    employee = session.get(Employee, record.employee_id)
    if employee is not None:
        adjust_counters(
            employee, counter_contribution(record), dict.fromkeys(COUNTER_FIELDS, 0)
        )
        session.add(employee)
    session.delete(record)
    session.commit()
    logger.info(f"Attendance {attendance_id} deleted by {admin.email}")
    return MessageResponse(message="Attendance record deleted successfully")
