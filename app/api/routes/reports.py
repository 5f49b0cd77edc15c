from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import col, select

from app.api.dependencies import AdminDep, PaginationDep, SessionDep
from app.api.routes.attendance import department_filter, report_period
from app.core.attendance_service import attendance_report
from app.core.database import paginate
from app.core.logging import get_logger
from app.core.notification_service import notify
from app.core.populate import reports_public
from app.core.task_service import performance_report
from app.models.attendance import AttendanceReport
from app.models.common import ApiResponse, PaginatedResponse
from app.models.daily_report import DailyReport, DailyReportPublic, DailyReportReview
from app.models.employee import Employee
from app.models.enums import NotificationType, ReportStatus, UserRole, normalize_choice
from app.models.task import PerformanceReport

logger = get_logger(__name__)

router = APIRouter(
    prefix="/reports",
    tags=["admin-reports"],
    responses={404: {"description": "Report not found"}},
)


@router.get("/attendance", response_model=ApiResponse[AttendanceReport])
async def get_attendance_report(
    session: SessionDep,
    admin: AdminDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    department: Optional[str] = Query(None),
):
    """
    Attendance totals for a period, the current month by default.

    **RBAC:** Admin only.
    """
    start, end = report_period(start_date, end_date)
    return ApiResponse(data=attendance_report(session, start, end, department_filter(department)))


@router.get("/performance", response_model=ApiResponse[PerformanceReport])
async def get_performance_report(
    session: SessionDep,
    admin: AdminDep,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    department: Optional[str] = Query(None),
):
    """
    Task completion per employee.

    **RBAC:** Admin only.

    Args:
        start_date: Only count tasks created on or after this day
        end_date: Only count tasks created on or before this day
        department: Restrict to one department

    Returns:
        Employees ordered by completion rate
    """
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date cannot be after end_date")
    return ApiResponse(
        data=performance_report(session, start_date, end_date, department_filter(department))
    )


@router.get("/daily", response_model=PaginatedResponse[DailyReportPublic])
async def list_daily_reports(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    employee_id: Optional[int] = Query(None, gt=0),
    department: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """
    Submitted daily reports, newest day first.

    **RBAC:** Admin only.
    """
    statement = select(DailyReport)
    if employee_id:
        statement = statement.where(DailyReport.employee_id == employee_id)
    dept = department_filter(department)
    if dept:
        statement = statement.join(Employee, DailyReport.employee_id == Employee.id).where(
            Employee.department == dept
        )
    if status:
        try:
            statement = statement.where(
                DailyReport.status == normalize_choice(status, ReportStatus).value
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if start_date:
        statement = statement.where(DailyReport.report_date >= start_date)
    if end_date:
        statement = statement.where(DailyReport.report_date <= end_date)

    rows, total = paginate(
        session,
        statement.order_by(col(DailyReport.report_date).desc(), col(DailyReport.id).desc()),
        pagination.offset,
        pagination.limit,
    )
    return PaginatedResponse.build(
        reports_public(session, rows), total, pagination.page, pagination.limit
    )


@router.get("/daily/{report_id}", response_model=ApiResponse[DailyReportPublic])
async def get_daily_report(report_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    report = session.get(DailyReport, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return ApiResponse(data=reports_public(session, [report])[0])


@router.put("/daily/{report_id}/review", response_model=ApiResponse[DailyReportPublic])
async def review_daily_report(
    report_id: int, request: DailyReportReview, session: SessionDep, admin: AdminDep
):
    """
    Mark a report reviewed or approved and send feedback to its author.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 when the status is `submitted`
        HTTPException: 404 if the report does not exist
    """
    report = session.get(DailyReport, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    if request.status == ReportStatus.SUBMITTED:
        raise HTTPException(status_code=400, detail="Review status must be reviewed or approved")

    report.status = request.status.value
    report.reviewed_by = admin.id
    report.reviewed_at = datetime.utcnow()
    if request.feedback is not None:
        report.reviewer_feedback = request.feedback
    report.updated_at = datetime.utcnow()
    session.add(report)
    session.commit()
    session.refresh(report)
    logger.info(f"Report {report.report_code} marked {report.status} by {admin.email}")

    employee = session.get(Employee, report.employee_id)
    if employee is not None:
        await notify(
            session,
            role=UserRole.EMPLOYEE.value,
            recipient_id=employee.user_id,
            sender=admin,
            title=f"Daily report {report.status}",
            message=request.feedback or f"Your report for {report.report_date} was {report.status}",
            type=NotificationType.SUCCESS
            if report.status == ReportStatus.APPROVED.value
            else NotificationType.INFO,
            link=f"/employee/reports/{report.id}",
            data={"report_id": report.id},
        )
    return ApiResponse(message="Report reviewed", data=reports_public(session, [report])[0])
