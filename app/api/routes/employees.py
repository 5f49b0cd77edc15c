from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, or_, select

from app.api.dependencies import AdminDep, PaginationDep, SessionDep
from app.core.accounts import create_employee_account
from app.core.database import paginate
from app.core.logging import get_logger
from app.core.populate import employee_with_user, to_employee_public
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.employee import Employee, EmployeeCreate, EmployeePublic, EmployeeUpdate
from app.models.enums import Department, enum_values, normalize_choice
from app.models.user import User

logger = get_logger(__name__)

router = APIRouter(
    prefix="/employees",
    tags=["admin-employees"],
    responses={404: {"description": "Employee not found"}},
)

USER_FIELDS = {"name", "phone"}


def active_filter(model, status: Optional[str]):
    """Translate the `status` list parameter into an is_active clause."""
    if status is None or status == "active":
        return model.is_active == True  # noqa: E712
    if status == "inactive":
        return model.is_active == False  # noqa: E712
    if status == "all":
        return None
    raise HTTPException(
        status_code=400, detail="Status must be one of: active, inactive, all"
    )


def _get_employee_or_404(session: Session, employee_id: int) -> tuple[Employee, User]:
    row = employee_with_user(session, employee_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return row


def _check_manager(session: Session, manager_id: Optional[int], employee_id: Optional[int] = None):
    if manager_id is None:
        return
    if manager_id == employee_id:
        raise HTTPException(status_code=400, detail="An employee cannot report to themselves")
    manager = session.get(Employee, manager_id)
    if manager is None or not manager.is_active:
        raise HTTPException(status_code=400, detail=f"Manager {manager_id} does not exist")


@router.get("", response_model=PaginatedResponse[EmployeePublic])
async def list_employees(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    department: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="active (default), inactive or all"),
):
    """
    List employees with search, department and status filters.

    **RBAC:** Admin only.
    """
    statement = select(Employee, User).join(User, Employee.user_id == User.id)

    clause = active_filter(Employee, status)
    if clause is not None:
        statement = statement.where(clause)
    if department:
        try:
            statement = statement.where(
                Employee.department == normalize_choice(department, Department).value
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                col(User.name).ilike(pattern),
                col(User.email).ilike(pattern),
                col(Employee.employee_code).ilike(pattern),
                col(Employee.designation).ilike(pattern),
            )
        )

    rows, total = paginate(
        session,
        statement.order_by(col(Employee.created_at).desc(), col(Employee.id).desc()),
        pagination.offset,
        pagination.limit,
    )
    items = [to_employee_public(employee, user) for employee, user in rows]
    return PaginatedResponse.build(items, total, pagination.page, pagination.limit)


@router.post("", response_model=ApiResponse[EmployeePublic], status_code=201)
async def create_employee(request: EmployeeCreate, session: SessionDep, admin: AdminDep):
    """
    Create a user account and employee profile with the next EMP code.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if the e-mail is taken or the manager does not exist
    """
    logger.info(f"Admin {admin.email} creating employee {request.email}")
    _check_manager(session, request.reporting_to)

    profile = enum_values(
        request.model_dump(
            exclude={"name", "email", "password", "phone", "address", "emergency_contact"},
            exclude_none=True,
        )
    )
    profile["address"] = request.address.model_dump() if request.address else {}
    profile["emergency_contact"] = (
        request.emergency_contact.model_dump() if request.emergency_contact else {}
    )

    employee, user = create_employee_account(
        session,
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
        profile=profile,
    )
    return ApiResponse(
        message="Employee created successfully", data=to_employee_public(employee, user)
    )


@router.get("/{employee_id}", response_model=ApiResponse[EmployeePublic])
async def get_employee(employee_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    employee, user = _get_employee_or_404(session, employee_id)
    return ApiResponse(data=to_employee_public(employee, user))


def apply_employee_update(
    session: Session, employee: Employee, user: User, changes: dict
) -> None:
    """Split changes between the user account and the employee profile and commit."""
    for key in ("address", "emergency_contact"):
        if key in changes and changes[key] is not None:
            changes[key] = {**(getattr(employee, key) or {}), **changes[key]}

    now = datetime.utcnow()
    for key, value in enum_values(changes).items():
        if key in USER_FIELDS:
            setattr(user, key, value)
        else:
            setattr(employee, key, value)
    if "is_active" in changes:
        user.is_active = changes["is_active"]

    employee.updated_at = now
    user.updated_at = now
    session.add(employee)
    session.add(user)
    session.commit()
    session.refresh(employee)
    session.refresh(user)


@router.put("/{employee_id}", response_model=ApiResponse[EmployeePublic])
async def update_employee(
    employee_id: int, request: EmployeeUpdate, session: SessionDep, admin: AdminDep
):
    """
    Update account and profile fields. Nested address and emergency
    contact are merged into the stored values.

    **RBAC:** Admin only.
    """
    employee, user = _get_employee_or_404(session, employee_id)
    changes = request.model_dump(exclude_unset=True)
    if "reporting_to" in changes:
        _check_manager(session, changes["reporting_to"], employee.id)

    apply_employee_update(session, employee, user, changes)
    logger.info(f"Employee {employee.employee_code} updated by {admin.email}")
    return ApiResponse(
        message="Employee updated successfully", data=to_employee_public(employee, user)
    )


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(employee_id: int, session: SessionDep, admin: AdminDep):
    """
    Soft delete: the employee and their account are deactivated.

    **RBAC:** Admin only.
    """
    employee, user = _get_employee_or_404(session, employee_id)
    apply_employee_update(session, employee, user, {"is_active": False})
    logger.info(f"Employee {employee.employee_code} deactivated by {admin.email}")
    return MessageResponse(message="Employee deactivated successfully")
