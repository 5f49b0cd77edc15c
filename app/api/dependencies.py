"""
Shared API dependencies.
Contains reusable dependency functions for FastAPI endpoints.
Centralizes database sessions, authentication, role guards, role
profiles and pagination.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Query
from sqlmodel import Session, select

from app.core.config import settings
from app.core.database import get_session
from app.core.security import get_current_active_user, require_role
from app.models.client import Client
from app.models.employee import Employee
from app.models.enums import UserRole
from app.models.user import User

# Database session dependency
# Use this type annotation in route handlers to get automatic session injection
SessionDep = Annotated[Session, Depends(get_session)]

# Current User dependency for security
CurrentUserDep = Annotated[User, Depends(get_current_active_user)]

# Role guards
require_admin = require_role(UserRole.ADMIN.value)
require_employee = require_role(UserRole.EMPLOYEE.value)
require_client = require_role(UserRole.CLIENT.value)

AdminDep = Annotated[User, Depends(require_admin)]
EmployeeUserDep = Annotated[User, Depends(require_employee)]
ClientUserDep = Annotated[User, Depends(require_client)]


def get_current_employee(session: SessionDep, user: EmployeeUserDep) -> Employee:
    employee = session.exec(select(Employee).where(Employee.user_id == user.id)).first()
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee profile not found")
    if not employee.is_active:
        raise HTTPException(status_code=403, detail="Employee profile is inactive")
    return employee


def get_current_client(session: SessionDep, user: ClientUserDep) -> Client:
    client = session.exec(select(Client).where(Client.user_id == user.id)).first()
    if client is None:
        raise HTTPException(status_code=404, detail="Client profile not found")
    if not client.is_active:
        raise HTTPException(status_code=403, detail="Client profile is inactive")
    return client


CurrentEmployeeDep = Annotated[Employee, Depends(get_current_employee)]
CurrentClientDep = Annotated[Client, Depends(get_current_client)]


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Items per page",
    ),
) -> Pagination:
    return Pagination(page=page, limit=limit)


PaginationDep = Annotated[Pagination, Depends(get_pagination)]
