"""
Account creation shared by self-registration and admin management.

A user account and its role profile are committed together, so a failed
code allocation never leaves an orphaned user behind.
"""

from datetime import date
from typing import Any, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from app.core.id_generator import CLIENT_CODE, EMPLOYEE_CODE, create_with_sequential_id
from app.core.logging import get_logger
from app.core.security import hash_password
from app.models.admin import Admin
from app.models.client import Client
from app.models.employee import Employee
from app.models.enums import UserRole
from app.models.user import User

logger = get_logger(__name__)


def ensure_email_available(session: Session, email: str) -> None:
    """
    Raises:
        HTTPException: 400 if the e-mail already belongs to a user
    """
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing is not None:
        logger.warning(f"Attempt to reuse registered email {email}")
        raise HTTPException(status_code=400, detail="User already exists with this email")


def _new_user(name: str, email: str, password: str, role: UserRole, phone: Optional[str]) -> User:
    return User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role.value,
        phone=phone,
    )


def create_employee_account(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    profile: dict[str, Any],
) -> tuple[Employee, User]:
    ensure_email_available(session, email)
    password_hash = hash_password(password)
    fields = {**profile, "joining_date": profile.get("joining_date") or date.today()}

    def build(code: str) -> Employee:
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=UserRole.EMPLOYEE.value,
            phone=phone,
        )
        session.add(user)
        session.flush()
        employee = Employee(user_id=user.id, employee_code=code, **fields)
        session.add(employee)
        return employee

    employee = create_with_sequential_id(
        session, Employee, "employee_code", EMPLOYEE_CODE, build
    )
    user = session.get(User, employee.user_id)
    logger.info(f"Employee {employee.employee_code} created for {email}")
    return employee, user


def create_client_account(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    profile: dict[str, Any],
) -> tuple[Client, User]:
    ensure_email_available(session, email)
    password_hash = hash_password(password)

    def build(code: str) -> Client:
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            role=UserRole.CLIENT.value,
            phone=phone,
        )
        session.add(user)
        session.flush()
        client = Client(user_id=user.id, client_code=code, **profile)
        session.add(client)
        return client

    client = create_with_sequential_id(session, Client, "client_code", CLIENT_CODE, build)
    user = session.get(User, client.user_id)
    logger.info(f"Client {client.client_code} created for {email}")
    return client, user


def create_admin_account(
    session: Session,
    *,
    name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
) -> tuple[Admin, User]:
    ensure_email_available(session, email)
    user = _new_user(name, email, password, UserRole.ADMIN, phone)
    session.add(user)
    session.flush()
    admin = Admin(user_id=user.id)
    session.add(admin)
    session.commit()
    session.refresh(user)
    session.refresh(admin)
    logger.info(f"Admin account created for {email}")
    return admin, user


def admin_exists(session: Session) -> bool:
    return (
        session.exec(select(User).where(User.role == UserRole.ADMIN.value)).first()
        is not None
    )
