from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from sqlmodel import select

from app.api.dependencies import CurrentUserDep, SessionDep
from app.core.accounts import (
    admin_exists,
    create_admin_account,
    create_client_account,
    create_employee_account,
)
from app.core.logging import get_logger
from app.core.populate import to_client_public, to_employee_public
from app.core.security import create_access_token, hash_password, verify_password
from app.models.admin import Admin
from app.models.client import Client
from app.models.common import ApiResponse, MessageResponse
from app.models.employee import Employee
from app.models.enums import Department, UserRole
from app.models.user import (
    AuthPayload,
    LoginRequest,
    PasswordUpdate,
    RegisterRequest,
    User,
    UserPublic,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class CurrentUserProfile(BaseModel):
    user: UserPublic
    profile: Optional[dict[str, Any]] = None


def _profile_id(session, user: User) -> Optional[int]:
    model = {
        UserRole.ADMIN.value: Admin,
        UserRole.EMPLOYEE.value: Employee,
        UserRole.CLIENT.value: Client,
    }[user.role]
    profile = session.exec(select(model).where(model.user_id == user.id)).first()
    return profile.id if profile else None


@router.post("/register", response_model=ApiResponse[AuthPayload], status_code=201)
async def register(request: RegisterRequest, session: SessionDep):
    """
    Create an account and its role profile, and sign the user in.

    The first admin may self-register; later admins must be created by an
    existing admin.

    Raises:
        HTTPException: 400 if the e-mail is taken, 403 for a second admin
    """
    logger.info(f"Registration requested for {request.email} as {request.role.value}")

    if request.role == UserRole.ADMIN:
        if admin_exists(session):
            raise HTTPException(
                status_code=403, detail="Admin accounts can only be created by an admin"
            )
        profile, user = create_admin_account(
            session,
            name=request.name,
            email=request.email,
            password=request.password,
            phone=request.phone,
        )
    elif request.role == UserRole.EMPLOYEE:
        profile, user = create_employee_account(
            session,
            name=request.name,
            email=request.email,
            password=request.password,
            phone=request.phone,
            profile={
                "designation": request.designation or "Employee",
                "department": (request.department or Department.DEVELOPMENT).value,
            },
        )
    else:
        profile, user = create_client_account(
            session,
            name=request.name,
            email=request.email,
            password=request.password,
            phone=request.phone,
            profile={
                "company_name": request.company_name or request.name,
                "industry": request.industry.value if request.industry else None,
            },
        )

    return ApiResponse(
        message="Registration successful",
        data=AuthPayload(
            token=create_access_token(user),
            user=UserPublic.model_validate(user),
            profile_id=profile.id,
        ),
    )


@router.post("/login", response_model=ApiResponse[AuthPayload])
async def login(request: LoginRequest, session: SessionDep):
    """
    Exchange e-mail and password for a bearer token.

    Raises:
        HTTPException: 401 for wrong credentials or a deactivated account
    """
    user = session.exec(select(User).where(User.email == request.email)).first()
    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning(f"Failed login for {request.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Your account has been deactivated")

    user.last_login = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"User {user.email} logged in")

    return ApiResponse(
        message="Login successful",
        data=AuthPayload(
            token=create_access_token(user),
            user=UserPublic.model_validate(user),
            profile_id=_profile_id(session, user),
        ),
    )


@router.get("/me", response_model=ApiResponse[CurrentUserProfile])
async def get_me(session: SessionDep, current_user: CurrentUserDep):
    """Return the signed-in user together with their role profile."""
    profile = None
    if current_user.role == UserRole.EMPLOYEE.value:
        employee = session.exec(
            select(Employee).where(Employee.user_id == current_user.id)
        ).first()
        if employee:
            profile = to_employee_public(employee, current_user).model_dump(mode="json")
    elif current_user.role == UserRole.CLIENT.value:
        client = session.exec(select(Client).where(Client.user_id == current_user.id)).first()
        if client:
            profile = to_client_public(client, current_user).model_dump(mode="json")
    else:
        admin = session.exec(select(Admin).where(Admin.user_id == current_user.id)).first()
        if admin:
            profile = admin.model_dump(mode="json")

    return ApiResponse(
        data=CurrentUserProfile(user=UserPublic.model_validate(current_user), profile=profile)
    )


@router.get("/verify", response_model=ApiResponse[UserPublic])
async def verify_token(current_user: CurrentUserDep):
    """Cheap token check used by the frontend on page load."""
    return ApiResponse(message="Token is valid", data=UserPublic.model_validate(current_user))


@router.put("/update-password", response_model=ApiResponse[AuthPayload])
async def update_password(
    request: PasswordUpdate, session: SessionDep, current_user: CurrentUserDep
):
    """
    Change the signed-in user's password and issue a fresh token.

    Raises:
        HTTPException: 400 if the current password is wrong
    """
    if not verify_password(request.current_password, current_user.password_hash):
        logger.warning(f"Password change for {current_user.email} rejected")
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.password_hash = hash_password(request.new_password)
    current_user.updated_at = datetime.utcnow()
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    logger.info(f"Password updated for {current_user.email}")

    return ApiResponse(
        message="Password updated successfully",
        data=AuthPayload(
            token=create_access_token(current_user),
            user=UserPublic.model_validate(current_user),
            profile_id=_profile_id(session, current_user),
        ),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: CurrentUserDep):
    """Tokens are stateless; the client discards its copy."""
    logger.info(f"User {current_user.email} logged out")
    return MessageResponse(message="Logged out successfully")
