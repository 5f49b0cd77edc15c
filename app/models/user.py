"""
User accounts and authentication schemas.

Every person who signs in is a User; the role decides which profile
table (Admin, Employee, Client) extends it.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlmodel import Field, SQLModel

from app.models.enums import Department, Industry, UserRole, normalize_choice

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(value: str) -> str:
    """Lower-case and trim an e-mail address, rejecting malformed ones."""
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email")
    return value


class User(SQLModel, table=True):
    """ORM model for the users table."""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(index=True, unique=True, max_length=255)
    password_hash: str = Field(max_length=255)
    role: str = Field(default=UserRole.EMPLOYEE.value, index=True, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=30)
    avatar: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = Field(default=True)
    last_login: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Request Schemas


class RegisterRequest(SQLModel):
    """Self-registration. Profile fields apply to the matching role only."""

    name: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    role: UserRole = UserRole.EMPLOYEE
    phone: Optional[str] = Field(default=None, max_length=30)

    # Employee profile
    designation: Optional[str] = Field(default=None, max_length=100)
    department: Optional[Department] = None

    # Client profile
    company_name: Optional[str] = Field(default=None, max_length=200)
    industry: Optional[Industry] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return normalize_choice(value, UserRole)

    @field_validator("department", mode="before")
    @classmethod
    def normalize_department(cls, value):
        return None if value in (None, "") else normalize_choice(value, Department)

    @field_validator("industry", mode="before")
    @classmethod
    def normalize_industry(cls, value):
        return None if value in (None, "") else normalize_choice(value, Industry)


class LoginRequest(SQLModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class PasswordUpdate(SQLModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


# Response Schemas


class UserPublic(SQLModel):
    id: int
    name: str
    email: str
    role: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthPayload(BaseModel):
    """Token plus the signed-in user and the id of their role profile."""

    token: str
    token_type: str = "bearer"
    user: UserPublic
    profile_id: Optional[int] = None
