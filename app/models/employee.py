"""
Employee profile model and schemas.

An Employee extends a User with HR data. The human-readable
`employee_code` (EMP0001, EMP0002, ...) is allocated on creation.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.enums import Department, normalize_choice
from app.models.user import normalize_email

BLOOD_GROUPS = {"A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-", ""}


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class EmergencyContact(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    phone: Optional[str] = None


class Employee(SQLModel, table=True):
    """ORM model for the employees table."""

    __tablename__ = "employees"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    employee_code: str = Field(unique=True, index=True, max_length=20)

    designation: str = Field(max_length=100)
    department: str = Field(index=True, max_length=50)
    joining_date: date = Field(default_factory=date.today)
    salary: float = Field(default=0, ge=0)
    reporting_to: Optional[int] = Field(default=None, foreign_key="employees.id")
    skills: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    experience: float = Field(default=0)
    date_of_birth: Optional[date] = Field(default=None)
    blood_group: str = Field(default="", max_length=3)
    bio: str = Field(default="", max_length=500)
    address: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    emergency_contact: dict = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )

    # Running attendance counters
    total_present: int = Field(default=0)
    total_absent: int = Field(default=0)
    total_late: int = Field(default=0)
    total_leaves: int = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Request Schemas


class _EmployeeFields(SQLModel):
    @field_validator("department", mode="before", check_fields=False)
    @classmethod
    def normalize_department(cls, value):
        return None if value is None else normalize_choice(value, Department)

    @field_validator("blood_group", check_fields=False)
    @classmethod
    def check_blood_group(cls, value):
        if value is not None and value not in BLOOD_GROUPS:
            raise ValueError(f"Invalid blood group '{value}'")
        return value


class EmployeeCreate(_EmployeeFields):
    """Admin creates the user account and the employee profile together."""

    name: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(default="employee123", min_length=6, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=30)

    designation: str = Field(min_length=1, max_length=100)
    department: Department
    joining_date: Optional[date] = None
    salary: float = Field(default=0, ge=0)
    reporting_to: Optional[int] = None
    skills: list[str] = []
    experience: float = Field(default=0, ge=0)
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    address: Optional[Address] = None
    emergency_contact: Optional[EmergencyContact] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)


class EmployeeUpdate(_EmployeeFields, PartialUpdate):
    not_nullable = frozenset(
        {
            "name", "designation", "department", "joining_date", "salary", "skills",
            "experience", "blood_group", "bio", "address", "emergency_contact", "is_active",
        }
    )

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    designation: Optional[str] = Field(default=None, min_length=1, max_length=100)
    department: Optional[Department] = None
    joining_date: Optional[date] = None
    salary: Optional[float] = Field(default=None, ge=0)
    reporting_to: Optional[int] = None
    skills: Optional[list[str]] = None
    experience: Optional[float] = Field(default=None, ge=0)
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    address: Optional[Address] = None
    emergency_contact: Optional[EmergencyContact] = None
    is_active: Optional[bool] = None


class EmployeeProfileUpdate(_EmployeeFields, PartialUpdate):
    """Fields an employee may change on their own profile."""

    not_nullable = frozenset(
        {"name", "skills", "bio", "blood_group", "address", "emergency_contact"}
    )

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    skills: Optional[list[str]] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    address: Optional[Address] = None
    emergency_contact: Optional[EmergencyContact] = None


# Response Schemas


class EmployeePublic(SQLModel):
    """Employee joined with its user account."""

    id: int
    user_id: int
    employee_code: str
    name: str
    email: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    designation: str
    department: str
    joining_date: date
    salary: float
    reporting_to: Optional[int] = None
    skills: list[str] = []
    experience: float = 0
    date_of_birth: Optional[date] = None
    blood_group: str = ""
    bio: str = ""
    address: dict = {}
    emergency_contact: dict = {}
    total_present: int = 0
    total_absent: int = 0
    total_late: int = 0
    total_leaves: int = 0
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EmployeeSummary(BaseModel):
    """Compact reference used when populating other records."""

    id: int
    employee_code: str
    name: str
    email: str
    designation: str
    department: str
    avatar: Optional[str] = None
