"""
Client profile model and schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator
from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.models.common import PartialUpdate
from app.models.employee import Address
from app.models.enums import CompanySize, Industry, normalize_choice
from app.models.user import normalize_email


class ContactPerson(BaseModel):
    name: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class Client(SQLModel, table=True):
    """ORM model for the clients table."""

    __tablename__ = "clients"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    client_code: str = Field(unique=True, index=True, max_length=20)

    company_name: str = Field(index=True, max_length=200)
    company_email: Optional[str] = Field(default=None, max_length=255)
    company_phone: Optional[str] = Field(default=None, max_length=30)
    company_website: Optional[str] = Field(default=None, max_length=255)
    industry: Optional[str] = Field(default=None, max_length=50)
    company_size: Optional[str] = Field(default=None, max_length=20)
    address: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    contact_person: dict = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    rating: float = Field(default=0)
    total_revenue: float = Field(default=0)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


# Request Schemas


class _ClientFields(SQLModel):
    @field_validator("industry", mode="before", check_fields=False)
    @classmethod
    def normalize_industry(cls, value):
        return None if value in (None, "") else normalize_choice(value, Industry)

    @field_validator("company_size", mode="before", check_fields=False)
    @classmethod
    def normalize_company_size(cls, value):
        return None if value in (None, "") else normalize_choice(value, CompanySize)

    @field_validator("company_email", check_fields=False)
    @classmethod
    def check_company_email(cls, value):
        return None if value in (None, "") else normalize_email(value)


class ClientCreate(_ClientFields):
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(default="client123", min_length=6, max_length=128)
    phone: Optional[str] = Field(default=None, max_length=30)

    company_name: str = Field(min_length=1, max_length=200)
    company_email: Optional[str] = None
    company_phone: Optional[str] = Field(default=None, max_length=30)
    company_website: Optional[str] = Field(default=None, max_length=255)
    industry: Optional[Industry] = None
    company_size: Optional[CompanySize] = None
    address: Optional[Address] = None
    contact_person: Optional[ContactPerson] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)


class ClientUpdate(_ClientFields, PartialUpdate):
    not_nullable = frozenset(
        {"name", "company_name", "address", "contact_person", "rating", "is_active"}
    )

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    company_email: Optional[str] = None
    company_phone: Optional[str] = Field(default=None, max_length=30)
    company_website: Optional[str] = Field(default=None, max_length=255)
    industry: Optional[Industry] = None
    company_size: Optional[CompanySize] = None
    address: Optional[Address] = None
    contact_person: Optional[ContactPerson] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    is_active: Optional[bool] = None


class ClientProfileUpdate(_ClientFields, PartialUpdate):
    """Fields a client may change on their own profile."""

    not_nullable = frozenset({"name", "address", "contact_person"})

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=30)
    company_email: Optional[str] = None
    company_phone: Optional[str] = Field(default=None, max_length=30)
    company_website: Optional[str] = Field(default=None, max_length=255)
    address: Optional[Address] = None
    contact_person: Optional[ContactPerson] = None


# Response Schemas


class ClientPublic(SQLModel):
    id: int
    user_id: int
    client_code: str
    name: str
    email: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    company_name: str
    company_email: Optional[str] = None
    company_phone: Optional[str] = None
    company_website: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    address: dict = {}
    contact_person: dict = {}
    rating: float = 0
    total_revenue: float = 0
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ClientSummary(BaseModel):
    id: int
    client_code: str
    company_name: str
    name: str
    email: str
