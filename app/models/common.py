"""
Response envelopes and request bases shared by every endpoint.
"""

import math
from typing import ClassVar, Generic, Optional, TypeVar

from pydantic import BaseModel, model_validator
from sqlmodel import SQLModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Single-object response: `{success, message, data}`."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """List response: `{success, data, count, total, page, pages}`."""

    success: bool = True
    data: list[T]
    count: int
    total: int
    page: int
    pages: int

    @classmethod
    def build(cls, items: list, total: int, page: int, limit: int):
        return cls(
            data=items,
            count=len(items),
            total=total,
            page=page,
            pages=page_count(total, limit),
        )


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None


def page_count(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)


class PartialUpdate(SQLModel):
    """
    Base for update bodies. Omitted fields are left unchanged; an explicit
    null is rejected for the fields listed in `not_nullable`, whose columns
    cannot hold one.
    """

    not_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = sorted(
            name
            for name in self.not_nullable & self.model_fields_set
            if getattr(self, name) is None
        )
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self
