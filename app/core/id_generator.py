"""
Human-readable sequential codes (EMP0001, CLI0001, PRJ0001, TSK0001, MTG00001, RPT00001).

A code is the row count plus one, zero-padded, skipping forward past codes
that already exist. Concurrent creates can still pick the same candidate;
the unique constraint on every code column rejects the loser, which rolls
back and retries with a fresh candidate.
"""

from typing import Callable, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

from app.core.config import settings
from app.core.exceptions import IDGenerationError
from app.core.logging import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=SQLModel)

# prefix, zero-padded width
EMPLOYEE_CODE = ("EMP", 4)
CLIENT_CODE = ("CLI", 4)
PROJECT_CODE = ("PRJ", 4)
TASK_CODE = ("TSK", 4)
MEETING_CODE = ("MTG", 5)
REPORT_CODE = ("RPT", 5)

# Upper bound on forward probing when a count-based candidate is taken
_MAX_CANDIDATES = 1000


def format_code(prefix: str, width: int, number: int) -> str:
    return f"{prefix}{number:0{width}d}"


def next_sequential_id(
    session: Session, model: type[SQLModel], field: str, prefix: str, width: int
) -> str:
    """Return the first free code at or after `count + 1`."""
    column = getattr(model, field)
    count = session.exec(select(func.count()).select_from(model)).one()
    number = count + 1

    for _ in range(_MAX_CANDIDATES):
        candidate = format_code(prefix, width, number)
        taken = session.exec(select(column).where(column == candidate)).first()
        if taken is None:
            return candidate
        number += 1

    raise IDGenerationError(f"No free {prefix} code found after {_MAX_CANDIDATES} candidates")


def create_with_sequential_id(
    session: Session,
    model: type[M],
    field: str,
    code_format: tuple[str, int],
    build: Callable[[str], M],
    max_attempts: Optional[int] = None,
) -> M:
    """
    Allocate a code, let `build` add the new rows to the session, and commit.

    `build` receives the allocated code and must return the instance that
    carries it. It is called again with a new code if the commit hits a
    uniqueness violation, so it must create fresh objects on every call.

    Raises:
        IDGenerationError: if every attempt collided
    """
    prefix, width = code_format
    attempts = max_attempts or settings.ID_GENERATION_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        code = next_sequential_id(session, model, field, prefix, width)
        try:
            instance = build(code)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning(
                f"Code {code} collided on attempt {attempt}/{attempts}: {e.orig}"
            )
            continue

        session.refresh(instance)
        logger.info(f"Allocated {model.__name__} code {code}")
        return instance

    raise IDGenerationError(
        f"Could not allocate a unique {prefix} code after {attempts} attempts"
    )
