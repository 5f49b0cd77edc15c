"""
Database engine and session management.
"""

from collections.abc import Generator

from sqlalchemy import func
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from app.core.config import settings


def _engine_options() -> dict:
    if not settings.is_sqlite:
        return {"pool_pre_ping": True}

    options: dict = {"connect_args": {"check_same_thread": False}}
    # In-memory databases must share one connection across threads
    if settings.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


engine = create_engine(
    settings.DATABASE_URL, echo=settings.DATABASE_ECHO, **_engine_options()
)


def create_db_and_tables() -> None:
    # Import models so their tables are registered on the metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for the duration of a request."""
    with Session(engine) as session:
        yield session


def paginate(session: Session, statement, offset: int, limit: int) -> tuple[list, int]:
    """Run a select for one page. Returns (rows, total rows matching)."""
    total = session.exec(
        select(func.count()).select_from(statement.order_by(None).subquery())
    ).one()
    rows = session.exec(statement.offset(offset).limit(limit)).all()
    return list(rows), total
