"""
Shared fixtures: an in-memory database, a test client and one account per role.
"""

import os

# Settings are read at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["KAFKA_ENABLED"] = "false"
os.environ["SEED_DEFAULT_ADMIN"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from app.core.accounts import (  # noqa: E402
    create_admin_account,
    create_client_account,
    create_employee_account,
)
from app.core.database import create_db_and_tables, engine, get_session  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def reset_database():
    """Start every test with empty tables."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(db_session):
    """Test client whose requests share the test's database session."""
    app.dependency_overrides[get_session] = lambda: db_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_user(db_session):
    _, user = create_admin_account(
        db_session, name="Ada Admin", email="admin@example.com", password="secret123"
    )
    return user


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def make_employee(db_session):
    """Factory for employee accounts. Returns (employee, user)."""
    counter = {"n": 0}

    def _make(name: str = None, department: str = "Development", **profile):
        counter["n"] += 1
        n = counter["n"]
        return create_employee_account(
            db_session,
            name=name or f"Employee {n}",
            email=f"employee{n}@example.com",
            password="secret123",
            profile={"designation": "Engineer", "department": department, **profile},
        )

    return _make


@pytest.fixture
def employee(make_employee):
    return make_employee(name="Eve Employee")


@pytest.fixture
def employee_headers(employee):
    return auth_headers(employee[1])


@pytest.fixture
def make_client(db_session):
    """Factory for client accounts. Returns (client, user)."""
    counter = {"n": 0}

    def _make(company_name: str = None, **profile):
        counter["n"] += 1
        n = counter["n"]
        return create_client_account(
            db_session,
            name=f"Client Contact {n}",
            email=f"client{n}@example.com",
            password="secret123",
            profile={"company_name": company_name or f"Company {n}", **profile},
        )

    return _make


@pytest.fixture
def client_account(make_client):
    return make_client(company_name="Acme Corp", industry="Technology")


@pytest.fixture
def client_headers(client_account):
    return auth_headers(client_account[1])


@pytest.fixture
def headers_for():
    """Build bearer headers for any user."""
    return auth_headers
