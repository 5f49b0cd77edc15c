"""
Tests for service endpoints and first-run seeding.
"""

from sqlmodel import select

from app.core.seed import ensure_default_admin
from app.models.user import User


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["service"] == "OfficeSphere API"


def test_ready_reports_optional_backends(client):
    response = client.get("/ready")

    assert response.json() == {
        "status": "ready",
        "checks": {"database": "ok", "redis": "disabled", "kafka_producer": "disabled"},
    }


def test_root(client):
    assert client.get("/").json()["docs"] == "/docs"


def test_seed_creates_admin_only_once(db_session):
    assert ensure_default_admin(db_session) is True
    assert ensure_default_admin(db_session) is False

    admins = db_session.exec(select(User).where(User.role == "admin")).all()
    assert [user.email for user in admins] == ["admin@officesphere.local"]


def test_seed_skips_when_admin_exists(db_session, admin_user):
    assert ensure_default_admin(db_session) is False
