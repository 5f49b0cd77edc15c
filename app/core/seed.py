"""
Bootstrap data for a fresh database.
"""

from sqlmodel import Session

from app.core.accounts import admin_exists, create_admin_account
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def ensure_default_admin(session: Session) -> bool:
    """Create the configured admin account when no admin exists. Returns True if created."""
    if admin_exists(session):
        return False
    create_admin_account(
        session,
        name=settings.DEFAULT_ADMIN_NAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password=settings.DEFAULT_ADMIN_PASSWORD,
    )
    logger.warning(
        f"Seeded default admin {settings.DEFAULT_ADMIN_EMAIL}; change its password"
    )
    return True
