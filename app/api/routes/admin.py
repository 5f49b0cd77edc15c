import copy
from datetime import datetime
from typing import Any

from fastapi import APIRouter
from sqlmodel import Session, select

from app.api.dependencies import AdminDep, SessionDep
from app.core.cache import RedisClient, cache_key
from app.core.config import settings
from app.core.dashboard_service import admin_dashboard
from app.core.logging import get_logger
from app.models.admin import DEFAULT_COMPANY_SETTINGS, CompanySettings, SettingsUpdate
from app.models.common import ApiResponse
from app.models.dashboard import AdminDashboard

logger = get_logger(__name__)

router = APIRouter(tags=["admin"])

DASHBOARD_CACHE_KEY = cache_key("dashboard", "admin")


def load_company_settings(session: Session) -> CompanySettings:
    """Return the settings row, creating it with defaults on first use."""
    row = session.exec(select(CompanySettings).order_by(CompanySettings.id)).first()
    if row is None:
        row = CompanySettings(data=copy.deepcopy(DEFAULT_COMPANY_SETTINGS))
        session.add(row)
        session.commit()
        session.refresh(row)
    return row


def merge_settings(current: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Merge each section key by key; unknown sections are kept as given."""
    merged = copy.deepcopy(current)
    for section, values in changes.items():
        merged[section] = {**merged.get(section, {}), **values}
    return merged


@router.get("/dashboard", response_model=ApiResponse[AdminDashboard])
async def get_dashboard(session: SessionDep, admin: AdminDep):
    """
    Company-wide counters, today's attendance and recent activity.

    **RBAC:** Admin only.

    Served from Redis for a few seconds when caching is enabled.
    """
    cached = RedisClient.get_json(DASHBOARD_CACHE_KEY)
    if cached is not None:
        logger.debug("Admin dashboard served from cache")
        return ApiResponse(data=AdminDashboard.model_validate(cached))

    dashboard = admin_dashboard(session)
    RedisClient.set_json(
        DASHBOARD_CACHE_KEY,
        dashboard.model_dump(mode="json"),
        settings.DASHBOARD_CACHE_TTL_SECONDS,
    )
    return ApiResponse(data=dashboard)


@router.get("/settings", response_model=ApiResponse[dict[str, Any]])
async def get_settings(session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    return ApiResponse(data=load_company_settings(session).data)


@router.put("/settings", response_model=ApiResponse[dict[str, Any]])
async def update_settings(request: SettingsUpdate, session: SessionDep, admin: AdminDep):
    """
    Merge a partial settings document into the stored one.

    **RBAC:** Admin only.
    """
    row = load_company_settings(session)
    row.data = merge_settings(row.data, request.model_dump(exclude_none=True))
    row.updated_by = admin.id
    row.updated_at = datetime.utcnow()
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info(f"Company settings updated by {admin.email}")
    return ApiResponse(message="Settings updated successfully", data=row.data)
