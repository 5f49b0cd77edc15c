from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from sqlmodel import Session, col, or_, select

from app.api.dependencies import AdminDep, PaginationDep, SessionDep
from app.api.routes.employees import active_filter
from app.core.accounts import create_client_account
from app.core.database import paginate
from app.core.logging import get_logger
from app.core.populate import client_project_counts, to_client_public
from app.models.client import Client, ClientCreate, ClientPublic, ClientUpdate
from app.models.common import ApiResponse, MessageResponse, PaginatedResponse
from app.models.enums import Industry, enum_values, normalize_choice
from app.models.user import User

logger = get_logger(__name__)

router = APIRouter(
    prefix="/clients",
    tags=["admin-clients"],
    responses={404: {"description": "Client not found"}},
)

USER_FIELDS = {"name", "phone"}
NESTED_FIELDS = ("address", "contact_person")


def _get_client_or_404(session: Session, client_id: int) -> tuple[Client, User]:
    row = session.exec(
        select(Client, User).join(User, Client.user_id == User.id).where(Client.id == client_id)
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return row[0], row[1]


def apply_client_update(session: Session, client: Client, user: User, changes: dict) -> None:
    """Split changes between the user account and the client profile and commit."""
    for key in NESTED_FIELDS:
        if key in changes and changes[key] is not None:
            changes[key] = {**(getattr(client, key) or {}), **changes[key]}

    now = datetime.utcnow()
    for key, value in enum_values(changes).items():
        if key in USER_FIELDS:
            setattr(user, key, value)
        else:
            setattr(client, key, value)
    if "is_active" in changes:
        user.is_active = changes["is_active"]

    client.updated_at = now
    user.updated_at = now
    session.add(client)
    session.add(user)
    session.commit()
    session.refresh(client)
    session.refresh(user)


@router.get("", response_model=PaginatedResponse[ClientPublic])
async def list_clients(
    session: SessionDep,
    admin: AdminDep,
    pagination: PaginationDep,
    search: Optional[str] = Query(None, max_length=100),
    industry: Optional[str] = Query(None),
    status: Optional[str] = Query(None, description="active (default), inactive or all"),
):
    """
    List clients with their project counts.

    **RBAC:** Admin only.
    """
    statement = select(Client, User).join(User, Client.user_id == User.id)

    clause = active_filter(Client, status)
    if clause is not None:
        statement = statement.where(clause)
    if industry:
        try:
            statement = statement.where(
                Client.industry == normalize_choice(industry, Industry).value
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if search:
        pattern = f"%{search.strip()}%"
        statement = statement.where(
            or_(
                col(Client.company_name).ilike(pattern),
                col(Client.client_code).ilike(pattern),
                col(User.name).ilike(pattern),
                col(User.email).ilike(pattern),
            )
        )

    rows, total = paginate(
        session,
        statement.order_by(col(Client.created_at).desc(), col(Client.id).desc()),
        pagination.offset,
        pagination.limit,
    )
    counts = client_project_counts(session, [client.id for client, _ in rows])
    items = [to_client_public(client, user, counts.get(client.id)) for client, user in rows]
    return PaginatedResponse.build(items, total, pagination.page, pagination.limit)


@router.post("", response_model=ApiResponse[ClientPublic], status_code=201)
async def create_client(request: ClientCreate, session: SessionDep, admin: AdminDep):
    """
    Create a client account with the next CLI code.

    **RBAC:** Admin only.

    Raises:
        HTTPException: 400 if the e-mail is taken
    """
    logger.info(f"Admin {admin.email} creating client {request.email}")

    profile = enum_values(
        request.model_dump(
            exclude={"name", "email", "password", "phone", *NESTED_FIELDS},
            exclude_none=True,
        )
    )
    for key in NESTED_FIELDS:
        nested = getattr(request, key)
        profile[key] = nested.model_dump() if nested else {}

    client, user = create_client_account(
        session,
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
        profile=profile,
    )
    return ApiResponse(message="Client created successfully", data=to_client_public(client, user))


@router.get("/{client_id}", response_model=ApiResponse[ClientPublic])
async def get_client(client_id: int, session: SessionDep, admin: AdminDep):
    """
    **RBAC:** Admin only.
    """
    client, user = _get_client_or_404(session, client_id)
    counts = client_project_counts(session, [client.id])
    return ApiResponse(data=to_client_public(client, user, counts.get(client.id)))


@router.put("/{client_id}", response_model=ApiResponse[ClientPublic])
async def update_client(
    client_id: int, request: ClientUpdate, session: SessionDep, admin: AdminDep
):
    """
    **RBAC:** Admin only.
    """
    client, user = _get_client_or_404(session, client_id)
    apply_client_update(session, client, user, request.model_dump(exclude_unset=True))
    logger.info(f"Client {client.client_code} updated by {admin.email}")

    counts = client_project_counts(session, [client.id])
    return ApiResponse(
        message="Client updated successfully",
        data=to_client_public(client, user, counts.get(client.id)),
    )


@router.delete("/{client_id}", response_model=MessageResponse)
async def delete_client(client_id: int, session: SessionDep, admin: AdminDep):
    """
    Soft delete: the client and their account are deactivated. Projects
    are kept for history.

    **RBAC:** Admin only.
    """
    client, user = _get_client_or_404(session, client_id)
    apply_client_update(session, client, user, {"is_active": False})
    logger.info(f"Client {client.client_code} deactivated by {admin.email}")
    return MessageResponse(message="Client deactivated successfully")
