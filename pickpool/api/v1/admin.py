"""Admin endpoints: list users and change account status."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pickpool.api.v1.auth import require_admin
from pickpool.core.database import get_db
from pickpool.core.errors import StoreError, translate_store_error
from pickpool.schemas.auth import (
    CurrentUser,
    StatusUpdateRequest,
    StatusUpdateResponse,
    UserListItem,
    UsersListResponse,
)
from pickpool.services.account_state import apply_status_change
from pickpool.services.credential_store import CredentialStore

router = APIRouter()


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users, newest first (admin only)."""
    try:
        users = CredentialStore(db).list_users()
    except StoreError as e:
        raise translate_store_error(e) from e
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])


@router.patch("/users/{user_id}/status", response_model=StatusUpdateResponse)
def update_user_status(
    user_id: int,
    body: StatusUpdateRequest,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> StatusUpdateResponse:
    """Approve, suspend or return an account to pending (admin only)."""
    try:
        new_status = apply_status_change(CredentialStore(db), user_id, body.status)
        db.commit()
    except StoreError as e:
        db.rollback()
        raise translate_store_error(e) from e
    return StatusUpdateResponse(id=user_id, status=new_status.value)
