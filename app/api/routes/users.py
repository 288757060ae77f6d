"""Account management: read, update, delete, activate and deactivate users."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.routes.auth import get_account_manager, get_current_user, require_admin
from app.models.user import UserRole
from app.schemas.auth import CurrentUser
from app.schemas.user import AccountResponse, UserUpdateRequest
from app.services.accounts import AccountError, AccountManager

logger = logging.getLogger(__name__)
router = APIRouter()


def _http_error(e: AccountError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


def _ensure_self_or_admin(current_user: CurrentUser, user_id: int) -> None:
    if current_user.role != UserRole.ADMIN.value and current_user.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access another user's account",
        )


@router.get("", response_model=list[AccountResponse])
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> list[AccountResponse]:
    """List all users (admin only)."""
    logger.info("Fetching all users")
    return [AccountResponse.model_validate(u) for u in accounts.list_all()]


@router.get("/{user_id}", response_model=AccountResponse)
def get_user(
    user_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> AccountResponse:
    """Fetch one user. Non-admins may only fetch themselves."""
    _ensure_self_or_admin(current_user, user_id)
    try:
        user = accounts.get_by_id(user_id)
    except AccountError as e:
        raise _http_error(e) from e
    return AccountResponse.model_validate(user)


@router.put("/{user_id}", response_model=AccountResponse)
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> AccountResponse:
    """Update username, email or profile fields. Role and password cannot change here."""
    _ensure_self_or_admin(current_user, user_id)
    logger.info("Updating user with ID: %s", user_id)
    try:
        user = accounts.update(user_id, body.model_dump(exclude_unset=True))
    except AccountError as e:
        raise _http_error(e) from e
    return AccountResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> Response:
    """Delete a user permanently (admin only)."""
    try:
        accounts.delete(user_id)
    except AccountError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/activate", status_code=status.HTTP_204_NO_CONTENT)
def activate_user(
    user_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> Response:
    try:
        accounts.activate(user_id)
    except AccountError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(
    user_id: int,
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
) -> Response:
    try:
        accounts.deactivate(user_id)
    except AccountError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
