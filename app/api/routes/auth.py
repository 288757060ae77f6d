"""Registration, login and token refresh, plus auth dependencies (get_current_user, require_admin)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import PasswordHasher
from app.models.user import UserRole
from app.repositories.user_repository import UserRepository
from app.schemas.auth import (
    ApiResponse,
    CurrentUser,
    LoginRequest,
    LoginResponse,
    LoginUser,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from app.schemas.user import AccountResponse
from app.services.accounts import AccountError, AccountInactive, AccountManager
from app.services.tokens import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    ExpiredToken,
    InvalidToken,
    TokenError,
    TokenService,
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    """Dependency: the TokenService built once at startup (see app.main)."""
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_account_manager(
    db: Annotated[Session, Depends(get_db)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
) -> AccountManager:
    """Dependency: request-scoped AccountManager bound to the request's DB session."""
    return AccountManager(UserRepository(db), hasher)


def _failure(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.post(
    "/register",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ApiResponse}},
)
def register(
    body: RegisterRequest,
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
):
    """Create an account. Username and email must be unused; role is student, teacher or admin."""
    logger.info("Registration attempt for username: %s", body.username)
    profile = body.profile.model_dump(exclude_unset=True) if body.profile else None
    try:
        user = accounts.register(
            username=body.username,
            email=str(body.email),
            password=body.password,
            role=body.role,
            profile=profile,
        )
    except AccountError as e:
        logger.error("Registration failed: %s", e.message)
        return _failure(e.status_code, e.message)

    logger.info("User registered successfully with ID: %s", user.id)
    return ApiResponse(
        success=True,
        message="User registered successfully",
        data=AccountResponse.model_validate(user).model_dump(mode="json"),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ApiResponse}, 403: {"model": ApiResponse}},
)
def login(
    body: LoginRequest,
    accounts: Annotated[AccountManager, Depends(get_account_manager)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """
    Authenticate with username and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    logger.info("Login attempt for username: %s", body.username)
    try:
        user = accounts.authenticate(body.username, body.password)
        if not user.is_active:
            raise AccountInactive()
    except AccountError as e:
        logger.error("Login failed for username %s: %s", body.username, e.kind.value)
        return _failure(e.status_code, e.message)

    access_token = tokens.issue_access_token(user.username)
    refresh_token = tokens.issue_refresh_token(user.username)
    logger.info("Login successful for username: %s", body.username)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=tokens.expires_in,
        user=LoginUser(id=user.id, username=user.username, role=user.role.lower()),
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={401: {"model": ApiResponse}},
)
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
):
    """Exchange a valid refresh token for a new access token. The refresh token is not rotated."""
    try:
        claims = tokens.decode(body.refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    except TokenError as e:
        return _failure(status.HTTP_401_UNAUTHORIZED, e.message)

    user = UserRepository(db).find_by_username(claims.subject)
    if user is None or not user.is_active:
        return _failure(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token")

    return RefreshResponse(
        access_token=tokens.issue_access_token(user.username),
        expires_in=tokens.expires_in,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser:
    """Dependency: require valid Bearer access token and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = tokens.decode(credentials.credentials, expected_type=ACCESS_TOKEN_TYPE)
    except ExpiredToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = UserRepository(db).find_by_username(claims.subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return CurrentUser(id=user.id, username=user.username, role=user.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role ADMIN. Raises 403 for non-admin."""
    if current_user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
