"""Auth endpoints and auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pickpool.core.config import Settings, get_settings
from pickpool.core.database import get_db
from pickpool.core.errors import AuthenticationError, AuthorizationError
from pickpool.core.tokens import InvalidTokenError, TokenIssuer
from pickpool.schemas.auth import (
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
)
from pickpool.services.auth import AuthService
from pickpool.services.mailer import BackgroundMailDispatcher

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    """The issuer built at startup and kept on app.state."""
    return request.app.state.token_issuer


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> AuthService:
    """Request-scoped orchestrator; mail goes out after the response is sent."""
    return AuthService(
        db,
        settings,
        BackgroundMailDispatcher(background_tasks, settings),
        issuer=issuer,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    issuer: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> CurrentUser:
    """
    Dependency: require a valid Bearer access token and return its identity.

    Checked by signature and expiry only; access tokens are never looked up.
    """
    if credentials is None:
        raise AuthenticationError("Access token required", "NO_TOKEN")
    try:
        claims = issuer.verify_access(credentials.credentials)
    except InvalidTokenError:
        raise AuthenticationError("Invalid or expired token", "INVALID_TOKEN") from None
    return CurrentUser(id=claims.user_id, username=claims.username, role=claims.role)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != "admin":
        raise AuthorizationError("Admin access required", "ADMIN_REQUIRED")
    return current_user


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> RegisterResponse:
    """Create an account in 'pending' status; an admin must approve it before login."""
    return service.register(body.username, body.email, body.password)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    return service.login(body.username, body.password)


@router.post("/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
def refresh(
    body: RefreshRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> RefreshResponse:
    """Exchange a stored, unexpired refresh token for a new access token."""
    return service.refresh_access_token(body.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    body: LogoutRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Revoke the given refresh token, or every refresh token of the caller."""
    return service.logout(current_user.id, body.refresh_token)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Mail a reset link; the response never reveals whether the account exists."""
    return service.request_password_reset(body.email_or_username)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Set a new password with a reset token; signs the user out everywhere."""
    return service.reset_password(body.token, body.new_password)


@router.get("/me", response_model=CurrentUser)
def me(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
    return current_user
