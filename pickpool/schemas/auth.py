"""Request/response schemas for auth and admin endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """New account; format and strength rules are checked by the auth service."""

    username: str = Field(..., max_length=255, description="3-20 chars, letters/digits/underscore")
    email: str = Field(..., max_length=255, description="Contact email")
    password: str = Field(..., max_length=128, description="Password")


class RegisterResponse(BaseModel):
    message: str = "Registration successful. Awaiting admin approval."
    user_id: int


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., max_length=255, description="Username")
    password: str = Field(..., max_length=128, description="Password")


class PublicUser(BaseModel):
    """User projection safe to return to clients (never the hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str


class LoginResponse(BaseModel):
    """Access and refresh tokens returned after successful login."""

    access_token: str = Field(..., description="JWT access token (15 minutes)")
    refresh_token: str = Field(..., description="JWT refresh token (7 days)")
    token_type: str = Field(default="bearer", description="Token type")
    user: PublicUser


class RefreshRequest(BaseModel):
    refresh_token: str | None = Field(default=None, max_length=512)


class RefreshResponse(BaseModel):
    """New access token; refresh_token is set only when rotation is enabled."""

    access_token: str
    token_type: str = "bearer"
    refresh_token: str | None = None


class LogoutRequest(BaseModel):
    """Omit refresh_token to log out of every device."""

    refresh_token: str | None = Field(default=None, max_length=512)


class ForgotPasswordRequest(BaseModel):
    email_or_username: str = Field(..., min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)
    new_password: str = Field(..., max_length=128)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CurrentUser(BaseModel):
    """Authenticated identity taken from access token claims."""

    id: int
    username: str
    role: str


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str
    status: str
    created_at: datetime | None = None


class UsersListResponse(BaseModel):
    """Response for GET /admin/users (admin only)."""

    users: list[UserListItem]


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., description="approved, suspended or pending")


class StatusUpdateResponse(BaseModel):
    id: int
    status: str
    message: str = "User status updated"


class ErrorResponse(BaseModel):
    """Body of every expected failure."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    error_code: str = Field(..., alias="errorCode")
