"""SQLAlchemy ORM models."""

from pickpool.models.base import Base
from pickpool.models.password_reset import PasswordReset
from pickpool.models.refresh_token import RefreshToken
from pickpool.models.user import User

__all__ = ["Base", "PasswordReset", "RefreshToken", "User"]
