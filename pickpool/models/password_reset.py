"""ORM model for single-use password reset tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from pickpool.models.base import Base


class PasswordReset(Base):
    """Random reset token mailed to the account owner; valid until expires_at."""

    __tablename__ = "password_resets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(255), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
