"""ORM model for persisted refresh tokens (one row per logged-in device)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from pickpool.models.base import Base


class RefreshToken(Base):
    """
    Long-lived bearer credential bound to one user.

    Revocation is row deletion: a token is valid only while its row exists
    and expires_at is in the future.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(512), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
