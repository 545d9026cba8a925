"""Persistence of refresh tokens and password reset tokens, with expiry."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pickpool.core.errors import classify_db_error
from pickpool.core.utils import as_utc, utcnow
from pickpool.models import PasswordReset, RefreshToken, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetRecord:
    user_id: int
    expires_at: datetime


@dataclass(frozen=True)
class SweepCounts:
    password_resets: int
    refresh_tokens: int


class SessionStore:
    """
    Refresh and reset token rows.

    Inserts never overwrite; revocation is row deletion. Like CredentialStore
    this never commits: callers decide where the unit of work ends.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    # Refresh tokens

    def persist_refresh(self, user_id: int, token: str, expires_at: datetime) -> None:
        try:
            self.db.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
            self.db.flush()
        except SQLAlchemyError as e:
            raise classify_db_error(e, "persist_refresh") from e

    def find_valid_refresh(self, token: str, user_id: int) -> RefreshToken | None:
        """Row matching both token and user whose expiry is still in the future."""
        try:
            return (
                self.db.query(RefreshToken)
                .filter(
                    RefreshToken.token == token,
                    RefreshToken.user_id == user_id,
                    RefreshToken.expires_at > self.clock(),
                )
                .first()
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "find_valid_refresh") from e

    def delete_refresh(self, token: str, user_id: int) -> int:
        try:
            return (
                self.db.query(RefreshToken)
                .filter(RefreshToken.token == token, RefreshToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "delete_refresh") from e

    def delete_all_refresh(self, user_id: int) -> int:
        try:
            return (
                self.db.query(RefreshToken)
                .filter(RefreshToken.user_id == user_id)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "delete_all_refresh") from e

    # Password reset tokens

    def persist_reset(self, user_id: int, token: str, expires_at: datetime) -> None:
        try:
            self.db.add(PasswordReset(user_id=user_id, token=token, expires_at=expires_at))
            self.db.flush()
        except SQLAlchemyError as e:
            raise classify_db_error(e, "persist_reset") from e

    def find_reset(self, token: str) -> ResetRecord | None:
        """Reset row joined to its user; orphaned rows count as absent."""
        try:
            row = (
                self.db.query(PasswordReset.user_id, PasswordReset.expires_at)
                .join(User, User.id == PasswordReset.user_id)
                .filter(PasswordReset.token == token)
                .first()
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "find_reset") from e
        if row is None:
            return None
        return ResetRecord(user_id=row.user_id, expires_at=as_utc(row.expires_at))

    def consume_reset(self, token: str) -> bool:
        """
        Delete one reset row by token. False when it was already gone, i.e.
        a concurrent reset consumed it first.
        """
        try:
            deleted = (
                self.db.query(PasswordReset)
                .filter(PasswordReset.token == token)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "consume_reset") from e
        return deleted == 1

    def delete_all_reset(self, user_id: int) -> int:
        try:
            return (
                self.db.query(PasswordReset)
                .filter(PasswordReset.user_id == user_id)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "delete_all_reset") from e

    # Maintenance

    def sweep_expired(self) -> SweepCounts:
        """
        Delete rows already past expiry. Idempotent; only ever touches expired
        rows, so concurrent sweeps and live requests cannot interfere.
        """
        now = self.clock()
        try:
            resets = (
                self.db.query(PasswordReset)
                .filter(PasswordReset.expires_at < now)
                .delete(synchronize_session=False)
            )
            refresh = (
                self.db.query(RefreshToken)
                .filter(RefreshToken.expires_at < now)
                .delete(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "sweep_expired") from e
        return SweepCounts(password_resets=resets, refresh_tokens=refresh)
