"""Storage adapter for user rows: lookups, inserts, password and status updates."""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pickpool.core.errors import classify_db_error
from pickpool.models import User


class CredentialStore:
    """
    Thin contract over the users table.

    Never commits; the calling service owns the unit of work. Driver errors
    surface only as StoreError with a closed kind.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_user_by_id(self, user_id: int) -> User | None:
        try:
            return self.db.get(User, user_id)
        except SQLAlchemyError as e:
            raise classify_db_error(e, "find_user_by_id") from e

    def find_user_by_username(self, username: str) -> User | None:
        try:
            return self.db.query(User).filter(User.username == username).first()
        except SQLAlchemyError as e:
            raise classify_db_error(e, "find_user_by_username") from e

    def find_user_by_email_or_username(self, value: str) -> User | None:
        """Match either column; email comparison uses the normalized form."""
        try:
            return (
                self.db.query(User)
                .filter(or_(User.email == value.strip().lower(), User.username == value.strip()))
                .order_by(User.id)
                .first()
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "find_user_by_email_or_username") from e

    def insert_user(self, **fields: Any) -> int:
        """Insert a user row and return its id; duplicates raise StoreError(DUPLICATE)."""
        user = User(**fields)
        try:
            self.db.add(user)
            self.db.flush()
        except SQLAlchemyError as e:
            raise classify_db_error(e, "insert_user") from e
        return user.id

    def lock_user(self, user_id: int) -> bool:
        """
        Take a row lock on the user until the transaction ends (SELECT ... FOR
        UPDATE). Writers that touch several rows of one user lock this first.
        """
        try:
            row = (
                self.db.query(User.id)
                .filter(User.id == user_id)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "lock_user") from e
        return row is not None

    def update_user_password(self, user_id: int, password_hash: str) -> int:
        try:
            return (
                self.db.query(User)
                .filter(User.id == user_id)
                .update({User.password_hash: password_hash}, synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "update_user_password") from e

    def update_user_status(self, user_id: int, status: str) -> int:
        try:
            return (
                self.db.query(User)
                .filter(User.id == user_id)
                .update({User.status: status}, synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise classify_db_error(e, "update_user_status") from e

    def admin_exists(self) -> bool:
        try:
            return self.db.query(User.id).filter(User.role == "admin").first() is not None
        except SQLAlchemyError as e:
            raise classify_db_error(e, "admin_exists") from e

    def list_users(self) -> list[User]:
        try:
            return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
        except SQLAlchemyError as e:
            raise classify_db_error(e, "list_users") from e
