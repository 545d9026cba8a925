"""
Auth orchestrator: register, login, refresh, password reset and logout.

Each public method is one unit of work on the request's DB session: it
commits once at the end or rolls back on any failure. Expected failures are
raised as AuthServiceError subclasses carrying a message and a stable code.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from functools import lru_cache
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pickpool.core.errors import (
    AuthenticationError,
    DuplicateError,
    ServiceUnavailableError,
    StoreError,
    ValidationError,
    classify_db_error,
    translate_store_error,
)
from pickpool.core.security import (
    hash_password,
    normalize_email,
    validate_password_strength,
    validate_registration,
    verify_password,
)
from pickpool.core.tokens import InvalidTokenError, TokenClaims, TokenIssuer
from pickpool.core.utils import utcnow
from pickpool.schemas.auth import (
    LoginResponse,
    MessageResponse,
    PublicUser,
    RefreshResponse,
    RegisterResponse,
)
from pickpool.services.account_state import AccountStatus, check_login_gate
from pickpool.services.credential_store import CredentialStore
from pickpool.services.mailer import (
    MailDispatcher,
    render_admin_notification,
    render_password_reset,
)
from pickpool.services.session_store import SessionStore

if TYPE_CHECKING:
    from pickpool.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
RESET_REQUEST_MESSAGE = "If that account exists, a reset link has been sent"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
RESET_SUBJECT = "Password Reset for NFL Pool"
ADMIN_NOTICE_SUBJECT = "New User Registration - Approval Required"


@lru_cache
def _dummy_hash(rounds: int) -> str:
    """Hash compared against when the username is unknown, to level timing."""
    return hash_password(secrets.token_urlsafe(16), rounds)


class AuthService:
    """Sequences the stores, the token issuer and the mailer."""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        mailer: MailDispatcher,
        issuer: TokenIssuer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.mailer = mailer
        self.issuer = issuer or TokenIssuer(settings)
        self.clock = clock
        self.users = CredentialStore(db)
        self.sessions = SessionStore(db, clock)

    @contextmanager
    def _unit_of_work(self, context: str) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except StoreError as e:
            self.db.rollback()
            raise translate_store_error(e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise translate_store_error(classify_db_error(e, context)) from e
        except Exception:
            self.db.rollback()
            raise

    def register(self, username: str, email: str, password: str) -> RegisterResponse:
        """
        Create a pending account and notify the admin.

        Every violated rule is reported, joined into one message. Collisions
        never say which field collided.
        """
        errors = validate_registration(username or "", email or "", password or "")
        if errors:
            raise ValidationError(". ".join(errors))

        clean_username = username.strip()
        clean_email = normalize_email(email)
        password_hash = hash_password(password, self.settings.bcrypt_rounds)
        try:
            with self._unit_of_work("register"):
                user_id = self.users.insert_user(
                    username=clean_username,
                    email=clean_email,
                    password_hash=password_hash,
                    role="user",
                    status=AccountStatus.PENDING.value,
                )
        except DuplicateError:
            raise DuplicateError("Username or email already exists") from None

        logger.info("User registered: user_id=%s username=%s", user_id, clean_username)
        self._notify_admin(clean_username, clean_email)
        return RegisterResponse(user_id=user_id)

    def login(self, username: str, password: str) -> LoginResponse:
        """
        Verify credentials and open a session (access + persisted refresh token).

        Unknown usernames and wrong passwords share one message and code. The
        status gate runs before the password hash is touched.
        """
        if not username or not username.strip() or not password:
            raise ValidationError("Username and password are required", "MISSING_FIELDS")

        with self._unit_of_work("login"):
            user = self.users.find_user_by_username(username.strip())
            if user is None:
                verify_password(password, _dummy_hash(self.settings.bcrypt_rounds))
                logger.info("Login failed: unknown username")
                raise AuthenticationError(INVALID_CREDENTIALS, "INVALID_CREDENTIALS")

            check_login_gate(user.status)

            if not verify_password(password, user.password_hash):
                logger.info("Login failed: bad password for user_id=%s", user.id)
                raise AuthenticationError(INVALID_CREDENTIALS, "INVALID_CREDENTIALS")

            claims = TokenClaims(user_id=user.id, username=user.username, role=user.role)
            access_token = self.issuer.issue_access_token(claims)
            refresh = self.issuer.issue_refresh_token(claims)
            self.sessions.persist_refresh(user.id, refresh.token, refresh.expires_at)
            public_user = PublicUser.model_validate(user)

        logger.info("Login succeeded: user_id=%s", public_user.id)
        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh.token,
            user=public_user,
        )

    def refresh_access_token(self, refresh_token: str | None) -> RefreshResponse:
        """
        Exchange a refresh token for a new access token.

        A forged or corrupt token (INVALID_TOKEN) is told apart from a
        well-formed one that was revoked or expired in the store
        (INVALID_REFRESH_TOKEN). The refresh token itself is rotated only
        when REFRESH_ROTATE_ON_USE is enabled.
        """
        if not refresh_token:
            raise AuthenticationError("Refresh token required", "NO_REFRESH_TOKEN")
        try:
            claims = self.issuer.verify_refresh(refresh_token)
        except InvalidTokenError:
            raise AuthenticationError("Invalid refresh token", "INVALID_TOKEN") from None

        rotated: str | None = None
        with self._unit_of_work("refresh_access_token"):
            row = self.sessions.find_valid_refresh(refresh_token, claims.user_id)
            if row is None:
                raise AuthenticationError(
                    "Invalid or expired refresh token", "INVALID_REFRESH_TOKEN"
                )
            access_token = self.issuer.issue_access_token(claims)
            if self.settings.REFRESH_ROTATE_ON_USE:
                # Losing a concurrent rotation race means the token is spent.
                if self.sessions.delete_refresh(refresh_token, claims.user_id) != 1:
                    raise AuthenticationError(
                        "Invalid or expired refresh token", "INVALID_REFRESH_TOKEN"
                    )
                issued = self.issuer.issue_refresh_token(claims)
                self.sessions.persist_refresh(claims.user_id, issued.token, issued.expires_at)
                rotated = issued.token

        return RefreshResponse(access_token=access_token, refresh_token=rotated)

    def request_password_reset(self, email_or_username: str) -> MessageResponse:
        """
        Mint and mail a reset token.

        The response is identical whether or not the account exists, and
        mail delivery problems never change it.
        """
        if not email_or_username or not email_or_username.strip():
            raise ValidationError("Email or username is required", "MISSING_FIELD")
        if not self.settings.mail_configured:
            raise ServiceUnavailableError("Email service is not configured")

        with self._unit_of_work("request_password_reset"):
            user = self.users.find_user_by_email_or_username(email_or_username)
            if user is None:
                logger.info("Password reset requested for unknown account")
                return MessageResponse(message=RESET_REQUEST_MESSAGE)
            token = secrets.token_hex(32)
            expires_at = self.clock() + timedelta(
                minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES
            )
            self.sessions.persist_reset(user.id, token, expires_at)
            user_id, to_address, username = user.id, user.email, user.username

        logger.info("Password reset token issued: user_id=%s", user_id)
        reset_url = f"{self.settings.CLIENT_URL}/reset-password?token={token}"
        body = render_password_reset(
            username, reset_url, self.settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        try:
            self.mailer.dispatch(to_address, RESET_SUBJECT, body)
        except Exception:
            logger.exception("Could not schedule password reset mail for user_id=%s", user_id)
        return MessageResponse(message=RESET_REQUEST_MESSAGE)

    def reset_password(self, token: str, new_password: str) -> MessageResponse:
        """
        Consume a reset token and set a new password.

        On success every reset token and every refresh token of the user is
        deleted in the same transaction, forcing re-login everywhere.
        """
        errors = validate_password_strength(new_password or "")
        if errors:
            raise ValidationError(". ".join(errors))
        if not token:
            raise AuthenticationError(INVALID_RESET_TOKEN, "INVALID_RESET_TOKEN")

        with self._unit_of_work("reset_password"):
            record = self.sessions.find_reset(token)
            if record is None:
                raise AuthenticationError(INVALID_RESET_TOKEN, "INVALID_RESET_TOKEN")
            if self.clock() > record.expires_at:
                raise AuthenticationError("Reset token has expired", "RESET_TOKEN_EXPIRED")
            # User row lock comes before any reset row lock. Concurrent resets
            # for one user queue here; later ones find their token already gone.
            if not self.users.lock_user(record.user_id):
                raise AuthenticationError(INVALID_RESET_TOKEN, "INVALID_RESET_TOKEN")
            if not self.sessions.consume_reset(token):
                raise AuthenticationError(INVALID_RESET_TOKEN, "INVALID_RESET_TOKEN")

            password_hash = hash_password(new_password, self.settings.bcrypt_rounds)
            self.users.update_user_password(record.user_id, password_hash)
            resets = self.sessions.delete_all_reset(record.user_id)
            sessions = self.sessions.delete_all_refresh(record.user_id)

        logger.info(
            "Password reset: user_id=%s other_reset_tokens_revoked=%s sessions_revoked=%s",
            record.user_id,
            resets,
            sessions,
        )
        return MessageResponse(message="Password reset successful")

    def logout(self, user_id: int, refresh_token: str | None = None) -> MessageResponse:
        """Revoke one refresh token, or all of them when none is given. Idempotent."""
        with self._unit_of_work("logout"):
            if refresh_token:
                revoked = self.sessions.delete_refresh(refresh_token, user_id)
            else:
                revoked = self.sessions.delete_all_refresh(user_id)
        logger.info(
            "Logout: user_id=%s scope=%s revoked=%s",
            user_id,
            "device" if refresh_token else "all",
            revoked,
        )
        return MessageResponse(message="Logged out successfully")

    def _notify_admin(self, username: str, email: str) -> None:
        if not self.settings.ADMIN_EMAIL:
            return
        try:
            self.mailer.dispatch(
                self.settings.ADMIN_EMAIL,
                ADMIN_NOTICE_SUBJECT,
                render_admin_notification(username, email, self.clock()),
            )
        except Exception:
            logger.exception("Could not schedule admin registration notice")
