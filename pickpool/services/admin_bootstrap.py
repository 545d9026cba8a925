"""First-run admin provisioning from environment variables or an operator prompt."""

from __future__ import annotations

import getpass
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from pickpool.core.config import BCRYPT_ROUNDS_PROD
from pickpool.core.errors import StoreError
from pickpool.core.security import hash_password, normalize_email, validate_registration
from pickpool.services.account_state import AccountStatus
from pickpool.services.credential_store import CredentialStore

if TYPE_CHECKING:
    from pickpool.core.config import Settings

logger = logging.getLogger(__name__)

ENV_VARS = ("ADMIN_USERNAME", "ADMIN_EMAIL", "ADMIN_PASSWORD")


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    email: str
    password: str = field(repr=False)


def _checked(username: str, email: str, password: str, source: str) -> AdminCredentials:
    """Apply the registration rules; raise ValueError listing every violation."""
    errors = validate_registration(username, email, password)
    if errors:
        raise ValueError(f"{source}: " + ". ".join(errors))
    return AdminCredentials(
        username=username.strip(),
        email=normalize_email(email),
        password=password,
    )


def admin_credentials_from_env(settings: Settings) -> AdminCredentials | None:
    """Credentials from ADMIN_USERNAME/ADMIN_EMAIL/ADMIN_PASSWORD; None unless all three are set."""
    if not (settings.ADMIN_USERNAME and settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD):
        return None
    return _checked(
        settings.ADMIN_USERNAME,
        settings.ADMIN_EMAIL,
        settings.ADMIN_PASSWORD.get_secret_value(),
        "Invalid admin credentials in environment",
    )


def prompt_admin_credentials(
    input_fn: Callable[[str], str] = input,
    password_fn: Callable[[str], str] = getpass.getpass,
) -> AdminCredentials:
    """Ask an operator for the first admin account; the password is not echoed."""
    print("\nNo admin user found. Please create the initial admin account.\n")
    username = input_fn("Enter admin username: ")
    email = input_fn("Enter admin email: ")
    print(
        "\nPassword requirements: at least 8 characters, one uppercase letter,"
        " one lowercase letter and one number.\n"
    )
    password = password_fn("Enter admin password: ")
    confirm = password_fn("Confirm admin password: ")
    if password != confirm:
        raise ValueError("Passwords do not match")
    return _checked(username, email, password, "Invalid admin credentials")


def create_admin_user(db: Session, credentials: AdminCredentials) -> int:
    """Insert an approved admin and commit; always hashed at production cost."""
    store = CredentialStore(db)
    try:
        user_id = store.insert_user(
            username=credentials.username,
            email=credentials.email,
            password_hash=hash_password(credentials.password, BCRYPT_ROUNDS_PROD),
            role="admin",
            status=AccountStatus.APPROVED.value,
        )
        db.commit()
    except StoreError:
        db.rollback()
        raise
    return user_id


def setup_admin(
    db: Session,
    settings: Settings,
    interactive: bool,
    prompt: Callable[[], AdminCredentials] = prompt_admin_credentials,
) -> int | None:
    """
    Ensure an admin account exists. Returns the new admin id, or None when
    one already existed.

    Environment credentials win. Without them a production posture fails,
    as does a non-interactive terminal; otherwise the operator is prompted.
    """
    if CredentialStore(db).admin_exists():
        logger.info("Admin user already exists")
        return None

    logger.warning("No admin user found in database")
    try:
        credentials = admin_credentials_from_env(settings)
    except ValueError as e:
        logger.error("%s", e)
        credentials = None
    if credentials is not None:
        logger.info("Using admin credentials from environment variables")

    if credentials is None:
        if settings.is_production:
            logger.error(
                "Production mode: set %s to create the initial admin", ", ".join(ENV_VARS)
            )
            raise RuntimeError(
                "Admin credentials must be provided via environment variables in production"
            )
        if not interactive:
            logger.error(
                "Cannot prompt for admin credentials (non-interactive); set %s",
                ", ".join(ENV_VARS),
            )
            raise RuntimeError(
                "Admin credentials required but cannot prompt in non-interactive mode"
            )
        credentials = prompt()

    user_id = create_admin_user(db, credentials)
    logger.info("Admin user created: user_id=%s username=%s", user_id, credentials.username)
    return user_id
