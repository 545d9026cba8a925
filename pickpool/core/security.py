"""Password policy, password hashing, and identity field validation."""

import re

import bcrypt
from email_validator import EmailNotValidError, validate_email as _check_email

# Usernames: 3-20 chars, letters, digits and underscore only.
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")
USERNAME_RULE = "Username must be 3-20 characters, alphanumeric and underscores only"
EMAIL_MAX_LEN = 100

PASSWORD_MIN_LEN = 8
# bcrypt only looks at the first 72 bytes; hash and verify truncate identically.
BCRYPT_MAX_BYTES = 72


def validate_password_strength(password: str) -> list[str]:
    """Return one message per violated rule; an empty list means acceptable."""
    errors = []
    if len(password) < PASSWORD_MIN_LEN:
        errors.append(f"Password must be at least {PASSWORD_MIN_LEN} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    return errors


def validate_username(username: str) -> bool:
    return bool(USERNAME_PATTERN.fullmatch(username))


def validate_email(email: str) -> bool:
    """Syntax-only email check: no DNS lookups, private and test domains allowed."""
    if not email or len(email) > EMAIL_MAX_LEN:
        return False
    try:
        _check_email(
            email,
            check_deliverability=False,
            globally_deliverable=False,
            test_environment=True,
        )
    except EmailNotValidError:
        return False
    return True


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_registration(username: str, email: str, password: str) -> list[str]:
    """Collect every violation for a registration triple, in display order."""
    errors = []
    if not validate_username(username.strip()):
        errors.append(USERNAME_RULE)
    if not validate_email(email.strip()):
        errors.append("Invalid email address")
    errors.extend(validate_password_strength(password))
    return errors


def hash_password(plain_password: str, rounds: int) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False
