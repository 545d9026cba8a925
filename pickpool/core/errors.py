"""Error taxonomy for the auth service and the storage error boundary."""

from __future__ import annotations

import enum
import logging

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """
    Expected failure with a human message and a stable machine-readable code.

    Routes turn these into {"error": message, "errorCode": code} responses.
    """

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class ValidationError(AuthServiceError):
    """Malformed input, rejected before any store access."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class DuplicateError(AuthServiceError):
    """Uniqueness violation reported by the store."""

    status_code = 409
    default_code = "DUPLICATE_ENTRY"


class AuthenticationError(AuthServiceError):
    """Bad credentials or a bad/expired token. Messages stay generic."""

    status_code = 401
    default_code = "AUTH_ERROR"


class AuthorizationError(AuthServiceError):
    """Identity is known but role or account status forbids the action."""

    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(AuthServiceError):
    status_code = 404
    default_code = "NOT_FOUND"


class TransientStoreError(AuthServiceError):
    """Store unreachable or failed; the caller decides whether to retry."""

    status_code = 503
    default_code = "DB_CONNECTION_ERROR"


class ServiceUnavailableError(AuthServiceError):
    status_code = 503
    default_code = "SERVICE_UNAVAILABLE"


class StoreErrorKind(enum.Enum):
    DUPLICATE = "duplicate"
    MISSING_REFERENCE = "missing_reference"
    UNAVAILABLE = "unavailable"
    OTHER = "other"


class StoreError(Exception):
    """Raised by the storage adapters; kind is the only thing callers inspect."""

    def __init__(self, kind: StoreErrorKind, context: str = "") -> None:
        self.kind = kind
        self.context = context
        super().__init__(f"{kind.value}: {context}" if context else kind.value)


# Postgres SQLSTATE codes for integrity violations.
_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"


def classify_db_error(exc: SQLAlchemyError, context: str = "") -> StoreError:
    """Map a SQLAlchemy exception onto a closed StoreErrorKind."""
    if isinstance(exc, IntegrityError):
        pgcode = getattr(exc.orig, "pgcode", None)
        detail = str(exc.orig).lower()
        if pgcode == _PG_FOREIGN_KEY_VIOLATION or "foreign key" in detail:
            kind = StoreErrorKind.MISSING_REFERENCE
        elif pgcode == _PG_UNIQUE_VIOLATION or "unique" in detail or "duplicate" in detail:
            kind = StoreErrorKind.DUPLICATE
        else:
            kind = StoreErrorKind.OTHER
    elif isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    ):
        kind = StoreErrorKind.UNAVAILABLE
    else:
        kind = StoreErrorKind.OTHER
    return StoreError(kind, context)


def translate_store_error(err: StoreError) -> AuthServiceError:
    """Translate a storage failure into the public taxonomy."""
    logger.error("Store error (%s): kind=%s", err.context, err.kind.value)
    if err.kind is StoreErrorKind.DUPLICATE:
        return DuplicateError("Resource already exists")
    if err.kind is StoreErrorKind.MISSING_REFERENCE:
        return NotFoundError("Referenced resource not found", "REFERENCE_NOT_FOUND")
    if err.kind is StoreErrorKind.UNAVAILABLE:
        return TransientStoreError("Database connection failed")
    return TransientStoreError("Database operation failed", "DB_ERROR")
