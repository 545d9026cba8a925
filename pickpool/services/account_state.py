"""Account status state machine: login gate and admin-driven transitions."""

import enum
import logging

from pickpool.core.errors import AuthorizationError, NotFoundError, ValidationError
from pickpool.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class AccountStatus(str, enum.Enum):
    PENDING = "pending"
    AGE_PENDING = "age_pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"


SUSPENDED_MESSAGE = "Account suspended. Contact administrator."
PENDING_MESSAGE = "Account pending approval"

# Admin-triggered transitions. age_pending is only ever entered outside the
# admin status endpoint (age verification flow), so no edge leads into it.
ALLOWED_TRANSITIONS: dict[AccountStatus, frozenset[AccountStatus]] = {
    AccountStatus.PENDING: frozenset({AccountStatus.APPROVED, AccountStatus.SUSPENDED}),
    AccountStatus.AGE_PENDING: frozenset({AccountStatus.APPROVED, AccountStatus.SUSPENDED}),
    AccountStatus.APPROVED: frozenset({AccountStatus.SUSPENDED, AccountStatus.PENDING}),
    AccountStatus.SUSPENDED: frozenset({AccountStatus.APPROVED, AccountStatus.PENDING}),
}


def check_login_gate(status: str) -> None:
    """
    Raise unless the account may log in.

    Suspended and pending accounts get distinct reasons so the owner knows
    what to do next. Unknown values are treated as not yet approved.
    """
    if status == AccountStatus.SUSPENDED.value:
        raise AuthorizationError(SUSPENDED_MESSAGE, "ACCOUNT_SUSPENDED")
    if status != AccountStatus.APPROVED.value:
        raise AuthorizationError(PENDING_MESSAGE, "ACCOUNT_PENDING")


def transition(current: str, target: str) -> AccountStatus:
    """Validate an admin status change; returns the new status."""
    try:
        target_status = AccountStatus(target)
    except ValueError:
        raise ValidationError("Invalid status", "INVALID_STATUS") from None
    try:
        current_status = AccountStatus(current)
    except ValueError:
        # Corrupt rows can always be moved back onto the graph.
        return target_status
    if current_status == target_status:
        return target_status
    if target_status not in ALLOWED_TRANSITIONS[current_status]:
        raise ValidationError(
            f"Cannot change status from {current_status.value} to {target_status.value}",
            "INVALID_STATUS_TRANSITION",
        )
    return target_status


def apply_status_change(store: CredentialStore, user_id: int, target: str) -> AccountStatus:
    """Load the user, validate the transition and write it (no commit)."""
    user = store.find_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    new_status = transition(user.status, target)
    if new_status.value != user.status:
        store.update_user_status(user_id, new_status.value)
        logger.info(
            "User status changed: user_id=%s from=%s to=%s",
            user_id,
            user.status,
            new_status.value,
        )
    return new_status
