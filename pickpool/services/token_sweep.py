"""Expired token cleanup: delete refresh and reset tokens past their expiry."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from pickpool.core.errors import StoreError
from pickpool.services.session_store import SessionStore, SweepCounts

if TYPE_CHECKING:
    from pickpool.core.config import Settings

logger = logging.getLogger(__name__)


def run_token_sweep(session: Session, settings: "Settings") -> SweepCounts:
    """
    Delete expired password reset and refresh tokens and commit.

    Idempotent: safe to run repeatedly and concurrently with itself, since it
    only removes rows that are already unusable.
    """
    if not settings.TOKEN_SWEEP_ENABLED:
        logger.info("Token sweep is disabled (TOKEN_SWEEP_ENABLED=false); skipping.")
        return SweepCounts(password_resets=0, refresh_tokens=0)

    try:
        counts = SessionStore(session).sweep_expired()
        session.commit()
    except StoreError:
        session.rollback()
        raise

    if counts.password_resets or counts.refresh_tokens:
        logger.info(
            "Token sweep: password_resets_deleted=%s refresh_tokens_deleted=%s",
            counts.password_resets,
            counts.refresh_tokens,
        )
    return counts
