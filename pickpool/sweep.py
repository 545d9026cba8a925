"""
CLI entrypoint for the expired token sweep. Run from cron, e.g. daily at 02:00:

  0 2 * * * cd /path/to/pickpool && .venv/bin/python -m pickpool.sweep
"""

import logging
import sys

from pickpool.core.config import get_settings
from pickpool.core.database import session_scope
from pickpool.services.token_sweep import run_token_sweep

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run the sweep once: delete refresh and reset tokens past expiry."""
    settings = get_settings()
    try:
        with session_scope() as db:
            counts = run_token_sweep(db, settings)
    except Exception as e:
        logger.exception("Token sweep failed: %s", e)
        return 1
    logger.info(
        "Token sweep completed: password_resets=%s refresh_tokens=%s",
        counts.password_resets,
        counts.refresh_tokens,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
