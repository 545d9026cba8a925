"""
Create the first admin account if none exists. Run from project root:
  python -m pickpool.scripts.bootstrap_admin
Credentials come from ADMIN_USERNAME, ADMIN_EMAIL and ADMIN_PASSWORD, or
(outside production, on a terminal) from an interactive prompt.
"""
import argparse
import logging
import sys

from pickpool.core.config import get_settings
from pickpool.core.database import session_scope
from pickpool.services.admin_bootstrap import setup_admin

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Provision the initial pickpool admin.")
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; fail unless credentials are in the environment",
    )
    args = parser.parse_args()

    settings = get_settings()
    try:
        with session_scope() as db:
            user_id = setup_admin(
                db,
                settings,
                interactive=sys.stdin.isatty() and not args.no_input,
            )
    except (RuntimeError, ValueError) as e:
        print(f"Admin setup failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Admin setup failed: %s", e)
        return 1

    if user_id is None:
        print("Admin user already exists.")
    else:
        print(f"Created admin user (id {user_id}). Store the credentials securely.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
