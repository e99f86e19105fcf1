"""
Seed the system roles, permissions and grants. Run from project root:
  python -m app.scripts.seed
  python -m app.scripts.seed --admin-email admin@example.com --admin-password 'S3cure!pass'
"""

import argparse
import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.credential_store import CredentialStore
from app.services.seeding import ensure_admin, seed_rbac

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed RBAC roles and permissions.")
    parser.add_argument("--admin-email", help="Also create a user holding ADMIN_ROLE_NAME")
    parser.add_argument("--admin-password", help="Password for the admin user")
    args = parser.parse_args()

    if bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password must be given together")

    settings = get_settings()
    db = SessionLocal()
    try:
        store = CredentialStore(db)
        roles = seed_rbac(store, settings)
        logger.info("Seed completed: roles=%s", ", ".join(sorted(roles)))
        if args.admin_email:
            ensure_admin(
                store, settings, email=args.admin_email, password=args.admin_password
            )
        return 0
    except Exception as e:
        logger.exception("Seed failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
