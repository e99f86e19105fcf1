"""
Create a user with explicit roles (no registration flow, no email). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [ROLE ...]
Example:
  python -m app.scripts.create_user ops@example.com 'S3cure!pass' Ops Team ADMIN
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.exceptions import EmailInUseError
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from app.services.credential_store import CredentialStore


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create a user and assign roles by name.")
    parser.add_argument("email")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument(
        "roles", nargs="*", help=f"Role names (default: {settings.DEFAULT_ROLE_NAME})"
    )
    args = parser.parse_args()

    email = args.email.strip()
    if "@" not in email:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN:
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        store = CredentialStore(db)
        role_names = args.roles or [settings.DEFAULT_ROLE_NAME]
        role_ids = []
        for name in role_names:
            role = store.get_role_by_name(name)
            if role is None:
                print(f"Role '{name}' does not exist. Run app.scripts.seed first.", file=sys.stderr)
                return 1
            role_ids.append(role.id)
        try:
            user = store.create_user(
                email=email,
                password_hash=hash_password(args.password, settings.BCRYPT_ROUNDS),
                first_name=args.first_name,
                last_name=args.last_name,
                role_ids=role_ids,
                is_email_verified=True,
            )
        except EmailInUseError:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        print(f"Created user '{user.email}' ({user.id}) with roles {', '.join(role_names)}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
