"""
Create a user account (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password "Site Admin" admin
"""
import argparse
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from app.models.user import UserRole
from app.schemas.auth import EMAIL_PATTERN
from app.services import user_store


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an account (admins cannot self-register).")
    parser.add_argument("email", help="Email address (login name)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("name", help="Display name")
    parser.add_argument(
        "role",
        nargs="?",
        default=UserRole.USER.value,
        choices=[r.value for r in UserRole],
    )
    args = parser.parse_args()

    email = user_store.normalize_email(args.email)
    if not EMAIL_PATTERN.match(email):
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1
    name = args.name.strip()
    if not name:
        print("Name must not be blank.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if user_store.get_user_by_email(db, email) is not None:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user_store.create_user(
            db,
            email=email,
            password_hash=hash_password(args.password, rounds=get_settings().BCRYPT_ROUNDS),
            name=name,
            role=UserRole(args.role),
        )
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
