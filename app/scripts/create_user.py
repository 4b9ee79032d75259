"""
Create a user (e.g. the first admin) without going through the API. Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD FIRST_NAME LAST_NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com 'S3cure-passw0rd' Ada Admin admin
"""
import argparse
import sys

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import Conflict
from app.core.security import hash_password
from app.models.user import Role, User
from app.schemas.common import validate_password_strength
from app.services.credential_store import CredentialStore


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a Digital Growth API user.")
    parser.add_argument("email", help="Login email")
    parser.add_argument("password", help="Password (8-128 chars, letters and digits)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    parser.add_argument(
        "role",
        nargs="?",
        default=Role.ADMIN.value,
        choices=[r.value for r in Role],
    )
    args = parser.parse_args()

    try:
        email = TypeAdapter(EmailStr).validate_python(args.email)
        validate_password_strength(args.password)
    except (ValidationError, ValueError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1
    if not args.first_name.strip() or not args.last_name.strip():
        print("First and last name are required.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        store = CredentialStore(db)
        user = User(
            email=email,
            password_hash=hash_password(args.password, rounds=get_settings().BCRYPT_ROUNDS),
            first_name=args.first_name.strip(),
            last_name=args.last_name.strip(),
            role=Role(args.role),
            is_active=True,
        )
        try:
            store.add_user(user)
        except Conflict:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        store.commit()
        print(f"Created user '{user.email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
