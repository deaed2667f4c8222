"""
Create a user (e.g. the first admin; signup never grants admin). Run from project root:
  python -m resonansi.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m resonansi.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import sys

from resonansi.core.config import get_settings
from resonansi.core.database import build_session_factory
from resonansi.core.errors import AppError
from resonansi.core.security import hash_password
from resonansi.models.user import ROLES, User
from resonansi.services.accounts import validate_email, validate_password, validate_username


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Resonansi user account.")
    parser.add_argument("username", help="Username (3-20 lowercase letters and digits)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=list(ROLES))
    args = parser.parse_args(argv)

    try:
        username = validate_username(args.username.strip())
        email = validate_email(args.email)
        validate_password(args.password)
    except AppError as e:
        print(e.message, file=sys.stderr)
        return 1

    settings = get_settings()
    db = build_session_factory(settings)()
    try:
        existing = (
            db.query(User)
            .filter((User.username == username) | (User.email == email))
            .first()
        )
        if existing:
            print(f"User '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(args.password, settings.BCRYPT_ROUNDS),
            profile_picture=settings.DEFAULT_AVATAR_URL,
            role=args.role,
            auth_provider="local",
            is_active=True,
        )
        db.add(user)
        db.commit()
        print(f"Created user '{username}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
