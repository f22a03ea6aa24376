"""Seed script to create or promote an admin user and print a bearer token.

Usage:
    python -m app.scripts.seed_admin --email=admin@example.com --name=Ana --last-name=Admin

Users are managed outside this API, so this is how a first admin gets a token.
"""

import argparse
import asyncio
import sys
from sqlalchemy import select

from app.core.config import load_settings
from app.core.database import Database
from app.models.user import User, UserRole
from app.services.auth import create_access_token


async def create_or_promote_admin(email: str, name: str, last_name: str) -> None:
    settings = load_settings()
    database = Database(settings.DATABASE_URL)

    try:
        async with database.session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()

            if user:
                print(f"✅ User {email} already exists. Updating to admin role...")
                user.role = UserRole.ADMIN
            else:
                print(f"🆕 Creating new admin user: {email}...")
                user = User(email=email, name=name, last_name=last_name, role=UserRole.ADMIN)
                db.add(user)
            await db.commit()

            token = create_access_token({"sub": str(user.id)}, settings.JWT_SECRET_KEY, settings.JWT_ALGORITHM)
    finally:
        await database.dispose()

    print(f"\n🎉 Admin setup complete!")
    print(f"   Email: {email}")
    print(f"   Token: {token}")


def main():
    """Parse CLI arguments and run the seed script."""
    parser = argparse.ArgumentParser(description="Create or promote an admin user for the booking API")
    parser.add_argument("--email", required=True, help="Admin email address")
    parser.add_argument("--name", default="Admin", help="First name (new users only)")
    parser.add_argument("--last-name", default="Harajuku", help="Last name (new users only)")

    args = parser.parse_args()

    if "@" not in args.email or "." not in args.email:
        print("❌ Error: Invalid email format.", file=sys.stderr)
        sys.exit(1)

    asyncio.run(create_or_promote_admin(args.email, args.name, args.last_name))


if __name__ == "__main__":
    main()
