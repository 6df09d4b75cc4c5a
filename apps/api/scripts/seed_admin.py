"""
Seed Admin User

Creates the initial admin account for GrantFlow. Credentials are read from
the environment:

    ADMIN_USERNAME, ADMIN_EMAIL, ADMIN_PASSWORD

Usage:
    cd apps/api
    ADMIN_USERNAME=admin ADMIN_EMAIL=admin@example.org ADMIN_PASSWORD=... \
        python scripts/seed_admin.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import grantflow.models  # noqa: F401, E402 - needed for relationship resolution
from grantflow.core.auth import ROLE_ADMIN  # noqa: E402
from grantflow.core.database import async_session_maker, close_db  # noqa: E402
from grantflow.core.security import hash_password  # noqa: E402
from grantflow.modules.users.repository import UserRepository  # noqa: E402


async def seed_admin() -> None:
    """Create the admin user if it doesn't exist."""
    username = os.environ.get("ADMIN_USERNAME", "admin")
    email = os.environ.get("ADMIN_EMAIL")
    password = os.environ.get("ADMIN_PASSWORD")

    if not email or not password:
        print("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")
        sys.exit(1)

    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Admin already exists: {email}")
            print(f"  ID: {existing_user.id}")
            print(f"  Roles: {', '.join(existing_user.roles)}")
            return

        admin_user = await UserRepository.create(
            db,
            username=username,
            email=email,
            password_hash=hash_password(password),
            roles=[ROLE_ADMIN],
            is_active=True,
            is_validated=True,  # Pre-validated
        )
        await db.commit()

        print("Admin created successfully!")
        print(f"  Username: {username}")
        print(f"  Email: {email}")
        print(f"  ID: {admin_user.id}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_admin())
