#!/usr/bin/env python3
"""
Create (or re-activate) an admin user.

Usage:
    python scripts/create_admin.py --email owner@example.com --name "Shop Owner"

The password is read from ADMIN_PASSWORD, or prompted for when unset.
"""

import argparse
import asyncio
import getpass
import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from repairdesk.api.deps import get_password_hash
from repairdesk.database import async_session_maker, init_db
from repairdesk.models.user import User, UserRole


async def create_admin(email: str, name: str, password: str) -> None:
    await init_db()
    async with async_session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user:
            user.role = UserRole.ADMIN.value
            user.is_active = True
            user.hashed_password = get_password_hash(password)
            print(f"Updated existing user {email} as admin")
        else:
            session.add(
                User(
                    email=email,
                    name=name,
                    hashed_password=get_password_hash(password),
                    role=UserRole.ADMIN.value,
                )
            )
            print(f"Created admin user {email}")
        await session.commit()


def main():
    parser = argparse.ArgumentParser(description="Create a RepairDesk admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    password = os.environ.get("ADMIN_PASSWORD") or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters")
        sys.exit(1)

    asyncio.run(create_admin(args.email, args.name, password))


if __name__ == "__main__":
    main()
