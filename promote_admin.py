#!/usr/bin/env python3
"""
Promote a user to admin

Grants the admin role to an existing user profile.

Usage:
    python promote_admin.py <user_id>
"""

import sys

from dabus.auth.schemas import Role
from dabus.auth.service import UserService
from dabus.database import SessionLocal, init_db
from dabus.exceptions import DaBusError


def promote(user_id: str) -> int:
    db = SessionLocal()
    try:
        user = UserService.set_role(db, user_id, Role.ADMIN)
        print(f"✅ User {user.email} promoted to admin!")
        return 0
    except DaBusError as e:
        print(f"❌ Error: {e.message}")
        return 1
    finally:
        db.close()


def main() -> int:
    if len(sys.argv) != 2:
        print("Usage: python promote_admin.py <user_id>")
        return 1

    init_db()
    return promote(sys.argv[1])


if __name__ == "__main__":
    sys.exit(main())
