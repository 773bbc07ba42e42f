"""Admin seed command: create or promote an Admin account outside the server.

Usage:
    python -m calcsync.seed --username admin --password 's3cret-pass'
    python -m calcsync.seed                 # falls back to ADMIN_USERNAME / ADMIN_PASSWORD

Invariants:
    - Idempotent: re-running never creates a second account
    - Exits non-zero without touching the database when credentials are missing
"""

import argparse
import asyncio
import sys

from calcsync.config import get_settings
from calcsync.db.session import standalone_session
from calcsync.services.identity_service import IdentityService


async def seed(database_url: str, username: str, password: str) -> None:
    settings = get_settings()
    async with standalone_session(database_url) as db:
        user = await IdentityService(db, settings).ensure_admin(username, password)
    print(f"Admin account ready: {user.username} ({user.id})")


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create or promote the calcsync admin account")
    parser.add_argument("--username", default=settings.admin_username)
    parser.add_argument("--password", default=settings.admin_password)
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args()

    if not args.username or not args.password:
        print("ERROR: --username and --password (or ADMIN_USERNAME/ADMIN_PASSWORD) are required", file=sys.stderr)
        return 1

    asyncio.run(seed(args.database_url, args.username, args.password))
    return 0


if __name__ == "__main__":
    sys.exit(main())
