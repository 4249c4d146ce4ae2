"""Add an email address to the moderation admin allowlist.

Usage: python scripts/add_admin_email.py admin@example.com
"""

import asyncio
import os
import sys

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BACKEND_DIR = os.path.join(ROOT_DIR, "backend")
if BACKEND_DIR not in sys.path:
    sys.path.append(BACKEND_DIR)

from strivon.infra.postgres import close_pool, init_pool
from strivon.moderation.domain.store import normalise_email
from strivon.moderation.infra.postgres_store import PostgresModerationStore


async def add_admin(email: str) -> int:
    normalised = normalise_email(email)
    if not normalised or "@" not in normalised:
        print(f"ERROR: '{email}' is not an email address.")
        return 1
    pool = await init_pool()
    try:
        store = PostgresModerationStore(pool)
        if await store.add_admin_email(normalised):
            print(f"Added {normalised} to the admin allowlist.")
        else:
            print(f"{normalised} is already an admin.")
    finally:
        await close_pool()
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/add_admin_email.py <email>")
        sys.exit(1)
    sys.exit(asyncio.run(add_admin(sys.argv[1])))
