from __future__ import annotations

import asyncio
import os
import pathlib
import sys

import asyncpg

ROOT_DIR = pathlib.Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

from strivon.settings import settings

MIGRATIONS_DIR = BACKEND_DIR / "infra" / "migrations"


def _is_true(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


async def wait_for_db(retries: int = 30, delay: int = 2) -> asyncpg.Connection:
    ssl = "require" if _is_true(os.environ.get("POSTGRES_SSL")) else None
    for i in range(retries):
        try:
            return await asyncpg.connect(settings.postgres_url, ssl=ssl)
        except (OSError, asyncpg.CannotConnectNowError) as e:
            print(f"Database starting up... waiting {delay}s ({i+1}/{retries}): {e}")
            await asyncio.sleep(delay)
    raise SystemExit("Could not connect to database after multiple retries")


async def main() -> None:
    paths = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not paths:
        raise SystemExit("no migration files found")

    conn = await wait_for_db()
    try:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            """
        )
        applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}

        for path in paths:
            version = path.name.split("_", 1)[0]
            if version in applied:
                continue
            sql = path.read_text()
            try:
                async with conn.transaction():
                    await conn.execute(sql)
                    await conn.execute(
                        """
                        INSERT INTO schema_migrations (version)
                        VALUES ($1)
                        ON CONFLICT (version) DO UPDATE SET applied_at = NOW()
                        """,
                        version,
                    )
                print(f"Applied {path.name}")
            except Exception as exc:  # noqa: BLE001
                print(f"Failed applying {path.name}: {exc}")
                raise
    finally:
        await conn.close()


if __name__ == "__main__":
    asyncio.run(main())
