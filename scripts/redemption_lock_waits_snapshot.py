from __future__ import annotations

import argparse
import asyncio
import json
from urllib.parse import urlparse

import asyncpg  # type: ignore[import-untyped]

REDEMPTION_TABLES = ("redemption_codes", "redemption_usages", "users")


def _to_asyncpg_dsn(database_url: str) -> str:
    parsed = urlparse(database_url)
    if parsed.scheme in {"postgresql+asyncpg", "postgres+asyncpg"}:
        return parsed._replace(scheme="postgresql").geturl()
    return database_url


async def _collect(database_url: str) -> dict[str, object]:
    conn = await asyncpg.connect(_to_asyncpg_dsn(database_url))
    try:
        lock_waits = await conn.fetchval(
            """
            SELECT COUNT(*)::int
            FROM pg_stat_activity
            WHERE wait_event_type = 'Lock'
              AND state = 'active'
            """
        )
        waits_by_table = await conn.fetch(
            """
            SELECT c.relname AS table_name, COUNT(*)::int AS waiting
            FROM pg_locks l
            JOIN pg_class c ON c.oid = l.relation
            WHERE NOT l.granted
              AND c.relname = ANY($1::text[])
            GROUP BY c.relname
            """,
            list(REDEMPTION_TABLES),
        )
        deadlocks_total = await conn.fetchval(
            """
            SELECT COALESCE(SUM(deadlocks), 0)::bigint
            FROM pg_stat_database
            """
        )
    finally:
        await conn.close()

    return {
        "lock_waits_active": int(lock_waits or 0),
        "lock_waits_by_table": {row["table_name"]: int(row["waiting"]) for row in waits_by_table},
        "deadlocks_total": int(deadlocks_total or 0),
    }


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Snapshot PostgreSQL lock waits on the redemption tables."
    )
    parser.add_argument("--database-url", required=True)
    args = parser.parse_args()

    payload = asyncio.run(_collect(args.database_url))
    print(json.dumps(payload, separators=(",", ":"), sort_keys=True))  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
