#!/usr/bin/env python3
"""Create a survey year schema and fill it with sample metadata.

Usage:
    python -m seed.run --year 2025 [--clear]

Options:
    --year      Survey year whose schema is created
    --clear     Drop the year schema before creating it again
"""

import argparse
import asyncio
import sys

import psycopg

from core.config import AppConfig
from seed.metadata import seed_metadata
from seed.schema import create_year_schema, drop_year_schema


async def main(year: int, clear: bool = False) -> int:
    """Run all seed scripts."""
    config = AppConfig.load()

    if not config.database.host:
        print("Error: No database configured")
        return 1

    schema = config.grid.year_schema.format(year=year)
    print(f"Connecting to database: {config.database.host}/{config.database.name}")

    async with await psycopg.AsyncConnection.connect(
        config.database.conninfo
    ) as conn:
        # Seed scripts manage their own transactions
        await conn.set_autocommit(True)

        if clear:
            print("\n=== Clearing year schema ===")
            await drop_year_schema(conn, schema)

        print("\n=== Creating year schema ===")
        await create_year_schema(conn, schema)

        print("\n=== Seeding metadata ===")
        await seed_metadata(conn, schema)

        print("\n=== Seed complete ===")
        return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a survey year with sample metadata")
    parser.add_argument("--year", type=int, required=True, help="Survey year to seed")
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Drop the year schema before seeding",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.year, clear=args.clear)))
