"""
Database Initialization Script for AgriLink API

Creates the marketplace and telemetry tables and checks that every table
the API maps is present afterwards.

Usage:
    python init_database.py            # create missing tables
    python init_database.py --drop     # drop and recreate everything
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from src.api.core.database import engine, Base
from src.api.models import crop, iot, profile, purchase_request, requirement  # noqa: F401


async def init_database(drop: bool = False) -> bool:
    """Create the schema; returns False when any step fails"""
    print("=" * 60)
    print("AgriLink Database Initialization")
    print("=" * 60)

    print("\n1. Checking connection...")
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        print(f"   ✗ Cannot reach {engine.url.render_as_string(hide_password=True)}: {e}")
        print("   Set POSTGRES_* or SQLALCHEMY_DATABASE_URI in .env")
        return False
    print(f"   ✓ Connected ({engine.dialect.name})")

    print("\n2. Creating tables...")
    try:
        async with engine.begin() as conn:
            if drop:
                await conn.run_sync(Base.metadata.drop_all)
                print("   ✓ Dropped existing tables")
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        print(f"   ✗ Schema creation failed: {e}")
        return False

    print("\n3. Verifying tables...")
    async with engine.connect() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))

    expected = set(Base.metadata.tables)
    for table in sorted(expected):
        print(f"   {'✓' if table in existing else '✗'} {table}")

    missing = expected - existing
    if missing:
        print(f"\nMissing tables: {', '.join(sorted(missing))}")
        return False

    print("\nDone. Start the API with: uvicorn src.api.main:app --reload")
    return True


async def run(drop: bool) -> bool:
    try:
        return await init_database(drop=drop)
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Create the AgriLink database schema")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    ok = asyncio.run(run(args.drop))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
