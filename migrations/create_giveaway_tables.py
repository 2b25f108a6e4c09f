"""
Migration: Create giveaway system tables

Creates the tables behind the interactions giveaway bot:
- giveaway_records: One versioned JSON record per running giveaway
- scheduled_tasks: Delayed draw tasks (durable queue)

Run from the project root:
    python -m migrations.create_giveaway_tables
"""

import sys

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

import config
from giveaways.database import create_db_engine, setup_giveaway_database

REQUIRED_TABLES = ("giveaway_records", "scheduled_tasks")


def run_migration(database_url=None):
    """Run the migration, returns the tables now present"""
    engine = create_db_engine(database_url or config.DATABASE_URL)
    try:
        print("Creating giveaway system tables...")
        setup_giveaway_database(engine)

        existing = set(inspect(engine).get_table_names())
        for table in REQUIRED_TABLES:
            print(f"{'✅' if table in existing else '❌'} {table}")

        missing = [table for table in REQUIRED_TABLES if table not in existing]
        if missing:
            raise RuntimeError(f"Tables missing after migration: {', '.join(missing)}")

        print("\n✅ Migration completed successfully!")
        return existing
    finally:
        engine.dispose()


if __name__ == "__main__":
    try:
        run_migration()
    except (SQLAlchemyError, RuntimeError) as e:
        print(f"❌ Migration failed: {e}")
        sys.exit(1)
