#!/usr/bin/env python3
"""Drop and recreate the catalog tables. DESTRUCTIVE: every project, tag and link is lost."""

import os
import sys

from sqlalchemy import create_engine

from catalog_api.adapters.sql_store import Base


def migrate_database():
    """Drop catalog tables and recreate them from the current models."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        sys.exit(1)

    print("Connecting to database...")
    engine = create_engine(database_url, pool_pre_ping=True)

    print("Dropping catalog tables...")
    Base.metadata.drop_all(bind=engine)

    print("Creating catalog tables...")
    Base.metadata.create_all(bind=engine)

    print("Database migration complete:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    migrate_database()
