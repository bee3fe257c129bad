"""Create the configured Postgres database for local/dev environments.

Run ``alembic upgrade head`` afterwards to create the article tables. The database name is
validated before use because CREATE DATABASE cannot be parameterized in PostgreSQL.
"""

import asyncio
import os
import re
import sys

from sqlalchemy import text
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import create_async_engine

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


_DB_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def _validate_database_name(db_name: str) -> str:
  """Validate a PostgreSQL database name used as an identifier."""
  if not db_name:
    raise ValueError("Target database name is empty.")

  if not _DB_NAME_PATTERN.fullmatch(db_name):
    raise ValueError("Target database name contains invalid characters (allowed: A-Z, a-z, 0-9, _).")

  return db_name


async def create_database_if_not_exists() -> None:
  """Create the configured database if it does not already exist."""
  # Import after path setup so the script works when run directly.
  from app.config import get_database_settings

  dsn = get_database_settings().pg_dsn
  if not dsn:
    print("Error: SEOHQ_PG_DSN is not set.")
    sys.exit(1)

  url = make_url(dsn)
  target_db = _validate_database_name(url.database or "")

  # Connect to the maintenance database to check/create the target DB.
  postgres_url = url.set(database="postgres")
  if postgres_url.drivername.startswith("postgresql") and "+asyncpg" not in postgres_url.drivername:
    postgres_url = postgres_url.set(drivername="postgresql+asyncpg")

  print(f"Connecting to postgres to check for database '{target_db}'...")

  # CREATE DATABASE cannot run inside a transaction.
  engine = create_async_engine(postgres_url, isolation_level="AUTOCOMMIT")

  try:
    async with engine.connect() as conn:
      result = await conn.execute(text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": target_db})
      if result.scalar() == 1:
        print(f"Database '{target_db}' already exists.")
        return

      print(f"Database '{target_db}' does not exist. Creating...")
      await conn.execute(text(f'CREATE DATABASE "{target_db}"'))
      print(f"Database '{target_db}' created successfully.")
  finally:
    await engine.dispose()


if __name__ == "__main__":
  asyncio.run(create_database_if_not_exists())
