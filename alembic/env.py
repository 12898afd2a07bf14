# alembic/env.py
import logging
import os
import sys
from logging.config import fileConfig

from sqlalchemy import create_engine

from alembic import context

# Projekt-Root in den Pfad, damit 'goodform' importierbar ist
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Importiert auch goodform.config, das die .env lädt
from goodform.database import Base, DATABASE_URL  # noqa: E402
from goodform import models  # noqa: E402,F401  (registriert die Tabellen)

config = context.config

# Logging aus alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _sync_url() -> str:
    """Alembic arbeitet synchron: Async-Treiber aus der URL entfernen."""
    if DATABASE_URL is None:
        raise ValueError("DATABASE_URL ist nicht gesetzt. Bitte in .env konfigurieren.")
    url = DATABASE_URL
    for async_driver in ("+asyncpg", "+aiosqlite"):
        url = url.replace(async_driver, "")
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL
    and not an Engine. Calls to context.execute() here emit the given
    string to the script output.
    """
    offline_url = _sync_url()
    logger.info("Offline-Migration mit URL: %s", offline_url)
    context.configure(
        url=offline_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a synchronous engine."""
    connectable = create_engine(_sync_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
