# goodform/database.py
import logging
import os

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

from . import config

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

if DATABASE_URL is None:
    logger.warning(
        "DATABASE_URL nicht in Umgebungsvariablen gefunden! Fallback auf lokale SQLite-DB."
    )
    sqlite_db_path = os.path.join(os.path.dirname(__file__), "goodform_fallback.db")
    DATABASE_URL = f"sqlite+aiosqlite:///{sqlite_db_path}"

logger.debug("Using DATABASE_URL: %s", DATABASE_URL)

engine_kwargs = {"echo": config.SQL_ECHO}
if DATABASE_URL.startswith("sqlite"):
    # aiosqlite-Verbindungen nicht über Event-Loops hinweg wiederverwenden
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **engine_kwargs)

AsyncSessionFactory = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db_session() -> AsyncSession:
    async with AsyncSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_db_and_tables():
    """
    Tabellen werden von Alembic verwaltet. Nur die SQLite-Fallback-DB wird hier
    direkt angelegt, damit ein lokaler Start ohne Migrationen funktioniert.
    """
    if not DATABASE_URL.startswith("sqlite"):
        return
    from . import models  # noqa: F401  (registriert die Tabellen an Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("SQLite-Tabellen sichergestellt.")
