"""
Database engine and session factory.

Configured from DATABASE_URL. SQLite is used for local development and
tests; PostgreSQL URLs get a pooled engine. An in-memory SQLite URL
shares one connection across the process, so it suits the single-user
console demo only; concurrent customers need a file or server database.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from salonbot.config import settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for ``database_url`` (defaults to settings)."""
    database_url = database_url or settings.storage.database_url
    echo = settings.storage.echo_sql if echo is None else echo
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo,
            )
            logger.info("Using in-memory SQLite database")
            return engine
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            echo=echo,
        )
        logger.info("Using SQLite database at %s", url.database)
        return engine

    if url.get_backend_name() != "postgresql":
        logger.warning(
            "%s has no partial indexes; cancelled bookings will keep their slot taken",
            url.get_backend_name(),
        )
    engine = create_engine(
        database_url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=echo,
    )
    logger.info("Using %s database %s@%s", url.get_backend_name(), url.database, url.host)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used by every store; objects stay usable after commit."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> list[str]:
    """Create all tables and return the table names present afterwards."""
    from salonbot.storage import models  # noqa: F401  registers tables on Base

    Base.metadata.create_all(bind=engine)
    tables = inspect(engine).get_table_names()
    logger.info("Database initialized with tables: %s", ", ".join(sorted(tables)))
    return tables


def check_db_connection(engine: Engine) -> bool:
    """Check if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Database connection check failed: %s", exc)
        return False
