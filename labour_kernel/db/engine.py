"""
Module: labour_kernel.db.engine
Responsibility: Build SQLAlchemy engines for the ledger's two backends and
    create or drop the ledger schema.  Engines are passed around explicitly;
    this module keeps no global connection state.
Architecture position: Kernel > DB.  May import from db/base.py.
    create_tables imports the module ORM registry so the metadata is
    complete; nothing else here reaches outside the kernel.

Backends:
    - PostgreSQL (production): READ COMMITTED plus the explicit per-worker
      row lock taken by UnitOfWork.lock_worker().
    - SQLite (development, tests): in-memory URLs share one connection
      through StaticPool so every session sees the same database; file URLs
      get a busy timeout so concurrent writers queue behind the worker lock
      instead of failing with "database is locked".
"""

from typing import Protocol

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from labour_kernel.logging_config import get_logger

logger = get_logger("db.engine")


class DatabaseSettings(Protocol):
    """The fields of labour_config's DatabaseConfig an engine needs."""

    url: str
    echo: bool
    pool_size: int
    max_overflow: int
    busy_timeout_seconds: int


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    busy_timeout_seconds: int = 30,
) -> Engine:
    """
    Create an engine for a PostgreSQL or SQLite URL.

    Args:
        database_url: SQLAlchemy URL.  ``sqlite://`` is an in-memory database.
        echo: Log every SQL statement.
        pool_size: Pooled connections (PostgreSQL and file SQLite).
        max_overflow: Connections allowed beyond pool_size.
        busy_timeout_seconds: How long a SQLite writer waits for the lock.
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    elif url.database in (None, "", ":memory:"):
        engine = create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            connect_args={"check_same_thread": False, "timeout": busy_timeout_seconds},
        )

    logger.debug(
        "engine_built",
        extra={"dialect": engine.dialect.name, "database": url.database, "pool_size": pool_size},
    )
    return engine


def engine_from_config(database: DatabaseSettings) -> Engine:
    """Build an engine from the ``database`` section of the active config."""
    return build_engine(
        database.url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        busy_timeout_seconds=database.busy_timeout_seconds,
    )


def create_tables(engine: Engine) -> None:
    """Create every ledger table that does not exist yet."""
    from labour_kernel.db.base import Base
    from labour_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(engine)
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables(engine: Engine) -> None:
    """Drop every ledger table.  Tests and local resets only."""
    from labour_kernel.db.base import Base

    Base.metadata.drop_all(engine)
    logger.warning("tables_dropped", extra={"dialect": engine.dialect.name})
