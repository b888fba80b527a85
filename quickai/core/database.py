"""
Persistence layer: schema and engine management.

Tables are SQLAlchemy Core definitions on one shared MetaData:
- creations: append-only log, one row per successful generation
- creation_likes: like set, one row per (creation, user)
- idempotency_keys: operations that must apply at most once

PostgreSQL in production (QueuePool); SQLite for local runs and tests, with
in-memory databases pinned to a single shared connection (StaticPool).
"""
import logging
import os
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func, select

from quickai.core.config import settings

logger = logging.getLogger("quickai")

metadata = MetaData()

creations = Table(
    "creations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(100), nullable=False),
    Column("prompt", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("type", String(50), nullable=False),
    Column("publish", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index("idx_creations_user_created", "user_id", "created_at"),
    Index("idx_creations_publish_created", "publish", "created_at"),
)

creation_likes = Table(
    "creation_likes",
    metadata,
    Column("creation_id", Integer, ForeignKey("creations.id"), nullable=False),
    Column("user_id", String(100), nullable=False),
    Column("liked_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    # Set semantics: a user appears at most once per creation
    UniqueConstraint("creation_id", "user_id", name="uq_creation_likes_creation_user"),
    Index("idx_creation_likes_creation", "creation_id"),
)

idempotency_keys = Table(
    "idempotency_keys",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("scope", String(100), nullable=True, index=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Server pool sizing
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins over DATABASE_URL so test runs never touch real data."""
    return os.getenv("TEST_DATABASE_URL") or settings.DATABASE_URL


def database_configured() -> bool:
    return bool(get_database_url())


def build_engine(url: str, statement_timeout: Optional[float] = None) -> Engine:
    """
    Engine for ``url``.

    ``statement_timeout`` (seconds) is enforced by the database itself:
    PostgreSQL cancels the statement, SQLite stops waiting on a locked file.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if statement_timeout:
            connect_args["timeout"] = statement_timeout
        kwargs = {"connect_args": connect_args}
        if url in ("sqlite://", "sqlite+pysqlite://") or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    connect_args = {}
    if statement_timeout and url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={int(statement_timeout * 1000)}"
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def init_engine(database_url: Optional[str] = None, statement_timeout: Optional[float] = None) -> Engine:
    """(Re)bind the process-wide engine and session factory."""
    global _engine, _session_factory

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured. Set DATABASE_URL in environment or .env file.")

    _engine = build_engine(url, statement_timeout or settings.STORE_TIMEOUT_SECONDS)
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        init_engine()
    return _session_factory


@contextmanager
def session_scope(session_factory):
    """Commit on success, roll back on error, always close."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_db_session():
    """Session on the process-wide engine; see session_scope."""
    with session_scope(get_session_factory()) as session:
        yield session


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create missing tables; existing ones are left untouched."""
    metadata.create_all(bind=engine or get_engine())


def check_connection(engine: Optional[Engine] = None) -> bool:
    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(select(1))
        return True
    except (SQLAlchemyError, ValueError) as e:
        logger.warning("Database connection check failed", extra={"exc_type": type(e).__name__})
        return False
