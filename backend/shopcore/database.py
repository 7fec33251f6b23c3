"""
Database Configuration
======================

This module sets up:
1. SQLAlchemy engine (connection pool to PostgreSQL)
2. SessionLocal (database session factory)
3. Base (declarative base for models)
4. session_scope (one unit of work: commit, or rollback, then release)

Key Concepts:
- Engine: The "pool" of database connections
- Session: A "conversation" with the database (one unit of work = one session)
- Base: Parent class for all database models
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shopcore.config import load_settings

settings = load_settings()

# ============================================================================
# SQLAlchemy ENGINE
# ============================================================================
# - pool_pre_ping=True
#   Tests connections before handing them out, so a restarted database does
#   not surface as "connection lost" on the next request.
#
# - echo
#   Prints every SQL statement when SQL_ECHO is set.

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.sql_echo,
)

# ============================================================================
# SESSION FACTORY
# ============================================================================
# SessionLocal is a FACTORY: each call returns a NEW session.
# Sessions are not thread-safe, so every request / unit of work gets its own.
#
# - autocommit=False: nothing is durable until session.commit()
# - autoflush=False: pending changes are flushed only when we ask for it

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

SessionFactory = Callable[[], Session]

# ============================================================================
# DECLARATIVE BASE
# ============================================================================

Base = declarative_base()


# ============================================================================
# SCOPED UNIT OF WORK
# ============================================================================

@contextmanager
def session_scope(factory: Optional[SessionFactory] = None) -> Iterator[Session]:
    """
    Open a session for one atomic unit of work.

    Commits when the block exits normally. Any exception raised inside the
    block (validation failure, driver error, anything else) rolls the
    transaction back and is re-raised. The session is closed, returning its
    connection to the pool, on every exit path.

    Usage:
        with session_scope() as db:
            db.add(obj)
    """
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(bind=None) -> None:
    """Create every table registered on Base (idempotent)."""
    from shopcore import models  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(bind=bind or engine)
