"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (PostgreSQL) and SQLite support
- Test database support
- Table definitions for profiles, usage events, verified payments and the
  admin audit log
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, select
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func, false
import logging
import os

from routeready.core.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # In-memory databases must share one connection across threads
        pool_kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            pool_kwargs["poolclass"] = StaticPool
        _engine = create_engine(url, echo=False, **pool_kwargs)
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Drop the current engine so the next call re-reads the database URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Profiles: one row per authenticated account
profiles = Table(
    'profiles',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('email', String(254), nullable=True),
    Column('usage_count', Integer, nullable=False, server_default='0'),
    Column('has_paid', Boolean, nullable=False, server_default=false()),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_profiles_has_paid', 'has_paid'),
)

# Usage events: append-only audit of consumed calculations
usage_events = Table(
    'usage_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('usage_key', String(100), nullable=False),
    Column('occurred_at', DateTime(timezone=True), nullable=False),
    Column('metadata', JSON, nullable=True),
    # Composite index for usage queries: (user_id, usage_key, occurred_at)
    Index('idx_usage_events_user_key_occurred', 'user_id', 'usage_key', 'occurred_at'),
)

# Verified payments (idempotent by checkout session)
payment_events = Table(
    'payment_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('checkout_session_id', String(255), nullable=False, unique=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('amount_total', Integer, nullable=True),
    Column('currency', String(10), nullable=True),
    Column('customer_email', String(254), nullable=True),
    Column('note', Text, nullable=True),
    Column('verified_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_payment_events_verified_at', 'verified_at'),
)

# Admin audit log: who changed what, newest entries are read first
admin_audit_log = Table(
    'admin_audit_log',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('admin_user_id', String(100), nullable=False),  # Clerk user id, or "system:<source>"
    Column('action', String(100), nullable=False),  # "payment_status_changed", "payment_verified"
    Column('target_user_id', String(100), nullable=True),
    Column('details', JSON, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_admin_audit_log_created_at', 'created_at'),
    Index('idx_admin_audit_log_target_user_id', 'target_user_id'),
)
