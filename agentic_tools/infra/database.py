"""Tenant-scoped database sessions."""

import logging
from contextlib import contextmanager
from typing import Generator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from agentic_tools.infra.config import config

logger = logging.getLogger(__name__)

# Created on first use so importing the package never opens a pool
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is None:
        _engine = create_engine(
            config.DATABASE_URL,
            poolclass=QueuePool,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=3600,
            pool_pre_ping=True,
            echo=config.DEBUG,
        )
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
        logger.info(f"Database engine created (pool_size={config.DB_POOL_SIZE})")
    return _engine


def dispose_engine() -> None:
    """Close pooled connections; the next session recreates the engine."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


@contextmanager
def get_db_session(tenant_id: Optional[str] = None) -> Generator[Session, None, None]:
    """
    One transaction, committed on exit and rolled back on error.

    With a tenant_id, app.current_tenant_id is set for the transaction only
    (set_config is_local), so RLS policies see the tenant and the setting
    never outlives the pooled connection's current use.
    """
    get_engine()
    session = _session_factory()
    try:
        if tenant_id:
            session.execute(
                text("SELECT set_config('app.current_tenant_id', :tenant_id, true)"),
                {"tenant_id": tenant_id},
            )
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")
        return False
