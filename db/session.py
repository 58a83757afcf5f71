# WORKFLOW: Database engine, session management and target creation.
# Used by: etl.pipeline (one session per worker), etl.load, scripts/ingest_rvu.py
# Functions:
# 1. get_engine() / get_session_factory() - lazy-loaded singletons
# 2. ensure_rvu_table() - create the target schema and table if absent
# 3. check_db_connection() - connectivity check before loading
# 4. reset_engine() - drop cached engine (tests, URL changes)
#
# Database lifecycle:
# Startup: check_db_connection() -> ensure_rvu_table() -> Create schema -> Create table
# Runtime: session per worker -> insert batches -> Close session

import logging
import threading
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.schema import CreateSchema

from core.config import settings
from db.models import get_rvu_table

logger = logging.getLogger(__name__)

# Lazy-loaded database engine and session factory
_engine = None
_SessionLocal = None
_lock = threading.Lock()


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": max(settings.max_workers, 5),
        "connect_args": {"options": "-c timezone=utc"},
    }


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get database engine (lazy-loaded)."""
    global _engine
    with _lock:
        if _engine is None:
            url = database_url or settings.database_url
            _engine = create_engine(url, echo=settings.debug, **_engine_kwargs(url))
            logger.info(f"Created database engine for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """Get session factory (lazy-loaded)."""
    global _SessionLocal
    engine = get_engine(database_url)
    with _lock:
        if _SessionLocal is None:
            _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return _SessionLocal


def reset_engine() -> None:
    """Dispose of the cached engine so the next call builds a new one."""
    global _engine, _SessionLocal
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionLocal = None


def resolve_schema(engine: Engine, schema: Optional[str]) -> Optional[str]:
    """SQLite has no schemas; everything else keeps the requested one."""
    if engine.dialect.name == "sqlite":
        return None
    return schema or None


def ensure_rvu_table(engine: Engine, schema: Optional[str] = None, table_name: str = "rvu"):
    """
    Create the target schema and rvu table if they do not exist.

    Args:
        engine: Target engine
        schema: Schema name; ignored on SQLite
        table_name: Table name

    Returns:
        The Table the records will be written to
    """
    schema = resolve_schema(engine, schema)
    table = get_rvu_table(schema, table_name)

    try:
        with engine.begin() as conn:
            if schema:
                conn.execute(CreateSchema(schema, if_not_exists=True))
            table.create(bind=conn, checkfirst=True)
        logger.info(f"Ensured table {table.fullname}")
        return table

    except Exception as e:
        logger.error(f"Failed to create table {table.fullname}: {e}")
        raise


def check_db_connection(engine: Optional[Engine] = None) -> bool:
    """
    Check if database connection is working.
    """
    try:
        engine = engine or get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
