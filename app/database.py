import logging
import os
import time
from threading import Lock
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from . import config

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

_engine: Optional[Engine] = None
_engine_lock = Lock()

SessionLocal = sessionmaker(autocommit=False, autoflush=False)
Base = declarative_base()


def _install_slow_query_logging(engine: Engine) -> None:
    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    logger.info(f"📊 Slow query logging enabled (threshold: {SLOW_QUERY_THRESHOLD}s)")


def get_engine() -> Engine:
    """
    Create the engine on first use.

    Importing the app (tests, tooling) must not require a reachable database,
    so the engine is built lazily and kept for the process lifetime.
    """
    global _engine
    if _engine is not None:
        return _engine

    with _engine_lock:
        if _engine is None:
            if not config.DATABASE_URL:
                raise RuntimeError("DATABASE_URL is not configured")
            try:
                engine = create_engine(
                    config.DATABASE_URL,
                    pool_pre_ping=True,
                    pool_recycle=POOL_RECYCLE,
                    pool_size=POOL_SIZE,
                    max_overflow=MAX_OVERFLOW,
                    pool_timeout=POOL_TIMEOUT,
                    echo=False,
                )
                logger.info("✅ Database engine created successfully")
                logger.info(
                    f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
                )
            except Exception as e:
                logger.error(f"❌ Failed to create database engine: {e}")
                raise
            if ENABLE_QUERY_LOGGING:
                _install_slow_query_logging(engine)
            _engine = engine
    return _engine


def get_db():
    db = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()
