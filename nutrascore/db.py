# nutrascore/db.py
"""
Relational store access for the NutraScore dashboard

Version: 1.0.0
Features:
- One process-wide SQLAlchemy engine, created lazily behind a lock
- MySQL (pymysql) by default; any SQLAlchemy URL via DATABASE_URL
- Pool pre-ping so stale MySQL connections are replaced transparently
- Health check / pool status for the admin status panel
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from urllib.parse import quote_plus
import logging
import threading
from typing import Tuple, Optional, Dict, Any

from .config import config

logger = logging.getLogger(__name__)

DEFAULT_DRIVER = "mysql+pymysql"

# ==================== ENGINE ====================

_engine: Optional[Engine] = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Shared engine for every query and mutation.

    Created on first use. All Streamlit sessions of the process share its
    connection pool.
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _build_engine()

    return _engine


def build_database_url(db_config: Dict[str, Any]) -> str:
    """SQLAlchemy URL: an explicit ``url`` wins over host/port/user settings"""
    if db_config.get("url"):
        return db_config["url"]

    driver = db_config.get("driver") or DEFAULT_DRIVER
    password = quote_plus(str(db_config["password"]))

    return (
        f"{driver}://{db_config['user']}:{password}"
        f"@{db_config['host']}:{db_config['port']}/{db_config['database']}"
    )


def _masked_url(db_config: Dict[str, Any]) -> str:
    if db_config.get("url"):
        return db_config["url"].split("@")[-1]
    return f"{db_config.get('host')}:{db_config.get('port')}/{db_config.get('database')}"


def _build_engine() -> Engine:
    if not config.is_db_configured():
        logger.error("Database settings are incomplete")
        raise ValueError("Database is not configured. Set DB_* or DATABASE_URL in .env or secrets.")

    db_config = config.get_db_config()
    url = build_database_url(db_config)

    # SQLite (local runs) keeps its default pool
    if url.startswith("sqlite"):
        logger.info(f"🔌 Using SQLite store: {url}")
        return create_engine(url, echo=False)

    pool_size = config.get_app_setting("DB_POOL_SIZE", 5)
    pool_recycle = config.get_app_setting("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        echo=False
    )

    logger.info(f"✅ Engine ready for {_masked_url(db_config)} (pool_size={pool_size}, recycle={pool_recycle}s)")
    return engine


# ==================== HEALTH ====================

def check_db_connection(engine: Optional[Engine] = None) -> Tuple[bool, Optional[str]]:
    """
    Round-trip ``SELECT 1``.

    Returns:
        (True, None) when reachable, otherwise (False, message for the login page)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"❌ Database unreachable: {e}")
        return False, "Não foi possível conectar ao banco de dados."
    except (SQLAlchemyError, ValueError) as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {e}"

    return True, None


def reset_db_engine():
    """Dispose the shared engine; the next query builds a new one."""
    global _engine

    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("🔄 Database pool disposed")
        _engine = None


def get_connection_pool_status() -> Dict[str, Any]:
    """Checked-in / checked-out counts of the shared QueuePool"""
    if _engine is None:
        return {"status": "not_initialized"}

    pool = _engine.pool
    if not isinstance(pool, QueuePool):
        return {"status": "active", "pool": type(pool).__name__}

    return {
        "status": "active",
        "pool_size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "overflow": pool.overflow(),
    }


__all__ = [
    'get_db_engine',
    'build_database_url',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
]
