"""
Health and Readiness Check Service

Functions:
- check_database_ready(): DB readiness with strict timeout + TTL caching
"""

from typing import Optional, Tuple
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from models.database import db
import logging
import time

logger = logging.getLogger(__name__)

# Format: (result: bool, timestamp: float)
_readiness_cache: Optional[Tuple[bool, float]] = None
_CACHE_TTL_SECONDS = 10


def reset_readiness_cache() -> None:
    global _readiness_cache
    _readiness_cache = None


def check_database_ready(timeout_ms: int = 500, use_cache: bool = True) -> bool:
    """
    Check if the database accepts queries.

    Uses an engine-level connection (not db.session) so the request-scoped
    session is never touched. On PostgreSQL the probe runs under a
    transaction-scoped statement_timeout.

    Args:
        timeout_ms: Statement timeout for the probe (PostgreSQL only)
        use_cache: Reuse a result younger than 10 seconds

    Returns:
        True if the database answered SELECT 1
    """
    global _readiness_cache

    if use_cache and _readiness_cache is not None:
        cached_result, cached_time = _readiness_cache
        age = time.time() - cached_time
        if age < _CACHE_TTL_SECONDS:
            logger.debug(f"Using cached readiness result: {cached_result} (age: {age:.1f}s)")
            return cached_result

    try:
        with db.engine.begin() as conn:
            if conn.dialect.name == 'postgresql':
                conn.execute(text(f"SET LOCAL statement_timeout = '{int(timeout_ms)}ms'"))
            conn.execute(text("SELECT 1"))
        result = True
    except SQLAlchemyError as e:
        result = False
        logger.warning(f"db_not_ready err={str(e)[:200]}")

    if use_cache:
        _readiness_cache = (result, time.time())

    return result
