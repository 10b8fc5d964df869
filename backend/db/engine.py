"""
Database engine factory for non-Flask contexts.

Flask uses db.init_app(app) with Config.SQLALCHEMY_ENGINE_OPTIONS.
The operator CLI connects through this factory instead: one-shot
commands get a NullPool engine, so each operation connects and closes.

Usage:
    from db.engine import get_engine, dispose_engines

    engine = get_engine()
    try:
        with engine.connect() as conn:
            ...
    finally:
        dispose_engines()

Warmup with retry:
    - Exponential backoff between attempts (0.75s, 1.5s, 3s)
    - Fails fast after 4 attempts with the last OperationalError
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool

log = logging.getLogger(__name__)

# Module-level engine cache (per-process, keyed by URL)
_ENGINES: Dict[str, Engine] = {}


def _base_options() -> Dict[str, Any]:
    """Engine options from Config.SQLALCHEMY_ENGINE_OPTIONS (copied, never mutated)."""
    from config import Config

    return dict(getattr(Config, "SQLALCHEMY_ENGINE_OPTIONS", {}) or {})


def _warmup(engine: Engine, attempts: int = 4, base_sleep: float = 0.75) -> None:
    """
    Open one connection with exponential backoff.

    Raises:
        OperationalError: If all attempts fail
    """
    last_error: Optional[Exception] = None

    for i in range(attempts):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("db_warmup_success attempt=%d", i + 1)
            return
        except OperationalError as e:
            last_error = e
            if i == attempts - 1:
                break
            sleep_s = base_sleep * (2 ** i)
            log.warning(
                "db_warmup_retry attempt=%d/%d sleep_s=%.2f err=%s",
                i + 1, attempts, sleep_s, str(e)[:100]
            )
            time.sleep(sleep_s)

    log.error("db_warmup_failed after %d attempts", attempts)
    raise last_error  # type: ignore[misc]


def get_engine(database_url: Optional[str] = None, warmup: bool = True) -> Engine:
    """
    Get a cached NullPool engine for one-shot tooling.

    Args:
        database_url: Explicit URL; defaults to the validated DATABASE_URL
        warmup: Run the retrying SELECT 1 before returning

    Raises:
        OperationalError: If the database is unreachable after retries
    """
    if database_url is None:
        from config import get_database_url
        database_url = get_database_url()

    cached = _ENGINES.get(database_url)
    if cached is not None:
        return cached

    opts = _base_options()
    connect_args = dict(opts.get("connect_args", {}) or {})
    if not database_url.startswith("postgresql"):
        # connect_timeout / statement_timeout options are libpq-only
        connect_args = {}

    engine = create_engine(
        database_url,
        poolclass=NullPool,
        connect_args=connect_args,
        pool_pre_ping=opts.get("pool_pre_ping", True),
    )
    log.info("db_engine_created poolclass=NullPool")

    if warmup:
        _warmup(engine)

    _ENGINES[database_url] = engine
    return engine


def dispose_engines() -> None:
    """Dispose all cached engines (tests, CLI shutdown)."""
    for url in list(_ENGINES):
        _ENGINES.pop(url).dispose()
    log.info("db_engines_disposed")
