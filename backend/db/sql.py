"""
Raw SQL helpers for tooling and diagnostics.

Rules:
1. :name bind params only (psycopg2 percent-paren style is rejected)
2. Request-path queries are built with SQLAlchemy expressions in
   services/swap_cards/store.py, never with these helpers

Usage:
    from db.sql import run_sql, count_self_proposals

    rows = run_sql(db, "SELECT id FROM swaps WHERE status = :status", status='pending')
    leaks = count_self_proposals(db)
"""
import re
from typing import Any, List, Optional, Tuple
from sqlalchemy import text


PSYCOPG2_PARAM_PATTERN = re.compile(r'%\([a-zA-Z_][a-zA-Z0-9_]*\)s')


class SQLParamStyleError(Exception):
    """Raised when SQL uses incorrect parameter style."""
    pass


def validate_sql_text(sql: str) -> None:
    """
    Validate that SQL text uses :name param style.

    Raises SQLParamStyleError if psycopg2 percent-paren style is detected.
    """
    matches = PSYCOPG2_PARAM_PATTERN.findall(sql)
    if matches:
        raise SQLParamStyleError(
            f"SQL contains psycopg2-style params: {matches}. "
            f"Use SQLAlchemy :name style instead."
        )


def run_sql(db, sql: str, validate: bool = True, **params) -> List[Tuple]:
    """
    Execute SQL and return all rows.

    Args:
        db: SQLAlchemy session, Flask-SQLAlchemy db, or Connection
        sql: SQL text using :name param style
        validate: Whether to validate param style (default True)
        **params: Named parameters to pass to the query
    """
    if validate:
        validate_sql_text(sql)

    # Handle both db and db.session patterns
    session = getattr(db, 'session', db)
    result = session.execute(text(sql), params)
    return result.fetchall()


def run_sql_scalar(db, sql: str, validate: bool = True, **params) -> Any:
    """Execute SQL and return a single scalar value (COUNT(*), MAX(), ...)."""
    if validate:
        validate_sql_text(sql)

    session = getattr(db, 'session', db)
    row = session.execute(text(sql), params).fetchone()
    return row[0] if row else None


# =============================================================================
# SELF-PROPOSAL AUDIT
# =============================================================================
#
# Storage-level scan for proposals whose proposer owns the target swap.
# Such rows may legitimately exist in storage (nothing prevents a bad writer
# from inserting them); the read path filters them. The audit reports how
# many there are so operators can clean them up.
#
# =============================================================================

SELF_PROPOSAL_AUDIT_SQL = """
    SELECT p.id AS proposal_id,
           p.swap_id AS swap_id,
           p.proposer_user_id AS proposer_user_id
    FROM proposals p
    JOIN swaps s ON s.id = p.swap_id
    JOIN bookings b ON b.id = s.source_booking_id
    WHERE p.proposer_user_id = b.user_id
    ORDER BY p.swap_id, p.id
    LIMIT :limit
"""

SELF_PROPOSAL_COUNT_SQL = """
    SELECT COUNT(*)
    FROM proposals p
    JOIN swaps s ON s.id = p.swap_id
    JOIN bookings b ON b.id = s.source_booking_id
    WHERE p.proposer_user_id = b.user_id
"""


def find_self_proposals(db, limit: int = 100) -> List[Tuple]:
    """Return up to `limit` (proposal_id, swap_id, proposer_user_id) self-proposal rows."""
    return run_sql(db, SELF_PROPOSAL_AUDIT_SQL, limit=limit)


def count_self_proposals(db) -> int:
    """Return the number of self-proposal rows in storage."""
    count: Optional[int] = run_sql_scalar(db, SELF_PROPOSAL_COUNT_SQL)
    return int(count or 0)
