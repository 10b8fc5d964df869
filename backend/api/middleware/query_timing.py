"""
Query timing middleware - Lightweight SQL timing for observability.

Captures per request:
- Total SQL time (X-DB-Time-Ms)
- Statement count (X-Query-Count)

The swap card read path is one streamed statement, so X-Query-Count on
/api/swaps/cards is expected to stay at 1. Anything higher means a lazy
load or a second query crept into the aggregation.

Log format:
    SLOW_QUERY request_id=<uuid> elapsed_ms=<float> stmt=<first 80 chars>
    REQUEST_TIMING request_id=<uuid> db_time_ms=<float> query_count=<int>
"""

import logging
import time
from threading import local

from flask import Flask, g, has_app_context
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger('query_timing')

# Thread-local storage for query timing (safe for concurrent requests)
_timing = local()

SLOW_QUERY_THRESHOLD_MS = 500
REQUEST_TIMING_LOG_MS = 200


def _before_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.perf_counter()


def _after_execute(conn, cursor, statement, parameters, context, executemany):
    start_time = getattr(context, '_query_start_time', None)
    if start_time is None:
        return

    elapsed_ms = (time.perf_counter() - start_time) * 1000

    # Outside a request (CLI, tests without a client) nothing is collected
    queries = getattr(_timing, 'queries', None)
    if queries is not None:
        queries.append(round(elapsed_ms, 2))

    if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
        stmt_preview = (statement[:80] + '...') if statement and len(statement) > 80 else statement
        logger.warning(
            f"SLOW_QUERY request_id={_get_request_id()} "
            f"elapsed_ms={elapsed_ms:.2f} stmt={stmt_preview}"
        )


def _install_engine_listeners() -> None:
    # Listeners are process-global; create_app() may run many times in tests
    if not event.contains(Engine, "before_cursor_execute", _before_execute):
        event.listen(Engine, "before_cursor_execute", _before_execute)
        event.listen(Engine, "after_cursor_execute", _after_execute)


def setup_query_timing_middleware(app: Flask) -> None:
    """
    Set up query timing middleware on Flask app.

    Hooks into SQLAlchemy engine events to time all queries and
    injects timing headers into responses.
    """
    _install_engine_listeners()

    @app.before_request
    def reset_query_timing():
        _timing.queries = []

    @app.after_request
    def inject_timing_headers(response):
        queries = getattr(_timing, 'queries', None) or []
        _timing.queries = None
        if not queries:
            return response

        total_db_ms = round(sum(queries), 2)
        query_count = len(queries)

        response.headers['X-DB-Time-Ms'] = str(total_db_ms)
        response.headers['X-Query-Count'] = str(query_count)

        if total_db_ms > REQUEST_TIMING_LOG_MS:
            logger.info(
                f"REQUEST_TIMING request_id={_get_request_id()} "
                f"db_time_ms={total_db_ms:.2f} query_count={query_count}"
            )

        return response


def _get_request_id() -> str:
    if has_app_context():
        return getattr(g, 'request_id', 'no-request-id')
    return 'no-request-id'

