"""
Rate Limiter Configuration

Uses Redis in production (RATELIMIT_STORAGE_URI from REDIS_URL), memory
storage for development and tests.

Key decisions:
- Viewer-based key when a valid Bearer token is present
- IP-based key for anonymous requests
- Per-endpoint limits read from app config at request time, so tests and
  deployments can tune them without code changes
"""

import logging
from flask import current_app, request
from flask_limiter import Limiter

logger = logging.getLogger(__name__)


def get_rate_limit_key():
    """
    Get rate limit key - viewer id if authenticated, else remote_addr.

    Limits are evaluated before the view runs, so the token is decoded
    here rather than read from g.
    """
    from utils.auth import get_viewer_id_from_request

    viewer_id = get_viewer_id_from_request()
    if viewer_id:
        return f"user:{viewer_id}"
    return f"ip:{request.remote_addr}"


# Default limits for unannotated endpoints
DEFAULT_LIMITS = ["1000 per day", "300 per hour"]

limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=DEFAULT_LIMITS,
    key_prefix="rate_limit",
    # Return 429 with retry-after header
    headers_enabled=True,
)


def swap_cards_limit() -> str:
    """Limit string for the swap cards endpoint (SWAP_CARDS_RATE_LIMIT)."""
    return current_app.config.get('SWAP_CARDS_RATE_LIMIT', '60 per minute')


def init_limiter(app):
    """
    Attach the shared limiter to the app.

    Storage comes from app.config['RATELIMIT_STORAGE_URI'].

    Returns the limiter instance.
    """
    limiter.init_app(app)
    storage_uri = app.config.get('RATELIMIT_STORAGE_URI', 'memory://')
    if storage_uri.startswith('memory://'):
        logger.warning("Rate limiter using in-memory storage (dev only)")
    else:
        logger.info("Rate limiter using shared storage")
    return limiter
