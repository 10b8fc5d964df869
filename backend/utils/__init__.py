"""
Utility modules for the backend.
"""
from .auth import (
    extract_bearer_token,
    generate_token,
    get_viewer_id_from_request,
    require_viewer,
    verify_token,
)
from .rate_limiter import (
    get_rate_limit_key,
    init_limiter,
    limiter,
)

__all__ = [
    'extract_bearer_token',
    'generate_token',
    'get_viewer_id_from_request',
    'require_viewer',
    'verify_token',
    'get_rate_limit_key',
    'init_limiter',
    'limiter',
]
