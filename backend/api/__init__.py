"""
API package - request boundary for the swap card service.

This package provides:
- Param contracts (pydantic models validated at the boundary)
- Response envelopes ({success, data} / {success, error})
- Global middleware (request_id, error_envelope, query_timing, request_logging)
"""

from .middleware import (
    setup_error_handlers,
    setup_query_timing_middleware,
    setup_request_id_middleware,
    setup_request_logging_middleware,
)

__all__ = [
    'setup_error_handlers',
    'setup_query_timing_middleware',
    'setup_request_id_middleware',
    'setup_request_logging_middleware',
]
