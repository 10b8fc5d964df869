"""
Request ID middleware - X-Request-ID correlation.

An incoming X-Request-ID is reused when it looks sane (printable, at most
MAX_REQUEST_ID_LENGTH chars); otherwise a UUID4 is generated. The id is
stored on g.request_id, echoed in the response header, and copied into
every envelope (metadata.requestId / error.requestId).
"""

import uuid
from flask import Flask, g, request

MAX_REQUEST_ID_LENGTH = 128


def _accept_request_id(raw) -> bool:
    return bool(raw) and len(raw) <= MAX_REQUEST_ID_LENGTH and raw.isprintable()


def setup_request_id_middleware(app: Flask) -> None:
    """Register request id hooks on the app."""

    @app.before_request
    def inject_request_id():
        raw = request.headers.get('X-Request-ID')
        g.request_id = raw.strip() if _accept_request_id(raw) else str(uuid.uuid4())

    @app.after_request
    def add_request_id_header(response):
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response

