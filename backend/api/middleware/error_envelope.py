"""
Error envelope middleware - Standardize all error responses.

Every failure leaves the API in one shape, and never with a partial
swapCards array:
{
    "success": false,
    "error": {
        "code": "SWAP_CARDS_STORE_UNAVAILABLE",
        "message": "Swap card store query failed",
        "requestId": "uuid"
    }
}
"""

import logging
from flask import Flask, jsonify, g
from werkzeug.exceptions import HTTPException

from services.swap_cards.errors import SwapCardError
from api.contracts.params import ValidationError


logger = logging.getLogger('api.middleware.error')


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "TOO_MANY_REQUESTS": 429,
    "AGGREGATION_CANCELLED": 499,

    # Contract errors
    "INVALID_PARAMS": 400,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
    "SELF_EXCLUSION_INVARIANT_VIOLATION": 500,
    "SERVICE_UNAVAILABLE": 503,
    "SWAP_CARDS_STORE_UNAVAILABLE": 503,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
    details: dict = None,
    hint: str = None,
):
    """
    Create a standardized error response.

    Args:
        code: Error code (e.g., "INVALID_PARAMS")
        message: Human-readable error message
        status_code: HTTP status code (defaults based on error code)
        field: Optional field name that caused the error
        details: Optional additional details dict
        hint: Optional hint for fixing the error

    Returns:
        Tuple of (response, status_code)
    """
    from api.serializers.response import error_envelope

    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    response = jsonify(error_envelope(code, message, field=field, details=details, hint=hint))
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - ValidationError from the param boundary (400 INVALID_PARAMS)
    - SwapCardError subclasses (their own code and status)
    - HTTP exceptions (401, 404, 429, ...)
    - Unhandled Python exceptions (500 INTERNAL_ERROR)
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        return make_error_response(
            "INVALID_PARAMS",
            str(error),
            field=error.field,
        )

    @app.errorhandler(SwapCardError)
    def handle_swap_card_error(error):
        request_id = getattr(g, 'request_id', None)
        log = logger.error if error.status_code >= 500 else logger.info
        log(
            f"swap_card_error code={error.code} status={error.status_code} "
            f"request_id={request_id} message={error.message}"
        )
        return make_error_response(
            error.code,
            error.message,
            status_code=error.status_code,
            details=error.details or None,
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Too Many Requests" -> "TOO_MANY_REQUESTS"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return make_error_response(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            status_code=500,
        )
