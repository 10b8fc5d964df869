"""
Response envelope helpers.

Success: {"success": true, "data": {...}}   data.metadata.requestId is set
Error:   {"success": false, "error": {"code", "message", "requestId", ...}}
"""

from typing import Any, Dict, Optional
from flask import g


def success_envelope(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a success response envelope.

    Args:
        data: Response payload; if it carries a 'metadata' dict the current
              request id is added to it

    Returns:
        {"success": True, "data": data}
    """
    if isinstance(data.get('metadata'), dict) and hasattr(g, 'request_id'):
        data['metadata']['requestId'] = g.request_id

    return {"success": True, "data": data}


def error_envelope(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build an error response envelope.

    Args:
        code: Error code (e.g., "INVALID_PARAMS")
        message: Human-readable error message
        field: Optional field that caused the error
        details: Optional additional details
        hint: Optional hint for fixing the error
    """
    error = {
        "code": code,
        "message": message,
        "requestId": getattr(g, 'request_id', None),
    }

    if field:
        error['field'] = field
    if details:
        error['details'] = details
    if hint:
        error['hint'] = hint

    return {"success": False, "error": error}
