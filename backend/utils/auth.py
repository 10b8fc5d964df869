"""
Viewer identity from a Bearer JWT.

The swap card core trusts the viewer id it is given; this module is the
boundary that produces it. Tokens are HS256 JWTs carrying a `user_id`
claim, signed with Config.JWT_SECRET.

Usage:
    from utils.auth import require_viewer

    @bp.route("/cards")
    @require_viewer
    def cards():
        viewer_id = g.viewer_id
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from flask import g, request

from config import Config

BEARER_PREFIX = 'Bearer '


def generate_token(user_id: str, email: Optional[str] = None, expires_in_hours: Optional[int] = None) -> str:
    """Generate a JWT for user_id (used by tooling and tests)."""
    now = datetime.now(timezone.utc)
    hours = Config.JWT_EXPIRATION_HOURS if expires_in_hours is None else expires_in_hours
    payload = {
        'user_id': user_id,
        'iat': now,
        'exp': now + timedelta(hours=hours),
    }
    if email:
        payload['email'] = email
    return jwt.encode(payload, Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """Verify JWT token and return user_id, or None if invalid/expired."""
    try:
        payload = jwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    user_id = payload.get('user_id')
    if user_id is None:
        return None
    return str(user_id).strip() or None


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Token part of an `Authorization: Bearer <token>` header, or None."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None
    return auth_header[len(BEARER_PREFIX):].strip() or None


def get_viewer_id_from_request() -> Optional[str]:
    """Viewer id from the Authorization header, or None."""
    token = extract_bearer_token(request.headers.get('Authorization'))
    if not token:
        return None
    return verify_token(token)


def require_viewer(f):
    """
    Decorator to require an authenticated viewer.

    Sets g.viewer_id. Returns 401 UNAUTHORIZED in the standard envelope
    when the token is missing, malformed, or expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        viewer_id = get_viewer_id_from_request()
        if not viewer_id:
            from api.middleware.error_envelope import make_error_response
            return make_error_response(
                "UNAUTHORIZED",
                "Authentication required",
                hint="Send Authorization: Bearer <token>",
            )
        g.viewer_id = viewer_id
        return f(*args, **kwargs)
    return decorated_function
