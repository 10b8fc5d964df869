"""
Health API Routes

Endpoints:
- GET /api/health - Liveness (process is up, no I/O)
- GET /api/ready  - Readiness (database answers within a short timeout)
"""

from flask import Blueprint, jsonify

health_bp = Blueprint('health', __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@health_bp.route("/ready", methods=["GET"])
def ready():
    from services.health import check_database_ready

    if check_database_ready(timeout_ms=500):
        return jsonify({"status": "ready"}), 200
    return jsonify({"status": "not_ready"}), 503
