"""
Flask Application Factory - Swap Card API

Read-only API over swaps and proposals. The only business endpoint is
GET /api/swaps/cards; everything else here is ambient (CORS, request ids,
error envelopes, query timing, rate limiting, health).
"""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from config import Config, get_database_url
from models.database import db

logger = logging.getLogger('app')

# Responses that depend on who is asking must never be cached or shared
VIEWER_SCOPED_PATHS = ('/api/swaps/',)


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger().setLevel(level)


def _is_production() -> bool:
    env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
    return env in {"prod", "production"}


def _prepare_database(app: Flask) -> None:
    """Create tables outside production and fail fast on schema drift."""
    from models import Booking, Proposal, Swap, User  # noqa: F401

    with app.app_context():
        if app.config.get("TESTING") or not _is_production():
            db.create_all()
            logger.info("db_initialized create_all=true")
        else:
            logger.info("db_ready create_all=false")

        if app.config.get("TESTING") or not app.config.get("SCHEMA_CHECK_ON_STARTUP", True):
            return

        from services.schema_check import run_schema_check
        report = run_schema_check()
        if not report['is_valid']:
            logger.error(f"SCHEMA_DRIFT {report['summary']}")
            # Don't serve a card endpoint whose join cannot run
            raise RuntimeError(f"Schema drift: {report['summary']}. Run migrations before starting the app.")
        logger.info("schema_check passed")


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get("TESTING") and not app.config.get("SQLALCHEMY_DATABASE_URI"):
        # Raises with setup instructions when DATABASE_URL is missing
        app.config["SQLALCHEMY_DATABASE_URI"] = get_database_url()

    _configure_logging(app)

    CORS(app,
         resources={r"/api/*": {"origins": "*"}},
         methods=["GET", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
         expose_headers=["X-Request-ID", "X-DB-Time-Ms", "X-Query-Count"],
         supports_credentials=False,
         send_wildcard=True)

    # === API MIDDLEWARE ===
    from api.middleware import (
        setup_error_handlers,
        setup_query_timing_middleware,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_query_timing_middleware(app)
    setup_request_logging_middleware(app)
    setup_error_handlers(app)

    @app.after_request
    def add_cache_control(response):
        if request.path.startswith(VIEWER_SCOPED_PATHS):
            response.headers['Cache-Control'] = 'private, no-store, no-cache, must-revalidate'
            response.headers['Pragma'] = 'no-cache'
            response.headers['Vary'] = 'Authorization'
        return response

    db.init_app(app)

    from utils.rate_limiter import init_limiter
    init_limiter(app)

    _prepare_database(app)

    # Register routes
    from routes.health import health_bp
    app.register_blueprint(health_bp, url_prefix='/api')

    from routes.swaps import swaps_bp
    app.register_blueprint(swaps_bp, url_prefix='/api/swaps')

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "name": "Swap Card API",
            "status": "running",
            "endpoints": ["/api/health", "/api/ready", "/api/swaps/cards"],
        })

    logger.info("app_created testing=%s", bool(app.config.get("TESTING")))
    return app


def run_app():
    """Main entry point for local development - Flask's dev server."""
    app = create_app()
    app.run(debug=app.config.get("DEBUG", False), host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))


if __name__ == "__main__":
    run_app()
