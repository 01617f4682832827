"""
Member loyalty portal
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    cors_origins = [o.strip() for o in os.getenv('CORS_ORIGINS', '').split(',') if o.strip()]
    if config_name != 'production':
        cors_origins += ['http://localhost:5173', 'http://127.0.0.1:5173']
    CORS(app, origins=cors_origins, supports_credentials=True,
         allow_headers=['Content-Type', 'Authorization', 'X-Profile-Id', 'X-Admin-Token', 'X-Admin-User'])

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'loyalty'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.members import members_bp
    from .api.rewards import rewards_bp
    from .api.content import content_bp
    from .api.missions import missions_bp
    from .api.checkin import checkin_bp
    from .api.receipts import receipts_bp
    from .api.admin import admin_bp

    # Member-facing routes
    app.register_blueprint(members_bp, url_prefix='/api')
    app.register_blueprint(rewards_bp, url_prefix='/api/rewards')
    app.register_blueprint(content_bp, url_prefix='/api/content')
    app.register_blueprint(missions_bp, url_prefix='/api/missions')
    app.register_blueprint(checkin_bp, url_prefix='/api/checkin')
    app.register_blueprint(receipts_bp, url_prefix='/api/receipts')

    # Admin API routes
    app.register_blueprint(admin_bp, url_prefix='/api/admin')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import ErrorCode, error_response, loyalty_error_response
    from .utils.exceptions import LoyaltyError

    @app.errorhandler(LoyaltyError)
    def handle_loyalty_error(error):
        return loyalty_error_response(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500)
