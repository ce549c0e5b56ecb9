"""
Acuity -> PassKit Membership Bridge
Flask application factory
"""
import os
import logging
from flask import Flask

from .config import BridgeSettings, get_config
from .extensions import durable_store
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, settings: BridgeSettings = None, store=None,
               acuity=None, passkit=None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        settings: Integration settings (read from the environment if omitted)
        store: Durable store to use instead of the Redis-backed extension
        acuity: Acuity client override
        passkit: PassKit client override

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    if settings is None:
        settings = BridgeSettings.from_env()

    # Setup logging before anything else
    setup_logging(settings.log_level)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    if store is None:
        durable_store.init_app(app, settings.redis_url)
        store = durable_store

    from .services.registry import build_services, EXTENSION_KEY
    app.extensions[EXTENSION_KEY] = build_services(settings, store, acuity=acuity, passkit=passkit)

    if not settings.acuity_configured:
        logger.warning('[Bridge] Acuity credentials not configured')
    if not settings.passkit_configured or not settings.passkit_program_id:
        logger.warning('[Bridge] PassKit credentials or program id not configured')

    register_blueprints(app)

    from .commands import init_app as init_commands
    init_commands(app)

    register_error_handlers(app)

    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'acuity-passkit-bridge'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register all blueprints."""
    from .webhooks import acuity_webhook_bp
    from .api.orders import orders_bp
    from .api.status import status_bp

    # Webhooks (routes carry their own paths: /webhook/acuity and /api/webhook)
    app.register_blueprint(acuity_webhook_bp)

    # Operator and dashboard API
    app.register_blueprint(orders_bp, url_prefix='/api')
    app.register_blueprint(status_bp, url_prefix='/api')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import error_response, ErrorCode, method_not_allowed, internal_error

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def not_allowed(error):
        return method_not_allowed()

    @app.errorhandler(500)
    def server_error(error):
        return internal_error('Internal server error')
