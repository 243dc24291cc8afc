"""Flask application factory."""
from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from perks.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Sentry error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache (settings row)
    from perks.services.cache_service import init_cache
    init_cache(app)

    # Prometheus metrics instrumentation
    from perks.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from the reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,
            x_proto=1,
            x_host=1,
            x_port=1,
            x_prefix=0
        )

    # Initialize database
    init_db(app)

    from perks.middleware import load_employee

    @app.before_request
    def before_request_handler():
        """Load the authenticated employee for each request."""
        load_employee()

    # Error Handlers
    from perks.exceptions import PortalError

    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"PortalError [{error.status_code}] {request.path}: {error.message}")
        else:
            app.logger.info(f"PortalError [{error.status_code}] {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception on {request.path}: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from perks.blueprints.catalog import catalog_bp
    from perks.blueprints.cart import cart_bp
    from perks.blueprints.orders import orders_bp
    from perks.blueprints.metrics import metrics_bp

    app.register_blueprint(catalog_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from perks.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
