"""Flask application factory."""
from flask import Flask
from werkzeug.exceptions import HTTPException
from flowcrm.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Redis cache
    from flowcrm.services.cache_service import init_cache
    init_cache(app)

    # Prometheus request metrics
    from flowcrm.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Behind Nginx in production
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    init_db(app)

    # Error Handlers
    from flowcrm.exceptions import CrmError
    from flowcrm.utils.responses import error as error_response

    @app.errorhandler(CrmError)
    def handle_crm_error(error):
        """Map application exceptions to the JSON error envelope."""
        if error.status_code >= 500:
            app.logger.error(f"{error.code} [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"{error.code} [{error.status_code}]: {error.message}")
        body = error.to_dict()
        return error_response(body['code'], body['message'], error.status_code, body.get('details'))

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        code = (error.name or 'HTTP_ERROR').upper().replace(' ', '_')
        return error_response(code, error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return error_response('INTERNAL_ERROR', 'An internal error occurred', 500)

    # Register blueprints
    from flowcrm.blueprints.main import main_bp
    from flowcrm.blueprints.presales import presales_bp
    from flowcrm.blueprints.price import price_bp
    from flowcrm.blueprints.products import products_bp
    from flowcrm.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(presales_bp)
    app.register_blueprint(price_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(metrics_bp)

    from flowcrm.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"Flow CRM started (env={app.config.get('ENV')}, cache={app.config.get('CACHE_ENABLED')})")

    return app
