import logging
import time

import structlog
from flask import Flask, jsonify
from flask_cors import CORS
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from retry import retry
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
logger = structlog.get_logger()


@retry(tries=3, delay=2, backoff=2)
def check_db_connection(app):
    """Open one connection so a misconfigured database fails at startup"""
    try:
        with app.app_context():
            with db.engine.connect():
                pass
    except Exception as e:
        logger.error(f"Database not reachable yet: {str(e)}")
        raise
    logger.info("Database connection OK")


def create_app(config_name='development'):
    """
    Build the storefront API.

    Args:
        config_name (str, optional): 'development', 'production' or 'testing'.
                                     Defaults to 'development'.

    Returns:
        Flask: the configured application, with tables created and default
        roles seeded
    """
    from .config import get_config

    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    _configure_logging(app)

    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        methods=['GET', 'POST', 'PATCH', 'DELETE', 'OPTIONS'],
        allow_headers=['Content-Type', 'Authorization'],
        supports_credentials=True
    )

    _configure_database(app)
    db.init_app(app)
    check_db_connection(app)
    migrate.init_app(app, db, directory=app.config.get('MIGRATIONS_DIR', 'migrations'))

    _configure_security(app)
    _configure_login_manager(app)

    with app.app_context():
        _watch_slow_queries(app)
        _create_tables(app)

    _register_blueprints(app)
    _register_error_handlers(app)

    logger.info(f"printshop API ready ({config_name})")
    return app


def _configure_logging(app):
    """Send the package structlog logger through the app's level and format"""
    level = getattr(logging, app.config.get('LOGGING_LEVEL', 'INFO'), logging.INFO)

    processors = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]
    if app.config.get('LOG_FORMAT') == 'json':
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def _configure_database(app):
    """Pool settings for server databases; SQLite keeps the driver defaults"""
    uri = app.config['SQLALCHEMY_DATABASE_URI']
    if uri.startswith('sqlite'):
        return

    engine_options = {
        'pool_size': app.config.get('SQLALCHEMY_POOL_SIZE', 10),
        'pool_recycle': app.config.get('SQLALCHEMY_POOL_RECYCLE', 1800),
        'pool_pre_ping': True,
    }
    if 'mysql' in uri and app.config.get('MYSQL_SSL_CA'):
        engine_options['connect_args'] = {'ssl': {'ssl_ca': app.config['MYSQL_SSL_CA']}}
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options


def _watch_slow_queries(app):
    """Warn about statements slower than SLOW_QUERY_THRESHOLD seconds"""
    threshold = app.config.get('SLOW_QUERY_THRESHOLD', 0.5)

    @event.listens_for(db.engine, "before_cursor_execute")
    def start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault('query_started', []).append(time.perf_counter())

    @event.listens_for(db.engine, "after_cursor_execute")
    def stop_timer(conn, cursor, statement, parameters, context, executemany):
        elapsed = time.perf_counter() - conn.info['query_started'].pop()
        if elapsed > threshold:
            logger.warning(f"Slow query ({elapsed:.2f}s): {statement}")


def _configure_security(app):
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['Content-Security-Policy'] = app.config['CONTENT_SECURITY_POLICY']
        if app.config.get('SESSION_COOKIE_SECURE'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


def _create_tables(app):
    """Register every model, create missing tables and seed the default roles"""
    from . import models  # noqa: F401
    from .models.user import init_roles

    db.create_all()

    try:
        init_roles(app)
    except Exception as e:
        logger.warning(f"Default roles not seeded: {str(e)}")


def _register_blueprints(app):
    from .routes import users_bp, catalog_bp, models_bp, quotes_bp

    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(catalog_bp, url_prefix='/api/catalog')
    app.register_blueprint(models_bp, url_prefix='/api/models')
    app.register_blueprint(quotes_bp, url_prefix='/api/quotes')


def _register_error_handlers(app):
    """JSON bodies for the errors Flask would otherwise render as HTML"""

    @app.errorhandler(403)
    def forbidden(error):
        logger.warning(f"Forbidden: {error}")
        return jsonify({
            "error": "Forbidden",
            "message": "Your account does not have access to this resource."
        }), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def payload_too_large(error):
        logger.warning(f"Upload rejected: {error}")
        return jsonify({"error": "The uploaded file is too large."}), 413

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Unhandled error: {error}")
        db.session.rollback()
        return jsonify({"error": "An unexpected error occurred"}), 500


def _configure_login_manager(app):
    """Session login for customers and staff; failures answer with JSON 401"""
    login_manager.init_app(app)
    login_manager.session_protection = app.config.get('SESSION_PROTECTION')

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        try:
            user = db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None
        return user if user is not None and user.is_active else None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({
            "error": "Unauthorized",
            "message": "Log in to access this resource."
        }), 401
