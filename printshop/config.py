import logging
import os
from datetime import timedelta


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1']


class BaseConfig:
    """
    Settings shared by every environment, read from environment variables
    """

    APP_NAME = os.environ.get('APP_NAME', 'printshop')
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-only-secret-key')

    # Sessions (Flask-Login)
    SESSION_COOKIE_SECURE = _env_flag('SESSION_COOKIE_SECURE', 'true')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get('SESSION_COOKIE_SAMESITE', 'Lax')
    SESSION_PROTECTION = os.environ.get('SESSION_PROTECTION', 'strong')
    PERMANENT_SESSION_LIFETIME = timedelta(hours=1)
    REMEMBER_COOKIE_DURATION = timedelta(days=14)

    CORS_ORIGINS = [origin.strip() for origin in os.environ.get('CORS_ORIGINS', '*').split(',')]
    CONTENT_SECURITY_POLICY = os.environ.get('CONTENT_SECURITY_POLICY', "default-src 'self'")

    # Logging: 'console' or 'json'
    LOG_TO_STDOUT = _env_flag('LOG_TO_STDOUT')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'console').lower()
    LOGGING_LEVEL = os.environ.get('LOGGING_LEVEL', 'INFO').upper()

    # Model uploads
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', str(64 * 1024 * 1024)))
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', '/tmp/uploads/models')
    ALLOWED_MODEL_EXTENSIONS = {'stl', 'obj', '3mf'}

    # Used when the Settings row has no currency
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'USD').upper()

    @classmethod
    def init_app(cls, app):
        if cls.LOG_TO_STDOUT:
            handler = logging.StreamHandler()
            handler.setLevel(cls.LOGGING_LEVEL)
            app.logger.addHandler(handler)
        app.logger.setLevel(cls.LOGGING_LEVEL)
        app.logger.debug(f"{cls.APP_NAME} loaded {cls.__name__} "
                         f"(currency {cls.DEFAULT_CURRENCY}, uploads in {cls.UPLOAD_FOLDER})")


class DatabaseConfig:
    """
    Database URI and pool settings
    """
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = _env_flag('SQLALCHEMY_ECHO')

    SQLALCHEMY_POOL_SIZE = int(os.environ.get('DATABASE_POOL_SIZE', 10))
    SQLALCHEMY_POOL_RECYCLE = int(os.environ.get('DATABASE_POOL_RECYCLE', 1800))  # seconds
    MYSQL_SSL_CA = os.environ.get('MYSQL_SSL_CA')

    SLOW_QUERY_THRESHOLD = float(os.environ.get('SLOW_QUERY_THRESHOLD', 0.5))  # seconds

    @staticmethod
    def get_database_uri(config_name):
        """
        DATABASE_URL wins; otherwise a MySQL URI is built from the
        DATABASE_* variables, falling back to a local SQLite file.
        Testing always uses in-memory SQLite.
        """
        if config_name == 'testing':
            return 'sqlite:///:memory:'

        if os.environ.get('DATABASE_URL'):
            return os.environ['DATABASE_URL']

        user = os.environ.get('DATABASE_USER')
        password = os.environ.get('DATABASE_PASSWORD')
        host = os.environ.get('DATABASE_HOST', 'localhost')
        port = os.environ.get('DATABASE_PORT', '3306')
        name = os.environ.get('DATABASE_NAME', 'printshop')

        if user and password:
            return f'mysql+pymysql://{user}:{password}@{host}:{port}/{name}'

        sqlite_path = os.path.join(os.path.abspath(os.path.dirname(__file__)), '..', 'printshop.db')
        return f'sqlite:///{sqlite_path}'


class DevelopmentConfig(BaseConfig, DatabaseConfig):
    DEBUG = True
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_DATABASE_URI = DatabaseConfig.get_database_uri('development')


class ProductionConfig(BaseConfig, DatabaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json').lower()
    SQLALCHEMY_DATABASE_URI = DatabaseConfig.get_database_uri('production')


class TestingConfig(BaseConfig, DatabaseConfig):
    TESTING = True
    SESSION_COOKIE_SECURE = False
    # no session identifier check under the test client
    SESSION_PROTECTION = None
    LOGGING_LEVEL = 'WARNING'
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_DATABASE_URI = DatabaseConfig.get_database_uri('testing')


CONFIGS = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config(config_name):
    """Config class for ``config_name``; unknown names get development"""
    return CONFIGS.get((config_name or 'development').lower(), DevelopmentConfig)
