import os
from datetime import timedelta
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


def normalize_database_url(database_url):
    """Hosted Postgres URLs still use the postgres:// scheme SQLAlchemy dropped"""
    if database_url and database_url.startswith('postgres://'):
        return 'postgresql://' + database_url[len('postgres://'):]
    return database_url


def env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 't', 'yes')


def env_list(name, default):
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Settings shared by every environment"""

    SECRET_KEY = os.environ.get('SECRET_KEY', 'bids-dev-secret')

    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}

    # Flask-Login sessions
    SESSION_COOKIE_NAME = 'bids_auth'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = 'None'
    PERMANENT_SESSION_LIFETIME = timedelta(hours=12)
    REMEMBER_COOKIE_DURATION = timedelta(days=14)
    REMEMBER_COOKIE_HTTPONLY = True

    CORS_ORIGINS = env_list('CORS_ORIGINS', ['http://localhost:3000', 'http://127.0.0.1:3000'])
    CORS_SUPPORTS_CREDENTIALS = True

    # Bid listing page sizes
    BIDS_PAGE_SIZE = int(os.environ.get('BIDS_PAGE_SIZE', 20))
    BIDS_MAX_PAGE_SIZE = int(os.environ.get('BIDS_MAX_PAGE_SIZE', 100))

    # Zone for preferred start dates sent without an offset
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    def __init__(self):
        # Resolved per instance so a changed environment is picked up by create_app
        self.SQLALCHEMY_DATABASE_URI = self.database_url()

    def database_url(self):
        url = os.environ.get('DATABASE_URL')
        if url:
            return normalize_database_url(url)
        return 'sqlite:///' + os.path.join(basedir, 'instance', 'bids.db')


class DevelopmentConfig(Config):
    DEBUG = True

    def __init__(self):
        super().__init__()
        # Plain http on localhost
        self.SESSION_COOKIE_SECURE = False
        self.SESSION_COOKIE_SAMESITE = 'Lax'
        self.SQLALCHEMY_ENGINE_OPTIONS = dict(Config.SQLALCHEMY_ENGINE_OPTIONS,
                                              echo=env_flag('SQLALCHEMY_ECHO'))

    def database_url(self):
        url = os.environ.get('DEV_DATABASE_URL')
        return normalize_database_url(url) if url else super().database_url()


class ProductionConfig(Config):
    DEBUG = False

    def __init__(self):
        missing = [name for name in ('SECRET_KEY', 'DATABASE_URL') if not os.environ.get(name)]
        if missing:
            raise ValueError(f"Missing required environment variable(s) for production: {', '.join(missing)}")
        super().__init__()
        self.SECRET_KEY = os.environ['SECRET_KEY']
        self.SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_pre_ping': True,
            'pool_recycle': 1800,
            'pool_size': int(os.environ.get('DB_POOL_SIZE', 10)),
            'max_overflow': int(os.environ.get('DB_MAX_OVERFLOW', 20)),
        }


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'bids-testing-secret'

    def __init__(self):
        super().__init__()
        self.SESSION_COOKIE_SECURE = False
        self.SESSION_COOKIE_SAMESITE = 'Lax'
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.CORS_ORIGINS = ['*']

    def database_url(self):
        return os.environ.get('TEST_DATABASE_URL', 'sqlite:///:memory:')


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config_name():
    """FLASK_ENV wins; CI runs fall back to the testing config"""
    name = os.environ.get('FLASK_ENV', '').strip().lower()
    if name in config and name != 'default':
        return name
    if env_flag('TESTING') or env_flag('CI'):
        return 'testing'
    return 'development'
