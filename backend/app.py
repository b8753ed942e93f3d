import os
import logging
from flask import Flask, request, jsonify
from flask_login import LoginManager
from flask_cors import CORS
from sqlalchemy.exc import SQLAlchemyError

from config import config, get_config_name
from models import db, User
from routes import BLUEPRINTS
from services.errors import BidError
from services.notifications import connect_default_receivers

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def create_app(config_name=None, **overrides):
    """
    Build the Bid Marketplace API.

    Args:
        config_name (str): key into config.config; taken from FLASK_ENV when omitted
        **overrides: settings applied after the selected config, used by tests
            to point at a scratch database
    """
    config_name = config_name or get_config_name()
    app = Flask(__name__)

    try:
        app.config.from_object(config[config_name]())
    except (KeyError, ValueError) as e:
        app.logger.error(f"Cannot load '{config_name}' configuration: {e}")
        raise
    app.config.update(overrides)

    configure_logging(app, config_name)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError as e:
        app.logger.warning(f"Instance folder {app.instance_path} unavailable: {e}")

    db.init_app(app)
    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         supports_credentials=app.config['CORS_SUPPORTS_CREDENTIALS'],
         methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'X-Requested-With'],
         max_age=3600)
    init_login(app)

    for blueprint, url_prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)

    register_error_handlers(app)
    connect_default_receivers(app)

    @app.route('/')
    def index():
        return jsonify({
            'name': 'Bid Marketplace API',
            'environment': config_name,
            'endpoints': [prefix for _, prefix in BLUEPRINTS],
        })

    with app.app_context():
        db.create_all()

    app.logger.info(f"Bid Marketplace API ready ({config_name}, {len(BLUEPRINTS)} blueprints)")
    return app


def init_login(app):
    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = 'strong'

    @login_manager.unauthorized_handler
    def unauthorized():
        # API clients get JSON, never a redirect to a login page
        app.logger.info(f"Anonymous {request.method} {request.path} refused")
        return error_response(401, 'Authentication required', 'UNAUTHORIZED',
                              'Log in to use this endpoint')

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            app.logger.warning(f"Session carried a malformed user id: {user_id!r}")
            return None

    return login_manager


def configure_logging(app, config_name):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if app.debug:
        level = logging.DEBUG

    if config_name == 'production':
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT + ' [%(pathname)s:%(lineno)d]'))
        logging.basicConfig(level=level, handlers=[handler])
    elif not app.testing:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    app.logger.setLevel(level)


def error_response(status, error, code, message=None):
    payload = {'error': error, 'code': code}
    if message:
        payload['message'] = message
    return jsonify(payload), status


def register_error_handlers(app):
    @app.errorhandler(BidError)
    def handle_bid_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.error(f"Database error during {request.method} {request.path}: {error}")
        return error_response(500, 'Internal Server Error', 'INTERNAL_ERROR')

    @app.errorhandler(404)
    def handle_not_found(error):
        return error_response(404, 'Not Found', 'NOT_FOUND', f'No endpoint at {request.path}')

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return error_response(405, 'Method Not Allowed', 'METHOD_NOT_ALLOWED',
                              f'{request.method} is not supported on {request.path}')

    @app.errorhandler(500)
    def handle_internal_error(error):
        db.session.rollback()
        app.logger.error(f"Unhandled error during {request.method} {request.path}: {error}")
        return error_response(500, 'Internal Server Error', 'INTERNAL_ERROR')


if __name__ == '__main__':
    application = create_app()
    application.run(host='0.0.0.0',
                    port=int(os.environ.get('PORT', 5000)),
                    debug=application.config.get('DEBUG', False))
