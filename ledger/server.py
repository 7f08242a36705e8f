import logging
import os
import uuid

import click
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from flask_security import SQLAlchemyUserDatastore, hash_password

from ledger.config import DevConfig
from ledger.extensions import db, limiter, security
from ledger.models.customer import Customer  # noqa: F401
from ledger.models.role import Role
from ledger.models.transaction import Transaction  # noqa: F401
from ledger.models.user import User
from ledger.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

BLUEPRINTS = [
    ('ledger.api.customer', 'customer_bp', '/api'),
    ('ledger.api.transaction', 'transaction_bp', '/api'),
]


def configure_logging(app):
    handlers = [logging.StreamHandler()]
    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, 'app.log')))
    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        handlers=handlers,
    )


def _ensure_sqlite_directory(uri):
    if uri.startswith('sqlite:///') and ':memory:' not in uri:
        db_dir = os.path.dirname(uri[len('sqlite:///'):])
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
            logger.info(f"Created database directory: {db_dir}")


def _unauthenticated(mechanisms=None, headers=None):
    logger.warning(f"401 Unauthorized for {request.method} {request.url}")
    return jsonify({'message': 'Authentication required'}), 401


def register_error_handlers(app):
    @app.errorhandler(403)
    def forbidden(error):
        logger.error(f"403 Forbidden for {request.method} {request.url}")
        return jsonify({'message': 'Access forbidden'}), 403

    @app.errorhandler(404)
    def not_found(error):
        logger.error(f"404 error for path: {request.path}")
        return jsonify({'message': 'API endpoint not found', 'path': request.path}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'message': 'Method not allowed'}), 405

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(e):
        logger.warning(f"Rate limit exceeded for {request.method} {request.url}")
        return jsonify({'message': 'Rate limit exceeded. Please try again later.'}), 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled exception for {request.method} {request.url}: {error}", exc_info=True)
        return jsonify({'message': 'Internal server error'}), 500


def register_request_logging(app):
    @app.before_request
    def log_request_info():
        logger.debug(f"Request: {request.method} {request.url}")

    @app.after_request
    def log_response_info(response):
        logger.debug(f"Response: {response.status_code}")
        if response.status_code >= 400:
            logger.error(f"Error response: {response.status_code} for {request.method} {request.url}")
        return response


def register_commands(app):
    @app.cli.command('backfill-transaction-types')
    def backfill_transaction_types():
        """Assign a type to transactions stored without one."""
        result = TransactionService().backfill_type()
        click.echo(f"Found {result['totalFound']} transactions without type field")
        click.echo(f"Updated {result['updatedCount']} transactions")

    @app.cli.command('create-user')
    @click.argument('email')
    @click.password_option()
    def create_user(email, password):
        """Create an API user."""
        datastore = app.extensions['security'].datastore
        if datastore.find_user(email=email):
            raise click.ClickException(f"User {email} already exists")
        datastore.create_user(
            email=email,
            password=hash_password(password),
            fs_uniquifier=uuid.uuid4().hex,
        )
        db.session.commit()
        click.echo(f"Created user {email}")


def create_app(config_class=DevConfig):
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)
    logger.info(f"App working directory: {os.getcwd()}")

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    _ensure_sqlite_directory(database_uri)
    logger.info("Database connected: %s", "sqlite" if "sqlite" in database_uri else "non-sqlite")

    db.init_app(app)
    limiter.init_app(app)

    user_datastore = SQLAlchemyUserDatastore(db, User, Role)
    security.init_app(app, user_datastore)
    security.unauthn_handler(_unauthenticated)

    CORS(app, supports_credentials=True, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    for module_name, blueprint_name, prefix in BLUEPRINTS:
        module = __import__(module_name, fromlist=[blueprint_name])
        app.register_blueprint(getattr(module, blueprint_name), url_prefix=prefix)
        logger.info(f"Registered blueprint: {blueprint_name} with prefix: {prefix}")

    @app.route('/api/health-check')
    def health_check():
        healthy = db.health_check()
        status_code = 200 if healthy else 503
        return jsonify({'status': 'ok' if healthy else 'degraded', 'database': healthy}), status_code

    register_error_handlers(app)
    register_request_logging(app)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host=app.config.get('FLASK_HOST', '0.0.0.0'), port=app.config.get('FLASK_PORT', 5000))
