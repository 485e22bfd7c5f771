import os
import logging
from flask import Flask, jsonify
from flask_wtf.csrf import generate_csrf
from dotenv import load_dotenv
from models import db, User
from extensions import csrf, login_manager, mail, migrate
from errors import register_error_handlers, error_response, Unauthenticated
from logging_config import init_logging
from cache import init_cache

load_dotenv()

logger = logging.getLogger(__name__)

def create_app(test_config=None):
    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev_key_change_in_prod')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('SQLALCHEMY_DATABASE_URI', 'sqlite:///db.sqlite3')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    app.config['LOG_FORMAT'] = os.environ.get('LOG_FORMAT', 'text')
    app.config['BASE_URL'] = os.environ.get('BASE_URL', 'http://localhost:5000')
    app.config['INVITATION_TTL_DAYS'] = int(os.environ.get('INVITATION_TTL_DAYS', 7))
    app.config['QUERY_CACHE_TTL'] = int(os.environ.get('QUERY_CACHE_TTL', 300))

    # Invitation email; leaving MAIL_SERVER unset disables sending
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = os.environ.get('MAIL_USE_TLS', 'true').lower() == 'true'
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER', 'StudyFlow <noreply@studyflow.app>')

    if test_config:
        app.config.update(test_config)

    # SQLAlchemy 2.x no longer accepts the postgres:// scheme
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace('postgres://', 'postgresql://', 1)

    init_logging(app)
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    mail.init_app(app)
    init_cache(app)

    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return error_response(Unauthenticated())

    register_error_handlers(app)

    from auth import auth
    from routes import register_blueprints
    app.register_blueprint(auth)
    register_blueprints(app)

    @app.route('/csrf-token')
    def csrf_token():
        return jsonify({'csrf_token': generate_csrf()})

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    from commands import register_commands
    register_commands(app)

    logger.debug("StudyFlow app created")
    return app
