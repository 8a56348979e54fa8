# app/__init__.py

import os
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, render_template
from sqlalchemy.exc import SQLAlchemyError, OperationalError, DisconnectionError

from config import get_config
from app.extensions import db, login_manager, socketio, migrate, limiter, csrf, engine_options_for
from app.models import User


def configure_logging(app):
    """Attach a stdout or rotating file handler to ``app.logger``."""
    if app.testing:
        return

    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if app.config.get('LOG_TO_STDOUT'):
        handler = logging.StreamHandler()
    else:
        log_dir = app.config['LOG_DIR']
        if not os.path.exists(log_dir):
            os.mkdir(log_dir)
        handler = RotatingFileHandler(os.path.join(log_dir, 'textile_inventory.log'),
                                      maxBytes=10240000,
                                      backupCount=10)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s '
        '[in %(pathname)s:%(lineno)d]'
    ))
    handler.setLevel(level)
    app.logger.addHandler(handler)
    app.logger.setLevel(level)
    app.logger.info('Textile Inventory Manager startup')


def create_app(config_class=None, overrides=None):
    app = Flask(__name__)
    app.config.from_object(config_class or get_config())
    if overrides:
        app.config.update(overrides)
    app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', engine_options_for(app))

    configure_logging(app)

    # Initialize Flask extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db, render_as_batch=True)
    socketio.init_app(
        app,
        message_queue=app.config.get('SOCKETIO_MESSAGE_QUEUE'),
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE')
    )
    limiter.init_app(app)
    csrf.init_app(app)

    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.login_message_category = 'info'
    login_manager.session_protection = 'strong'

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    from app.main import bp as main_bp
    from app.auth import bp as auth_bp
    from app.transfers import bp as transfers_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(transfers_bp, url_prefix='/transfers')

    # Socket.IO handlers register themselves on import
    from app import socket_events  # noqa: F401

    # Register CLI commands
    from app.cli import init_cli
    init_cli(app)

    with app.app_context():
        db.create_all()

        # Ensure the super admin exists when credentials are configured
        username = app.config.get('SUPER_ADMIN_USERNAME')
        password = app.config.get('SUPER_ADMIN_PASSWORD')
        if password and not User.query.filter_by(username=username).first():
            admin = User(
                username=username,
                email=app.config['SUPER_ADMIN_EMAIL'],
                role='super_admin'
            )
            admin.set_password(password)
            db.session.add(admin)
            db.session.commit()
            app.logger.info(f'Created super admin {username}')

    @app.errorhandler(403)
    def forbidden(error):
        return render_template('errors/403.html', title='Access denied'), 403

    @app.errorhandler(404)
    def not_found(error):
        return render_template('errors/404.html', title='Not found'), 404

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        app.logger.error(f'Database error occurred: {str(error)}')
        db.session.rollback()
        if isinstance(error, OperationalError):
            return jsonify({'error': 'Database connection error. Please try again later.'}), 503
        elif isinstance(error, DisconnectionError):
            db.session.remove()  # Clean up the session
            return jsonify({'error': 'Lost connection to database. Please refresh the page.'}), 500
        return jsonify({'error': 'An unexpected database error occurred.'}), 500

    @app.teardown_appcontext
    def cleanup(resp_or_exc):
        """Ensure proper cleanup of database sessions"""
        db.session.remove()

    return app
