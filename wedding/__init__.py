import logging
import os

import click
from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy

from wedding.config import Config

db = SQLAlchemy()
jwt = JWTManager()
login_manager = LoginManager()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    db.init_app(app)
    jwt.init_app(app)
    login_manager.init_app(app)

    from wedding.payments.gateway import PaymentGateway
    PaymentGateway().init_app(app)

    from wedding.storage import ImageStore
    ImageStore().init_app(app)

    from wedding.errors import register_error_handlers
    register_error_handlers(app)

    from wedding.main.routes import bp as main_bp
    app.register_blueprint(main_bp)

    from wedding.auth.routes import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from wedding.events.routes import bp as events_bp
    app.register_blueprint(events_bp, url_prefix='/api')

    from wedding.catalog.routes import bp as catalog_bp
    app.register_blueprint(catalog_bp, url_prefix='/api')

    from wedding.registry.routes import bp as registry_bp
    app.register_blueprint(registry_bp, url_prefix='/api')

    from wedding.vendor.routes import bp as vendor_bp
    app.register_blueprint(vendor_bp, url_prefix='/api')

    from wedding.payments.routes import bp as payments_bp
    app.register_blueprint(payments_bp, url_prefix='/api')

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
        db.create_all()
        click.echo('Initialized the database.')

    return app


@jwt.user_lookup_loader
def load_jwt_user(_jwt_header, jwt_data):
    from wedding.models import User
    return db.session.get(User, int(jwt_data['sub']))


@jwt.unauthorized_loader
def missing_token(reason):
    return jsonify({"msg": reason}), 401


@jwt.invalid_token_loader
def invalid_token(reason):
    return jsonify({"msg": reason}), 401


@jwt.expired_token_loader
def expired_token(_jwt_header, _jwt_data):
    return jsonify({"msg": "Token has expired"}), 401


@jwt.user_lookup_error_loader
def unknown_user(_jwt_header, _jwt_data):
    return jsonify({"msg": "User not found"}), 401


@login_manager.user_loader
def load_user(user_id):
    from wedding.models import User
    return db.session.get(User, int(user_id))
