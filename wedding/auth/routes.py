import logging

from flask import jsonify, Blueprint
from flask_jwt_extended import jwt_required, get_jwt_identity, create_access_token, current_user
from werkzeug.security import generate_password_hash, check_password_hash

from wedding import db
from wedding.auth.forms import LoginForm, RegistrationForm
from wedding.auth.utils import generate_tokens
from wedding.errors import invalid_form
from wedding.models import User

bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@bp.route('/login', methods=['POST'])
def login():
    form = LoginForm()
    if not form.validate():
        raise invalid_form(form)
    user = User.query.filter_by(email=form.email.data.lower()).first()

    if user and check_password_hash(user.password_hash, form.password.data):
        access_token, refresh_token = generate_tokens(user.user_id)
        return jsonify(access_token=access_token, refresh_token=refresh_token), 200

    return jsonify({"msg": "Bad email or password"}), 401


@bp.route('/register', methods=['POST'])
def register():
    form = RegistrationForm()
    if not form.validate():
        raise invalid_form(form)
    email = form.email.data.lower()
    existing_user = User.query.filter_by(email=email).first()

    if existing_user:
        return jsonify({"msg": "User already exists"}), 409

    new_user = User(
        email=email,
        password_hash=generate_password_hash(form.password.data, method='pbkdf2:sha256'),
        first_name=form.first_name.data or None,
        last_name=form.last_name.data or None,
        role=form.role.data or 'guest',
    )
    db.session.add(new_user)
    db.session.commit()
    logger.info("Registered user %s as %s", new_user.user_id, new_user.role)

    access_token, refresh_token = generate_tokens(new_user.user_id)
    return jsonify(access_token=access_token, refresh_token=refresh_token), 201


@bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    access_token = create_access_token(identity=get_jwt_identity())
    return jsonify(access_token=access_token), 200


@bp.route('/logout', methods=['DELETE'])
@jwt_required()
def logout():
    # Tokens are stateless; the client discards them
    return jsonify({"msg": "Successfully logged out"}), 200


@bp.route('/user', methods=['GET'])
@jwt_required()
def get_user():
    return jsonify(current_user.to_dict()), 200
