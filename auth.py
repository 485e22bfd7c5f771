import logging
from flask import Blueprint, jsonify
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import login_user, logout_user, login_required, current_user
from models import db, User, Profile
from errors import ValidationError, Unauthenticated
from utils import get_payload, parse_email, require_text, optional_text, clean_text

logger = logging.getLogger(__name__)

auth = Blueprint('auth', __name__)

def user_payload(user):
    return {'id': user.id, 'email': user.email}

@auth.route('/signup', methods=['POST'])
def signup():
    data = get_payload()
    email = parse_email(data.get('email'))
    password = require_text(data, 'password')
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    first_name = optional_text(data, 'first_name')
    last_name = optional_text(data, 'last_name')

    if User.query.filter_by(email=email).first():
        raise ValidationError("An account with that email already exists")

    user = User(email=email, password_hash=generate_password_hash(password, method='scrypt'))
    db.session.add(user)
    db.session.flush()
    db.session.add(Profile(
        user_id=user.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
    ))
    db.session.commit()
    login_user(user)
    logger.info("New account %s", user.id)
    return jsonify(user_payload(user)), 201

@auth.route('/login', methods=['POST'])
def login():
    data = get_payload()
    email = clean_text(data, 'email').lower()
    password = data.get('password')
    user = User.query.filter_by(email=email).first()
    if user and isinstance(password, str) and check_password_hash(user.password_hash, password):
        login_user(user)
        return jsonify(user_payload(user))
    raise Unauthenticated("Invalid email or password")

@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return '', 204

@auth.route('/me')
@login_required
def me():
    return jsonify(user_payload(current_user))
