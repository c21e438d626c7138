import re

from flask import Blueprint, request, jsonify, current_app
from werkzeug.security import generate_password_hash, check_password_hash
from tatami.app import db
from tatami.models import User
from tatami.auth_utils import generate_token, login_required

auth_bp = Blueprint('auth', __name__)

_NAME_MAX_LEN = 80


def _password_complexity_error(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must include at least one letter and one number'
    return None


def _clean_name(raw_value):
    return str(raw_value or '').strip()[:_NAME_MAX_LEN]


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not data or not data.get('username') or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Username, email, and password are required'}), 400

    username = str(data['username']).strip()
    email = str(data['email']).strip().lower()
    password_error = _password_complexity_error(data.get('password'))
    if password_error:
        return jsonify({'error': password_error}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already taken'}), 409
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 409

    user = User(
        username=username,
        email=email,
        password_hash=generate_password_hash(data['password']),
        first_name=_clean_name(data.get('first_name')),
        last_name=_clean_name(data.get('last_name')),
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info('Registered user %s', user.id)
    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Email and password are required'}), 400

    email = str(data['email']).strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, data['password']):
        current_app.logger.info('Failed login for %s', email)
        return jsonify({'error': 'Invalid email or password'}), 401

    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    user = request.current_user
    profile = user.to_dict()
    profile['tournaments_joined'] = len(user.tournament_entries)
    profile['tournaments_created'] = len(user.created_tournaments)
    return jsonify({'user': profile})


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    user = request.current_user
    for field in ('first_name', 'last_name'):
        if field in data:
            setattr(user, field, _clean_name(data.get(field)))

    # Names are part of every snapshot the user appears in.
    for entry in user.tournament_entries:
        entry.tournament.touch()
    db.session.commit()
    return jsonify({'user': user.to_dict()})
