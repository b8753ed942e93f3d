# backend/routes/auth.py
from flask import Blueprint, request, jsonify, session
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from models import db, utcnow, User, ROLES
from middleware.auth import admin_required
from services.categorizer import is_known_category
from services.errors import ValidationError, NotFoundError
from services.validation import parse_id, parse_number, require_text
import logging
import re

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 8


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _clean_categories(categories):
    if categories is None:
        return []
    if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
        raise ValidationError('categories must be a list of category names', 'categories')
    unknown = [c for c in categories if not is_known_category(c)]
    if unknown:
        raise ValidationError(f"Unknown categories: {', '.join(unknown)}", 'categories')
    return list(dict.fromkeys(categories))


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create a requester or vendor account"""
    data = _json_body()

    name = require_text(data.get('name'), 'name')
    email = require_text(data.get('email'), 'email').lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Please provide a valid email address', 'email')
    password = data.get('password')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters', 'password')

    role = data.get('role', 'requester')
    # Admin accounts are provisioned out of band
    if role not in ROLES or role == 'admin':
        raise ValidationError("Role must be 'requester' or 'vendor'", 'role')

    location = data.get('location')
    if location is not None and not isinstance(location, str):
        raise ValidationError('location must be text', 'location')

    experience_years = 0.0
    categories = []
    if role == 'vendor':
        experience_years = parse_number(data.get('experience_years', 0), 'experience_years', minimum=0)
        categories = _clean_categories(data.get('categories'))

    # Explicit uniqueness check before insert, backed by the unique index
    if User.query.filter_by(email=email).first() is not None:
        raise ValidationError('An account with this email already exists', 'email')

    try:
        user = User(
            name=name,
            email=email,
            role=role,
            location=location.strip() if location else None,
            experience_years=experience_years,
            categories=categories,
            is_verified=False,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error registering user {email}: {str(e)}")
        return jsonify({'error': 'Failed to create account', 'code': 'INTERNAL_ERROR'}), 500

    logger.info(f"Registered {role} account {user.id}")
    return jsonify({'status': 'success', 'data': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Start a session for an existing account"""
    data = _json_body()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        raise ValidationError('Email and password are required', ['email', 'password'])

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        logger.warning(f"Login failed for '{email}'")
        return jsonify({'error': 'Invalid email or password', 'code': 'UNAUTHORIZED'}), 401

    if not user.is_active:
        logger.warning(f"Login refused for inactive user {user.id}")
        return jsonify({'error': 'Account is disabled', 'code': 'UNAUTHORIZED'}), 401

    try:
        user.last_login = utcnow()
        db.session.commit()
    except SQLAlchemyError as e:
        # Don't fail login for this error
        db.session.rollback()
        logger.error(f"Database error updating last login: {e}")

    login_user(user, remember=True)
    logger.info(f"Login successful for user {user.id}")
    return jsonify({'status': 'success', 'data': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    user_id = current_user.id
    # Clear first: logout_user flags the remember cookie for removal in the session
    session.clear()
    logout_user()
    logger.info(f"User {user_id} logged out")
    return jsonify({'status': 'success', 'data': None})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'status': 'success', 'data': current_user.to_dict()})


@auth_bp.route('/users/<user_id>/verify', methods=['POST'])
@login_required
@admin_required
def verify_vendor(user_id):
    """Mark a vendor as verified (or unverified with {"is_verified": false})"""
    data = request.get_json(silent=True) or {}
    is_verified = data.get('is_verified', True)
    if not isinstance(is_verified, bool):
        raise ValidationError('is_verified must be true or false', 'is_verified')

    vendor = db.session.get(User, parse_id(user_id, 'user_id', 'User ID'))
    if vendor is None or not vendor.is_vendor:
        raise NotFoundError('Vendor not found')

    try:
        vendor.is_verified = is_verified
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error verifying vendor {vendor.id}: {str(e)}")
        return jsonify({'error': 'Failed to update vendor', 'code': 'INTERNAL_ERROR'}), 500

    logger.info(f"Admin {current_user.id} set vendor {vendor.id} verified={is_verified}")
    return jsonify({'status': 'success', 'data': vendor.to_dict()})
