# backend/middleware/auth.py

from functools import wraps
from flask import jsonify
from flask_login import current_user
import logging
from services.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


def roles_required(*roles):
    """
    Decorator to restrict a route to users holding one of the given roles.
    This must be placed AFTER the @login_required decorator.

    Usage:
        @bids_bp.route('/<bid_id>/quotes', methods=['POST'])
        @login_required
        @roles_required('vendor')
        def submit_quote(bid_id):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                logger.warning("Unauthenticated access attempt to a role-restricted route.")
                return jsonify({'error': 'Authentication required', 'code': 'UNAUTHORIZED'}), 401

            role = getattr(current_user, 'role', None)
            if role not in roles:
                logger.warning(f"User {current_user.id} (role: {role}) attempted a route restricted to {roles}")
                raise PermissionDeniedError(f"Only {' or '.join(roles)} accounts can do this")

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """Shorthand for @roles_required('admin')."""
    return roles_required('admin')(f)
