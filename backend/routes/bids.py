# backend/routes/bids.py
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from models import db
from middleware.auth import roles_required
from services import bid_service, bid_query, quote_ledger
from services.categorizer import SERVICE_CATEGORIES, DEFAULT_CATEGORY
from services.errors import ValidationError, PermissionDeniedError
import logging

bids_bp = Blueprint('bids', __name__)
logger = logging.getLogger(__name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _ensure_owner(bid_id):
    """Only the requester who posted a bid, or an admin, may change or remove it."""
    bid = bid_service.get_bid(bid_id)
    if current_user.role != 'admin' and bid.requester_id != current_user.id:
        logger.warning(f"User {current_user.id} attempted to modify bid {bid.id} they do not own")
        raise PermissionDeniedError('You can only modify your own bids')
    return bid


def _failure(message, error):
    db.session.rollback()
    logger.error(f"{message}: {str(error)}")
    return jsonify({'error': message, 'code': 'INTERNAL_ERROR'}), 500


@bids_bp.route('', methods=['POST'])
@login_required
@roles_required('requester', 'admin')
def create_bid():
    """Create a new bid for the logged-in requester"""
    data = _json_body()
    try:
        bid = bid_service.create_bid(
            requester_id=current_user.id,
            request_details=data.get('request_details'),
            timeline=data.get('timeline'),
            preferred_start_date=data.get('preferred_start_date'),
            budget_range=data.get('budget_range'),
            filters=data.get('filters'),
        )
        return jsonify({'status': 'success', 'data': bid.to_dict()}), 201
    except SQLAlchemyError as e:
        return _failure('Failed to create bid', e)


@bids_bp.route('', methods=['GET'])
@login_required
def get_bids():
    """List bids with search, range filters, sorting and pagination"""
    vendor_categories = None
    requester_id = None
    if current_user.role == 'vendor':
        vendor_categories = current_user.categories or None
    elif current_user.role == 'requester':
        requester_id = current_user.id

    try:
        page = bid_query.list_bids(
            request.args,
            vendor_categories=vendor_categories,
            requester_id=requester_id,
            default_limit=current_app.config.get('BIDS_PAGE_SIZE', 20),
            max_limit=current_app.config.get('BIDS_MAX_PAGE_SIZE', 100),
            timezone_name=current_app.config.get('TIMEZONE', 'UTC'),
        )
        return jsonify({
            'status': 'success',
            'results': page['results'],
            'total': page['total'],
            'page': page['page'],
            'limit': page['limit'],
            'data': {'bids': page['bids']},
        })
    except SQLAlchemyError as e:
        return _failure('Failed to retrieve bids', e)


@bids_bp.route('/categories', methods=['GET'])
@login_required
def get_categories():
    """The category taxonomy used to scope bid visibility"""
    return jsonify({
        'status': 'success',
        'data': {'categories': SERVICE_CATEGORIES, 'default': DEFAULT_CATEGORY},
    })


@bids_bp.route('/vendor/<vendor_id>', methods=['GET'])
@login_required
def get_vendor_bids(vendor_id):
    """Bids assigned to a vendor"""
    try:
        bids = bid_query.list_vendor_bids(vendor_id)
        return jsonify({
            'status': 'success',
            'results': len(bids),
            'data': {'bids': [bid.to_dict() for bid in bids]},
        })
    except SQLAlchemyError as e:
        return _failure('Failed to retrieve vendor bids', e)


@bids_bp.route('/<bid_id>', methods=['GET'])
@login_required
def get_bid(bid_id):
    """Get a specific bid with its quotes"""
    try:
        bid = bid_service.get_bid(bid_id)
        return jsonify({'status': 'success', 'data': bid.to_dict()})
    except SQLAlchemyError as e:
        return _failure(f'Failed to retrieve bid {bid_id}', e)


@bids_bp.route('/<bid_id>', methods=['PATCH'])
@login_required
def update_bid(bid_id):
    """Partially update a bid's details, schedule, budget or filters"""
    data = _json_body()
    _ensure_owner(bid_id)
    try:
        bid = bid_service.update_bid(bid_id, data)
        return jsonify({'status': 'success', 'data': bid.to_dict()})
    except SQLAlchemyError as e:
        return _failure(f'Failed to update bid {bid_id}', e)


@bids_bp.route('/<bid_id>', methods=['DELETE'])
@login_required
def delete_bid(bid_id):
    """Delete a bid and its quotes, regardless of status"""
    _ensure_owner(bid_id)
    try:
        bid_service.delete_bid(bid_id)
        return '', 204
    except SQLAlchemyError as e:
        return _failure(f'Failed to delete bid {bid_id}', e)


@bids_bp.route('/<bid_id>/assign', methods=['POST'])
@login_required
def assign_bid(bid_id):
    """Accept a pending bid as the logged-in vendor"""
    try:
        bid = bid_service.assign_bid(bid_id, current_user.id, current_user.role)
        return jsonify({'status': 'success', 'data': bid.to_dict()})
    except SQLAlchemyError as e:
        return _failure(f'Failed to assign bid {bid_id}', e)


@bids_bp.route('/<bid_id>/reject', methods=['POST'])
@login_required
def reject_bid(bid_id):
    try:
        bid = bid_service.change_status(bid_id, 'reject', current_user.id, current_user.role)
        return jsonify({'status': 'success', 'data': bid.to_dict()})
    except SQLAlchemyError as e:
        return _failure(f'Failed to reject bid {bid_id}', e)


@bids_bp.route('/<bid_id>/cancel', methods=['POST'])
@login_required
def cancel_bid(bid_id):
    try:
        bid = bid_service.change_status(bid_id, 'cancel', current_user.id, current_user.role)
        return jsonify({'status': 'success', 'data': bid.to_dict()})
    except SQLAlchemyError as e:
        return _failure(f'Failed to cancel bid {bid_id}', e)


@bids_bp.route('/<bid_id>/quotes', methods=['GET'])
@login_required
def get_quotes(bid_id):
    """Quotes on a bid in the order they were first submitted"""
    try:
        quotes = quote_ledger.list_quotes(bid_id)
        return jsonify({
            'status': 'success',
            'results': len(quotes),
            'data': {'quotes': [quote.to_dict() for quote in quotes]},
        })
    except SQLAlchemyError as e:
        return _failure(f'Failed to retrieve quotes for bid {bid_id}', e)


@bids_bp.route('/<bid_id>/quotes', methods=['POST'])
@login_required
@roles_required('vendor')
def submit_quote(bid_id):
    """Submit the logged-in vendor's first quote on a bid"""
    data = _json_body()
    try:
        quote = quote_ledger.submit_quote(bid_id, current_user.id, data.get('amount'))
        return jsonify({'status': 'success', 'data': quote.to_dict()}), 201
    except SQLAlchemyError as e:
        return _failure(f'Failed to submit quote on bid {bid_id}', e)


@bids_bp.route('/<bid_id>/quotes', methods=['PUT'])
@login_required
@roles_required('vendor')
def edit_quote(bid_id):
    """Revise the logged-in vendor's quote, creating it if needed"""
    data = _json_body()
    try:
        quote, created = quote_ledger.edit_quote(bid_id, current_user.id, data.get('amount'))
        return jsonify({'status': 'success', 'data': quote.to_dict()}), 201 if created else 200
    except SQLAlchemyError as e:
        return _failure(f'Failed to edit quote on bid {bid_id}', e)
