# backend/services/bid_service.py
"""
Bid lifecycle: creation, partial updates, deletion and the status machine.

    pending -> accept   (assign_bid, gated by the bid's eligibility filters)
    pending -> reject   (change_status)
    pending -> cancel   (change_status)

Every status transition is a single conditional UPDATE keyed on the bid id and
the expected current status, so two concurrent callers can never both move the
same bid out of 'pending'.
"""

import logging
from flask import current_app
from models import db, utcnow, Bid, User
from .categorizer import classify
from .date_utils import parse_start_date
from .eligibility import ensure_eligible
from .errors import (
    ValidationError, NotFoundError, InvalidStateError, PermissionDeniedError,
)
from .notifications import bid_assigned
from .validation import parse_id, parse_number, parse_bool, require_text

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {'request_details', 'timeline', 'preferred_start_date', 'budget_range', 'filters'}
PROTECTED_FIELDS = {
    'id', 'status', 'assigned_to', 'requester_id', 'category', 'quotes', 'created_at', 'updated_at',
}
FILTER_DEFAULTS = {
    'local_vendors_only': False,
    'verified_providers_only': False,
    'min_experience_years': 0,
}
TERMINAL_STATUSES = ('reject', 'cancel')


def _timezone():
    return current_app.config.get('TIMEZONE', 'UTC')


def _clean_budget(budget):
    if not isinstance(budget, dict):
        raise ValidationError('budget_range must be an object with min and max', 'budget_range')
    unknown = sorted(set(budget) - {'min', 'max'})
    if unknown:
        raise ValidationError(f"Unknown budget_range field(s): {', '.join(unknown)}",
                              [f'budget_range.{key}' for key in unknown])
    missing = [f'budget_range.{key}' for key in ('min', 'max') if budget.get(key) is None]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", missing)

    budget_min = parse_number(budget['min'], 'budget_range.min', minimum=0)
    budget_max = parse_number(budget['max'], 'budget_range.max', minimum=0)
    if budget_max < budget_min:
        raise ValidationError(
            f'Budget max ({budget_max:g}) must be >= budget min ({budget_min:g})',
            ['budget_range.min', 'budget_range.max'],
        )
    return budget_min, budget_max


def _clean_filters(filters):
    if not isinstance(filters, dict):
        raise ValidationError('filters must be an object', 'filters')
    unknown = sorted(set(filters) - set(FILTER_DEFAULTS))
    if unknown:
        raise ValidationError(f"Unknown filter(s): {', '.join(unknown)}",
                              [f'filters.{key}' for key in unknown])
    return {
        'local_vendors_only': parse_bool(filters['local_vendors_only'], 'filters.local_vendors_only'),
        'verified_providers_only': parse_bool(filters['verified_providers_only'],
                                              'filters.verified_providers_only'),
        'min_experience_years': parse_number(filters['min_experience_years'],
                                             'filters.min_experience_years', minimum=0),
    }


def _clean_start_date(value):
    if value is None or value == '':
        raise ValidationError('preferred_start_date is required', 'preferred_start_date')
    try:
        return parse_start_date(value, _timezone())
    except ValueError as e:
        raise ValidationError(str(e), 'preferred_start_date')


def _clean_timeline(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError('timeline must be text', 'timeline')
    return value.strip() or None


def create_bid(requester_id, request_details, timeline=None, preferred_start_date=None,
               budget_range=None, filters=None):
    """
    Create a pending bid, categorized once from its request details.

    Raises:
        ValidationError: a required field is missing or malformed, or the
            budget range is out of order
    """
    missing = []
    if not isinstance(request_details, str) or not request_details.strip():
        missing.append('request_details')
    if preferred_start_date is None or preferred_start_date == '':
        missing.append('preferred_start_date')
    if budget_range is None:
        missing.append('budget_range')
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", missing)

    details = request_details.strip()
    budget_min, budget_max = _clean_budget(budget_range)
    if filters is None:
        filters = {}
    if not isinstance(filters, dict):
        raise ValidationError('filters must be an object', 'filters')
    clean_filters = _clean_filters({**FILTER_DEFAULTS, **filters})

    bid = Bid(
        requester_id=requester_id,
        request_details=details,
        timeline=_clean_timeline(timeline),
        preferred_start_date=_clean_start_date(preferred_start_date),
        budget_min=budget_min,
        budget_max=budget_max,
        category=classify(details),
        status='pending',
        **clean_filters,
    )
    db.session.add(bid)
    db.session.commit()

    logger.info(f"Bid {bid.id} created by requester {requester_id} in category '{bid.category}'")
    return bid


def get_bid(bid_id):
    ident = parse_id(bid_id, 'id', 'Bid ID')
    bid = db.session.get(Bid, ident)
    if bid is None:
        raise NotFoundError('Bid not found')
    return bid


def update_bid(bid_id, patch):
    """
    Apply a partial update to a bid's mutable fields.

    A budget_range or filters patch may carry only some keys; the rest are taken
    from the stored bid before validating, so max >= min is always checked on
    the resulting pair. The category is not recomputed when the details change.
    """
    if not isinstance(patch, dict) or not patch:
        raise ValidationError('No data provided')

    protected = sorted(set(patch) & PROTECTED_FIELDS)
    if protected:
        raise ValidationError(f"Field(s) cannot be updated: {', '.join(protected)}", protected)
    unknown = sorted(set(patch) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", unknown)

    bid = get_bid(bid_id)
    changes = {}

    if 'request_details' in patch:
        changes['request_details'] = require_text(patch['request_details'], 'request_details')
    if 'timeline' in patch:
        changes['timeline'] = _clean_timeline(patch['timeline'])
    if 'preferred_start_date' in patch:
        changes['preferred_start_date'] = _clean_start_date(patch['preferred_start_date'])
    if 'budget_range' in patch:
        if not isinstance(patch['budget_range'], dict):
            raise ValidationError('budget_range must be an object with min and max', 'budget_range')
        merged = {**bid.budget_range, **patch['budget_range']}
        changes['budget_min'], changes['budget_max'] = _clean_budget(merged)
    if 'filters' in patch:
        if not isinstance(patch['filters'], dict):
            raise ValidationError('filters must be an object', 'filters')
        changes.update(_clean_filters({**bid.filters, **patch['filters']}))

    for field, value in changes.items():
        setattr(bid, field, value)
    bid.updated_at = utcnow()
    db.session.commit()

    logger.info(f"Bid {bid.id} updated: {', '.join(sorted(changes)) or 'no field changes'}")
    return bid


def delete_bid(bid_id):
    """Remove a bid and its quotes, whatever its status."""
    bid = get_bid(bid_id)
    ident = bid.id
    db.session.delete(bid)
    db.session.commit()
    logger.info(f"Bid {ident} deleted")


def assign_bid(bid_id, vendor_id, caller_role):
    """
    Accept a pending bid on behalf of a vendor.

    The vendor profile is read at call time and checked against the bid's
    filters. The transition then runs as one conditional UPDATE that also
    requires the filters to be the ones just evaluated; losing a race to
    another Assign (or to a filter edit) leaves the bid untouched and raises
    InvalidStateError.

    Raises:
        PermissionDeniedError: caller is not a vendor
        NotFoundError: bid or vendor does not exist
        InvalidStateError: bid is not pending
        EligibilityError: vendor fails a filter
    """
    if caller_role != 'vendor':
        logger.warning(f"Assign on bid {bid_id} refused for role '{caller_role}'")
        raise PermissionDeniedError('Only vendors can accept bids')

    bid = get_bid(bid_id)
    if bid.status != 'pending':
        raise InvalidStateError('Bid not available for assignment')

    vendor = db.session.get(User, parse_id(vendor_id, 'vendor_id', 'Vendor ID'))
    if vendor is None or not vendor.is_vendor:
        raise NotFoundError('Vendor not found')

    filters = bid.filters
    requester_location = bid.requester.location if bid.requester else None
    ensure_eligible(filters, vendor, requester_location)

    updated = Bid.query.filter_by(id=bid.id, status='pending', **filters).update(
        {'status': 'accept', 'assigned_to': vendor.id, 'updated_at': utcnow()},
        synchronize_session=False,
    )
    if updated != 1:
        db.session.rollback()
        logger.info(f"Vendor {vendor.id} lost the assignment race on bid {bid.id}")
        raise InvalidStateError('Bid not available for assignment')
    db.session.commit()

    logger.info(f"Bid {bid.id} accepted by vendor {vendor.id}")
    bid_assigned.send(current_app._get_current_object(), bid=bid, vendor_id=vendor.id)
    return bid


def change_status(bid_id, status, caller_id, caller_role):
    """
    Move a pending bid to 'reject' or 'cancel'.

    Only the bid's requester or an admin may do so; terminal bids cannot be
    reopened or moved again.
    """
    if status not in TERMINAL_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(TERMINAL_STATUSES)}", 'status')

    bid = get_bid(bid_id)
    if caller_role != 'admin' and bid.requester_id != caller_id:
        logger.warning(f"User {caller_id} attempted to {status} bid {bid.id} they do not own")
        raise PermissionDeniedError('Only the requester or an admin can change this bid')

    updated = Bid.query.filter_by(id=bid.id, status='pending').update(
        {'status': status, 'updated_at': utcnow()},
        synchronize_session=False,
    )
    if updated != 1:
        db.session.rollback()
        raise InvalidStateError(f'Bid cannot be moved to {status} from its current status')
    db.session.commit()

    logger.info(f"Bid {bid.id} moved to '{status}' by user {caller_id}")
    return bid
