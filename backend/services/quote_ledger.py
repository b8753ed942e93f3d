# backend/services/quote_ledger.py
"""
Per-bid quote ledger.

A vendor holds at most one quote per bid, guaranteed by the
(bid_id, vendor_id) unique constraint. submit_quote refuses a second quote;
edit_quote overwrites the vendor's amount in place, or appends when the vendor
has not quoted yet. Quotes keep insertion order and no history is retained.
"""

import logging
from flask import current_app
from sqlalchemy.exc import IntegrityError
from models import db, utcnow, Bid, Quote, User
from .bid_service import get_bid
from .errors import DuplicateQuoteError, InvalidStateError, NotFoundError
from .notifications import quote_submitted
from .validation import parse_id, parse_number

logger = logging.getLogger(__name__)


def _open_bid(bid_id):
    bid = get_bid(bid_id)
    if bid.status != 'pending':
        raise InvalidStateError('Bid is no longer accepting quotes')
    return bid


def _vendor_id(vendor_id):
    ident = parse_id(vendor_id, 'vendor_id', 'Vendor ID')
    vendor = db.session.get(User, ident)
    if vendor is None or not vendor.is_vendor:
        raise NotFoundError('Vendor not found')
    return ident


def _touch_bid(bid_id):
    Bid.query.filter_by(id=bid_id).update({'updated_at': utcnow()}, synchronize_session=False)


def _notify(quote, created):
    quote_submitted.send(current_app._get_current_object(), quote=quote, created=created)


def submit_quote(bid_id, vendor_id, amount):
    """
    Add a vendor's first quote on a bid.

    Raises:
        ValidationError: amount is not a positive finite number
        NotFoundError: bid does not exist
        InvalidStateError: bid is not pending
        DuplicateQuoteError: the vendor already quoted on this bid
    """
    amount = parse_number(amount, 'amount', positive=True)
    vendor_id = _vendor_id(vendor_id)
    bid = _open_bid(bid_id)

    if Quote.query.filter_by(bid_id=bid.id, vendor_id=vendor_id).first() is not None:
        raise DuplicateQuoteError('You already have a quote on this bid; edit it instead')

    quote = Quote(bid_id=bid.id, vendor_id=vendor_id, amount=amount)
    try:
        db.session.add(quote)
        _touch_bid(bid.id)
        db.session.commit()
    except IntegrityError:
        # Another request from the same vendor inserted first
        db.session.rollback()
        raise DuplicateQuoteError('You already have a quote on this bid; edit it instead')

    _notify(quote, created=True)
    return quote


def edit_quote(bid_id, vendor_id, amount):
    """
    Upsert a vendor's quote: overwrite the amount in place, or append it.

    Returns:
        tuple: (quote, created) where created is True when a new entry was added
    """
    amount = parse_number(amount, 'amount', positive=True)
    vendor_id = _vendor_id(vendor_id)
    bid = _open_bid(bid_id)
    now = utcnow()

    created = False
    updated = Quote.query.filter_by(bid_id=bid.id, vendor_id=vendor_id).update(
        {'amount': amount, 'updated_at': now}, synchronize_session=False,
    )
    if not updated:
        try:
            with db.session.begin_nested():
                db.session.add(Quote(bid_id=bid.id, vendor_id=vendor_id, amount=amount))
            created = True
        except IntegrityError:
            # Concurrent insert for the same vendor; overwrite it instead
            Quote.query.filter_by(bid_id=bid.id, vendor_id=vendor_id).update(
                {'amount': amount, 'updated_at': now}, synchronize_session=False,
            )
    _touch_bid(bid.id)
    db.session.commit()

    quote = Quote.query.filter_by(bid_id=bid.id, vendor_id=vendor_id).one()
    _notify(quote, created=created)
    return quote, created


def list_quotes(bid_id):
    bid = get_bid(bid_id)
    return Quote.query.filter_by(bid_id=bid.id).order_by(Quote.id).all()
