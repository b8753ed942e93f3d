# backend/services/notifications.py
"""
Signals the bid engine emits for collaborators outside the core.

Delivery (chat, email, push) is not implemented here: a receiver connected to
`bid_assigned` is told which bid was assigned and to whom, and decides how to
reach the requester and the vendor.
"""

import logging
from blinker import Namespace

logger = logging.getLogger(__name__)

bid_signals = Namespace()

# sender: the Flask app; kwargs: bid, vendor_id
bid_assigned = bid_signals.signal('bid-assigned')
# sender: the Flask app; kwargs: quote, created
quote_submitted = bid_signals.signal('quote-submitted')


def log_assignment(sender, bid, vendor_id, **extra):
    logger.info(
        f"Bid {bid.id} assigned to vendor {vendor_id}; "
        f"notify requester {bid.requester_id} and vendor {vendor_id}"
    )


def log_quote(sender, quote, created, **extra):
    action = 'submitted' if created else 'revised'
    logger.info(f"Vendor {quote.vendor_id} {action} quote {quote.amount} on bid {quote.bid_id}")


def connect_default_receivers(app):
    """Attach the logging receivers for this app only."""
    bid_assigned.connect(log_assignment, sender=app)
    quote_submitted.connect(log_quote, sender=app)
