# backend/models/__init__.py

from .base import db, utcnow

# Users first: bids and quotes carry foreign keys to 'users'
from .user import User, ROLES
from .bid import Bid, BID_STATUSES
from .quote import Quote

__all__ = [
    'db',
    'utcnow',
    'User',
    'ROLES',
    'Bid',
    'BID_STATUSES',
    'Quote',
]
