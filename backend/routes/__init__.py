"""
Routes package for the Bid Marketplace API.
This package contains the Flask blueprints for the different API endpoints.
"""

from .auth import auth_bp
from .bids import bids_bp
from .health import health_bp

# (blueprint, url_prefix) in registration order
BLUEPRINTS = [
    (auth_bp, '/api/auth'),
    (bids_bp, '/api/bids'),
    (health_bp, '/api'),
]

__all__ = [
    'auth_bp',
    'bids_bp',
    'health_bp',
    'BLUEPRINTS',
]
