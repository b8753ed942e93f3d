# backend/services/eligibility.py
import logging
from .errors import EligibilityError

logger = logging.getLogger(__name__)

NOT_LOCAL = 'not local'
NOT_VERIFIED = 'not verified'
INSUFFICIENT_EXPERIENCE = 'insufficient experience'


def _same_location(vendor_location, requester_location):
    # An unknown location on either side never counts as local
    if not vendor_location or not requester_location:
        return False
    return vendor_location == requester_location


def check_eligibility(filters, vendor, requester_location):
    """
    Evaluate a bid's filters against a vendor profile.

    The checks run in a fixed order and stop at the first failure, so a caller
    only ever sees one reason.

    Args:
        filters (dict): local_vendors_only, verified_providers_only, min_experience_years
        vendor: profile exposing location, is_verified and experience_years
        requester_location (str): location of the bid's requester

    Returns:
        str or None: the failing reason, or None when the vendor is admitted
    """
    if filters.get('local_vendors_only') and not _same_location(vendor.location, requester_location):
        return NOT_LOCAL
    if filters.get('verified_providers_only') and not vendor.is_verified:
        return NOT_VERIFIED
    if (vendor.experience_years or 0) < (filters.get('min_experience_years') or 0):
        return INSUFFICIENT_EXPERIENCE
    return None


def ensure_eligible(filters, vendor, requester_location):
    """Raise EligibilityError with the first failing reason."""
    reason = check_eligibility(filters, vendor, requester_location)
    if reason:
        logger.warning(f"Vendor {getattr(vendor, 'id', None)} rejected by bid filters: {reason}")
        raise EligibilityError(reason)
