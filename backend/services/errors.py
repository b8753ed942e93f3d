# backend/services/errors.py
"""
Error kinds raised by the bid engine.

Every error carries the HTTP status and machine-readable code the API reports,
so routes can let them propagate to the app-level handler unchanged. None of
them are retried by the engine.
"""


class BidError(Exception):
    """Base class for domain errors surfaced verbatim to the caller."""

    status_code = 400
    code = 'BID_ERROR'

    def __init__(self, message, fields=None):
        super().__init__(message)
        self.message = message
        if isinstance(fields, str):
            fields = [fields]
        self.fields = list(fields) if fields else []

    def to_dict(self):
        payload = {
            'error': self.message,
            'code': self.code,
        }
        if self.fields:
            payload['fields'] = self.fields
        return payload


class ValidationError(BidError):
    """Malformed or missing input; names the offending field(s)."""

    status_code = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(BidError):
    status_code = 404
    code = 'NOT_FOUND'


class InvalidStateError(BidError):
    """Operation is not legal in the bid's current status."""

    status_code = 409
    code = 'INVALID_STATE'


class EligibilityError(BidError):
    """Vendor fails one of the bid's filters; carries the first failing reason."""

    status_code = 403
    code = 'NOT_ELIGIBLE'

    def __init__(self, reason):
        super().__init__(f'Vendor is not eligible for this bid: {reason}')
        self.reason = reason

    def to_dict(self):
        payload = super().to_dict()
        payload['reason'] = self.reason
        return payload


class DuplicateQuoteError(BidError):
    """Vendor already has a live quote on the bid; use the edit path instead."""

    status_code = 409
    code = 'DUPLICATE_QUOTE'


class PermissionDeniedError(BidError):
    status_code = 403
    code = 'FORBIDDEN'
