# backend/services/validation.py
import re
import math
from .errors import ValidationError

# Upper bound of a signed 64-bit INTEGER column
MAX_ID = 2 ** 63 - 1
_DIGITS = re.compile(r'[0-9]{1,19}')


def parse_id(value, field='id', label='ID'):
    """Parse a positive integer identifier from a path segment or payload."""
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {label}', field)
    if isinstance(value, int):
        ident = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        ident = int(value.strip())
    else:
        raise ValidationError(f'Invalid {label}', field)
    if ident <= 0 or ident > MAX_ID:
        raise ValidationError(f'Invalid {label}', field)
    return ident


def parse_number(value, field, minimum=None, positive=False):
    """
    Validate a JSON number.

    Booleans are rejected even though they are ints in Python, as are NaN and
    infinities.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{field} must be a number', field)
    if not math.isfinite(value):
        raise ValidationError(f'{field} must be a finite number', field)
    if positive and value <= 0:
        raise ValidationError(f'{field} must be greater than 0', field)
    if minimum is not None and value < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field)
    return float(value)


def parse_bool(value, field):
    if not isinstance(value, bool):
        raise ValidationError(f'{field} must be true or false', field)
    return value


def require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required', field)
    return value.strip()
