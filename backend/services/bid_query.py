# backend/services/bid_query.py
"""
Filtered, sorted and paginated bid listings.

Query parameters understood by list_bids:

    search=<text>                       case-insensitive match on request_details
    min_start=<date> / max_start=<date> inclusive bounds on preferred_start_date
    <field>=<value>                     equality (repeat the key to match any value)
    <field>[gte|gt|lte|lt]=<number>     range on numeric fields; budget_range[min][gte]
                                        and budget_range.min[gte] are equivalent
    sort=<field>,-<field>               '-' sorts descending
    fields=<field>,<field>              limit the keys of each returned bid
    page=<n>&limit=<n>                  1-based page number and page size
"""

import re
import math
import operator
import logging
from models import Bid, BID_STATUSES
from .date_utils import parse_start_date
from .errors import ValidationError
from .validation import parse_id

logger = logging.getLogger(__name__)

DEFAULT_SORT = '-preferred_start_date'
RESERVED_PARAMS = {'page', 'limit', 'sort', 'fields', 'search', 'min_start', 'max_start'}

RANGE_OPERATORS = {
    'gte': operator.ge,
    'gt': operator.gt,
    'lte': operator.le,
    'lt': operator.lt,
}

NUMERIC_FIELDS = {
    'budget_range.min': Bid.budget_min,
    'budget_range.max': Bid.budget_max,
    'filters.min_experience_years': Bid.min_experience_years,
}
BOOLEAN_FIELDS = {
    'filters.local_vendors_only': Bid.local_vendors_only,
    'filters.verified_providers_only': Bid.verified_providers_only,
}
ID_FIELDS = {
    'requester_id': Bid.requester_id,
    'assigned_to': Bid.assigned_to,
}
TEXT_FIELDS = {
    'status': Bid.status,
    'category': Bid.category,
}

SORT_FIELDS = {
    'id': Bid.id,
    'preferred_start_date': Bid.preferred_start_date,
    'created_at': Bid.created_at,
    'updated_at': Bid.updated_at,
    'status': Bid.status,
    'category': Bid.category,
    **NUMERIC_FIELDS,
}

SELECTABLE_FIELDS = {
    'requester_id', 'request_details', 'timeline', 'preferred_start_date', 'budget_range',
    'filters', 'category', 'status', 'assigned_to', 'created_at', 'updated_at', 'quotes',
}

_KEY_PARTS = re.compile(r'[^\[\]]+')
_TRUE = {'true', '1', 'yes'}
_FALSE = {'false', '0', 'no'}


def _split_key(key):
    """'budget_range[min][gte]' -> ('budget_range.min', 'gte')"""
    parts = _KEY_PARTS.findall(key)
    if not parts:
        return key, None
    op = None
    if len(parts) > 1 and parts[-1] in RANGE_OPERATORS:
        op = parts.pop()
    return '.'.join(parts), op


def _iter_params(params):
    if hasattr(params, 'getlist'):
        return params.items(multi=True)
    return params.items()


def _positive_int(value, default):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _parse_float(field, value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number for {field}: '{value}'", field)
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number", field)
    return number


def _parse_value(field, value):
    if field in NUMERIC_FIELDS:
        return _parse_float(field, value)
    if field in BOOLEAN_FIELDS:
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValidationError(f"Invalid boolean for {field}: '{value}'", field)
    if field in ID_FIELDS:
        return parse_id(value, field, field)
    if field == 'status' and value not in BID_STATUSES:
        raise ValidationError(f"Invalid status '{value}'", field)
    return value


def _column_for(field):
    for group in (NUMERIC_FIELDS, BOOLEAN_FIELDS, ID_FIELDS, TEXT_FIELDS):
        if field in group:
            return group[field]
    raise ValidationError(f"Unknown filter field '{field}'", field)


def _escape_like(term):
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def _date_bound(params, name, timezone_name):
    value = params.get(name)
    if not value:
        return None
    try:
        return parse_start_date(value, timezone_name)
    except ValueError as e:
        raise ValidationError(str(e), name)


def build_filters(params, timezone_name='UTC'):
    """
    Translate query parameters into a list of SQL conditions.

    min_start and max_start are read in timezone_name, the zone bids are
    created in, so a date window matches the dates requesters typed.
    """
    conditions = []
    equals = {}

    for key, value in _iter_params(params):
        if key in RESERVED_PARAMS:
            continue
        field, op = _split_key(key)
        column = _column_for(field)
        if op is None:
            equals.setdefault(field, []).append(_parse_value(field, value))
        elif field in NUMERIC_FIELDS:
            conditions.append(RANGE_OPERATORS[op](column, _parse_float(field, value)))
        else:
            raise ValidationError(f"Range operator '{op}' is not supported on {field}", field)

    for field, values in equals.items():
        column = _column_for(field)
        if len(values) == 1:
            conditions.append(column == values[0])
        else:
            conditions.append(column.in_(values))

    search = params.get('search')
    if search:
        conditions.append(Bid.request_details.ilike(f'%{_escape_like(search)}%', escape='\\'))

    min_start = _date_bound(params, 'min_start', timezone_name)
    if min_start is not None:
        conditions.append(Bid.preferred_start_date >= min_start)
    max_start = _date_bound(params, 'max_start', timezone_name)
    if max_start is not None:
        conditions.append(Bid.preferred_start_date <= max_start)

    return conditions


def build_order(sort):
    """Parse 'a,-b' into ORDER BY clauses, with id as the final tiebreaker."""
    clauses = []
    seen = set()
    for item in (sort or DEFAULT_SORT).split(','):
        item = item.strip()
        if not item:
            continue
        descending = item.startswith('-')
        field = item.lstrip('-+')
        if field not in SORT_FIELDS:
            raise ValidationError(f"Cannot sort by '{field}'", 'sort')
        if field in seen:
            continue
        seen.add(field)
        column = SORT_FIELDS[field]
        clauses.append(column.desc() if descending else column.asc())
    if 'id' not in seen:
        clauses.append(Bid.id.asc())
    return clauses


def parse_fields(fields):
    if not fields:
        return None
    selected = [name.strip() for name in fields.split(',') if name.strip()]
    unknown = sorted(set(selected) - SELECTABLE_FIELDS - {'id'})
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", 'fields')
    return set(selected) | {'id'}


def serialize(bid, selected=None):
    data = bid.to_dict(include_quotes=selected is None or 'quotes' in selected)
    if selected is None:
        return data
    return {key: value for key, value in data.items() if key in selected}


def list_bids(params, vendor_categories=None, requester_id=None, default_limit=20, max_limit=100,
              timezone_name='UTC'):
    """
    Build one page of bids visible to the caller.

    Args:
        params: request query parameters (dict or werkzeug MultiDict)
        vendor_categories (list): the calling vendor's categories; when
            non-empty only bids in those categories are visible
        requester_id (int): restrict to this requester's own bids
        default_limit (int): page size when none is given
        max_limit (int): upper bound on the page size
        timezone_name (str): zone for min_start and max_start values without an offset

    Returns:
        dict: results (page length), total (filtered count), page, limit, bids
    """
    query = Bid.query
    if vendor_categories:
        query = query.filter(Bid.category.in_(list(vendor_categories)))
    if requester_id is not None:
        query = query.filter(Bid.requester_id == requester_id)

    conditions = build_filters(params, timezone_name)
    if conditions:
        query = query.filter(*conditions)

    order = build_order(params.get('sort'))
    selected = parse_fields(params.get('fields'))

    page = _positive_int(params.get('page'), 1)
    limit = min(_positive_int(params.get('limit'), default_limit), max_limit)
    skip = (page - 1) * limit

    total = query.order_by(None).count()
    bids = query.order_by(*order).offset(skip).limit(limit).all()

    logger.debug(f"Bid listing page={page} limit={limit} total={total} conditions={len(conditions)}")
    return {
        'results': len(bids),
        'total': total,
        'page': page,
        'limit': limit,
        'bids': [serialize(bid, selected) for bid in bids],
    }


def list_vendor_bids(vendor_id):
    """Bids assigned to a vendor, most recently updated first."""
    ident = parse_id(vendor_id, 'vendor_id', 'Vendor ID')
    return (Bid.query
            .filter(Bid.assigned_to == ident)
            .order_by(Bid.updated_at.desc(), Bid.id.desc())
            .all())
