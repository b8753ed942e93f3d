import pytest

from services.errors import EligibilityError, NotFoundError, ValidationError
from services.validation import parse_bool, parse_id, parse_number, require_text


def test_parse_id():
    assert parse_id(7) == 7
    assert parse_id(' 12 ') == 12
    assert parse_id(str(2 ** 63 - 1)) == 2 ** 63 - 1
    for bad in (0, -1, '1.5', 'abc', True, None, 3.0, '²', '١٢',
                2 ** 63, '99999999999999999999', '9' * 5000):
        with pytest.raises(ValidationError):
            parse_id(bad)


def test_parse_id_reports_label_and_field():
    with pytest.raises(ValidationError) as exc_info:
        parse_id('x', 'vendor_id', 'Vendor ID')
    assert exc_info.value.to_dict() == {
        'error': 'Invalid Vendor ID',
        'code': 'VALIDATION_ERROR',
        'fields': ['vendor_id'],
    }


def test_parse_number():
    assert parse_number(3, 'n') == 3.0
    assert parse_number(0, 'n', minimum=0) == 0.0
    with pytest.raises(ValidationError):
        parse_number(0, 'n', positive=True)
    with pytest.raises(ValidationError):
        parse_number(-0.5, 'n', minimum=0)
    with pytest.raises(ValidationError):
        parse_number(False, 'n')
    with pytest.raises(ValidationError):
        parse_number(float('-inf'), 'n')


def test_parse_bool_and_text():
    assert parse_bool(False, 'flag') is False
    with pytest.raises(ValidationError):
        parse_bool('false', 'flag')
    assert require_text('  hi ', 'name') == 'hi'
    with pytest.raises(ValidationError):
        require_text('   ', 'name')


def test_error_payloads():
    assert NotFoundError('Bid not found').to_dict() == {'error': 'Bid not found', 'code': 'NOT_FOUND'}
    error = EligibilityError('not verified')
    assert error.status_code == 403
    assert error.to_dict()['reason'] == 'not verified'
