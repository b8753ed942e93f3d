"""
Shared fixtures for the bid marketplace tests.

Each test gets its own SQLite file so that threads running in separate app
contexts (and separate sessions) see the same database. Helpers push their own
short app contexts and hand back ids, never ORM instances.
"""

import pytest

from app import create_app
from models import db, User

PASSWORD = 'correct-horse-battery'


@pytest.fixture
def app(tmp_path):
    app = create_app(
        'testing',
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'bids.db'}",
        SQLALCHEMY_ENGINE_OPTIONS={'connect_args': {'timeout': 30, 'check_same_thread': False}},
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    """App context for calling the services directly."""
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture
def make_user(app):
    """Create a committed user and return its id."""
    counter = {'n': 0}

    def _make_user(role='requester', location='Karachi', is_verified=False,
                   experience_years=0, categories=None, email=None, name=None):
        counter['n'] += 1
        with app.app_context():
            user = User(
                name=name or f'{role.title()} {counter["n"]}',
                email=email or f'{role}{counter["n"]}@example.com',
                role=role,
                location=location,
                is_verified=is_verified,
                experience_years=experience_years,
                categories=categories or [],
            )
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def requester_id(make_user):
    return make_user('requester', location='Karachi')


@pytest.fixture
def vendor_id(make_user):
    return make_user('vendor', location='Karachi', is_verified=True, experience_years=5,
                     categories=['Birthday Party Planning'])


@pytest.fixture
def bid_payload():
    return {
        'request_details': 'Birthday party for my son with balloons',
        'timeline': 'Two weeks',
        'preferred_start_date': '2025-06-01',
        'budget_range': {'min': 100, 'max': 500},
        'filters': {},
    }


@pytest.fixture
def make_bid(app, requester_id, bid_payload):
    """Create a bid through the lifecycle service and return its id."""
    from services import bid_service

    def _make_bid(requester=None, **changes):
        payload = {**bid_payload, **changes}
        with app.app_context():
            bid = bid_service.create_bid(requester_id=requester or requester_id, **payload)
            return bid.id

    return _make_bid


@pytest.fixture
def login(app):
    """Return a test client holding a session for the given user id."""

    def _login(user_id):
        with app.app_context():
            email = db.session.get(User, user_id).email
        client = app.test_client()
        response = client.post('/api/auth/login', json={'email': email, 'password': PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client

    return _login
