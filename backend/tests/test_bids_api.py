"""End-to-end tests for the /api/bids endpoints through the Flask test client."""

import pytest
from flask_sqlalchemy.session import Session
from sqlalchemy.exc import SQLAlchemyError

from services import bid_service

BID_BODY = {
    'request_details': 'Birthday party for my son with balloons',
    'timeline': 'Two weeks',
    'preferred_start_date': '2025-06-01T10:00:00Z',
    'budget_range': {'min': 100, 'max': 500},
    'filters': {'local_vendors_only': True},
}


@pytest.fixture
def requester(login, requester_id):
    return login(requester_id)


@pytest.fixture
def vendor(login, vendor_id):
    return login(vendor_id)


@pytest.fixture
def posted_bid(requester):
    response = requester.post('/api/bids', json=BID_BODY)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


class TestAuthentication:
    @pytest.mark.parametrize('method, path', [
        ('get', '/api/bids'),
        ('post', '/api/bids'),
        ('get', '/api/bids/1'),
        ('post', '/api/bids/1/assign'),
        ('put', '/api/bids/1/quotes'),
        ('get', '/api/bids/categories'),
    ])
    def test_anonymous_requests_are_refused(self, client, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401
        assert response.get_json()['code'] == 'UNAUTHORIZED'

    def test_vendor_cannot_post_bids(self, vendor):
        response = vendor.post('/api/bids', json=BID_BODY)
        assert response.status_code == 403
        assert response.get_json()['code'] == 'FORBIDDEN'


class TestBidEndpoints:
    def test_create_and_fetch(self, requester, posted_bid, requester_id):
        assert posted_bid['status'] == 'pending'
        assert posted_bid['category'] == 'Birthday Party Planning'
        assert posted_bid['requester_id'] == requester_id
        assert posted_bid['preferred_start_date'] == '2025-06-01T10:00:00'
        assert posted_bid['filters']['local_vendors_only'] is True
        assert posted_bid['quotes'] == []

        response = requester.get(f"/api/bids/{posted_bid['id']}")
        assert response.status_code == 200
        assert response.get_json()['data'] == posted_bid

    def test_create_rejects_inverted_budget(self, requester):
        body = {**BID_BODY, 'budget_range': {'min': 100, 'max': 50}}
        response = requester.post('/api/bids', json=body)
        data = response.get_json()
        assert response.status_code == 400
        assert data['code'] == 'VALIDATION_ERROR'
        assert 'budget_range.max' in data['fields']

    def test_non_object_body(self, requester):
        response = requester.post('/api/bids', data='not json', content_type='text/plain')
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_unknown_and_malformed_ids(self, requester):
        assert requester.get('/api/bids/424242').status_code == 404
        response = requester.get('/api/bids/abc')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid Bid ID'

    @pytest.mark.parametrize('path', ['/api/bids/%C2%B2', '/api/bids/99999999999999999999',
                                      '/api/bids/99999999999999999999/quotes'])
    def test_out_of_range_and_non_ascii_ids(self, requester, path):
        response = requester.get(path)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_listing_envelope(self, requester, posted_bid):
        response = requester.get('/api/bids?fields=status&limit=5')
        data = response.get_json()
        assert response.status_code == 200
        assert data['status'] == 'success'
        assert data['results'] == data['total'] == 1
        assert data['limit'] == 5
        assert data['data']['bids'] == [{'id': posted_bid['id'], 'status': 'pending'}]

    def test_listing_date_window_follows_timezone_setting(self, app, requester):
        app.config['TIMEZONE'] = 'Asia/Karachi'
        body = {**BID_BODY, 'preferred_start_date': '2025-06-01'}
        created = requester.post('/api/bids', json=body).get_json()['data']
        assert created['preferred_start_date'] == '2025-05-31T19:00:00'

        response = requester.get('/api/bids?min_start=2025-06-01&max_start=2025-06-01')
        assert response.get_json()['total'] == 1

    def test_listing_rejects_unknown_filters(self, requester, posted_bid):
        response = requester.get('/api/bids?colour=red')
        assert response.status_code == 400

    def test_vendor_sees_only_their_categories(self, login, make_user, posted_bid):
        planner = login(make_user('vendor', categories=['Birthday Party Planning']))
        florist = login(make_user('vendor', categories=['Floral Arrangements']))

        assert planner.get('/api/bids').get_json()['total'] == 1
        assert florist.get('/api/bids').get_json()['total'] == 0

    def test_patch_by_owner(self, requester, posted_bid):
        response = requester.patch(f"/api/bids/{posted_bid['id']}",
                                   json={'budget_range': {'max': 800}, 'timeline': 'A month'})
        data = response.get_json()['data']
        assert response.status_code == 200
        assert data['budget_range'] == {'min': 100.0, 'max': 800.0}
        assert data['timeline'] == 'A month'

    def test_patch_cannot_touch_status(self, requester, posted_bid):
        response = requester.patch(f"/api/bids/{posted_bid['id']}", json={'status': 'accept'})
        assert response.status_code == 400
        assert response.get_json()['fields'] == ['status']

    def test_other_requester_cannot_patch_or_delete(self, login, make_user, posted_bid):
        stranger = login(make_user('requester'))
        assert stranger.patch(f"/api/bids/{posted_bid['id']}", json={'timeline': 'x'}).status_code == 403
        assert stranger.delete(f"/api/bids/{posted_bid['id']}").status_code == 403

    def test_delete(self, requester, posted_bid):
        assert requester.delete(f"/api/bids/{posted_bid['id']}").status_code == 204
        assert requester.get(f"/api/bids/{posted_bid['id']}").status_code == 404

    def test_categories(self, requester):
        data = requester.get('/api/bids/categories').get_json()['data']
        assert data['default'] == 'General'
        assert 'Wedding Planning' in data['categories']


class TestAssignEndpoint:
    def test_vendor_accepts(self, vendor, posted_bid, vendor_id):
        response = vendor.post(f"/api/bids/{posted_bid['id']}/assign")
        data = response.get_json()['data']
        assert response.status_code == 200
        assert data['status'] == 'accept'
        assert data['assigned_to'] == vendor_id

        listed = vendor.get(f'/api/bids/vendor/{vendor_id}').get_json()
        assert [bid['id'] for bid in listed['data']['bids']] == [posted_bid['id']]

    def test_second_assign_conflicts(self, vendor, login, make_user, posted_bid):
        other = login(make_user('vendor'))
        assert vendor.post(f"/api/bids/{posted_bid['id']}/assign").status_code == 200

        response = other.post(f"/api/bids/{posted_bid['id']}/assign")
        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_STATE'

    def test_ineligible_vendor(self, login, make_user, requester, posted_bid):
        lahore = login(make_user('vendor', location='Lahore', is_verified=True, experience_years=8))
        response = lahore.post(f"/api/bids/{posted_bid['id']}/assign")
        data = response.get_json()
        assert response.status_code == 403
        assert data['code'] == 'NOT_ELIGIBLE'
        assert data['reason'] == 'not local'

        still = requester.get(f"/api/bids/{posted_bid['id']}").get_json()['data']
        assert still['status'] == 'pending'
        assert still['assigned_to'] is None

    def test_requester_cannot_assign(self, requester, posted_bid):
        assert requester.post(f"/api/bids/{posted_bid['id']}/assign").status_code == 403

    def test_cancel_then_reject(self, requester, vendor, posted_bid):
        response = requester.post(f"/api/bids/{posted_bid['id']}/cancel")
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'cancel'

        assert requester.post(f"/api/bids/{posted_bid['id']}/reject").status_code == 409
        assert vendor.post(f"/api/bids/{posted_bid['id']}/assign").status_code == 409


class TestQuoteEndpoints:
    def test_submit_duplicate_then_edit(self, vendor, requester, posted_bid, vendor_id):
        url = f"/api/bids/{posted_bid['id']}/quotes"

        assert vendor.post(url, json={'amount': 200}).status_code == 201

        duplicate = vendor.post(url, json={'amount': 300})
        assert duplicate.status_code == 409
        assert duplicate.get_json()['code'] == 'DUPLICATE_QUOTE'

        edited = vendor.put(url, json={'amount': 250})
        assert edited.status_code == 200
        assert edited.get_json()['data']['amount'] == 250.0

        listed = requester.get(url).get_json()
        assert listed['results'] == 1
        assert [(q['vendor_id'], q['amount']) for q in listed['data']['quotes']] == [(vendor_id, 250.0)]

    def test_put_creates_when_missing(self, vendor, posted_bid):
        response = vendor.put(f"/api/bids/{posted_bid['id']}/quotes", json={'amount': 99.5})
        assert response.status_code == 201
        assert response.get_json()['data']['amount'] == 99.5

    def test_requester_cannot_quote(self, requester, posted_bid):
        response = requester.post(f"/api/bids/{posted_bid['id']}/quotes", json={'amount': 10})
        assert response.status_code == 403

    def test_bad_amount(self, vendor, posted_bid):
        response = vendor.post(f"/api/bids/{posted_bid['id']}/quotes", json={'amount': '12'})
        assert response.status_code == 400
        assert response.get_json()['fields'] == ['amount']



def failing_commit(*args, **kwargs):
    raise SQLAlchemyError('disk I/O error')


class TestPersistenceFailures:
    def test_create_reports_internal_error(self, requester, monkeypatch):
        monkeypatch.setattr(Session, 'commit', failing_commit)
        response = requester.post('/api/bids', json=BID_BODY)
        data = response.get_json()

        assert response.status_code == 500
        assert data['code'] == 'INTERNAL_ERROR'
        assert 'fields' not in data

        monkeypatch.undo()
        assert requester.get('/api/bids').get_json()['total'] == 0

    def test_failed_assign_leaves_bid_pending(self, requester, vendor, posted_bid, monkeypatch):
        monkeypatch.setattr(Session, 'commit', failing_commit)
        response = vendor.post(f"/api/bids/{posted_bid['id']}/assign")
        assert response.status_code == 500
        assert response.get_json()['code'] == 'INTERNAL_ERROR'

        monkeypatch.undo()
        bid = requester.get(f"/api/bids/{posted_bid['id']}").get_json()['data']
        assert bid['status'] == 'pending'
        assert bid['assigned_to'] is None

    def test_database_error_outside_route_handling(self, requester, posted_bid, monkeypatch):
        def unreachable(bid_id):
            raise SQLAlchemyError('connection reset')

        monkeypatch.setattr(bid_service, 'get_bid', unreachable)
        response = requester.patch(f"/api/bids/{posted_bid['id']}", json={'timeline': 'Soon'})

        assert response.status_code == 500
        assert response.get_json()['code'] == 'INTERNAL_ERROR'


def test_health(client):
    response = client.get('/api/health')
    data = response.get_json()
    assert response.status_code == 200
    assert data['status'] == 'healthy'
    assert data['checks']['database']['connected'] is True
    assert data['checks']['database']['bids'] == {'pending': 0, 'accept': 0, 'reject': 0, 'cancel': 0}


def test_unknown_route_is_json(client):
    response = client.get('/api/nothing-here')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'NOT_FOUND'
