"""
API tests for GET /api/swaps/cards.

Covers the envelope, auth, parameter validation, error mapping and rate
limiting. Card content is covered in test_swap_card_assembler.py.
"""

import pytest
from sqlalchemy import text, true

from services.swap_cards.store import SqlSwapCardStore

URL = '/api/swaps/cards'


@pytest.fixture
def seeded(session, dataset):
    """Viewer with one busy swap (3 others + 1 self-proposal) and one empty swap."""
    viewer = dataset.user('Viewer')
    dataset.swap(viewer)
    busy = dataset.swap(viewer)
    for name in ('Alice', 'Bob', 'Cara'):
        dataset.proposal(busy, dataset.user(name))
    dataset.proposal(busy, viewer)
    dataset.persist(session)
    return {'viewer': viewer, 'busy': busy}


class TestSuccessEnvelope:

    def test_shape(self, client, seeded, auth_headers):
        response = client.get(URL, headers=auth_headers(seeded['viewer']))

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        data = body['data']
        assert set(data) == {'swapCards', 'pagination', 'metadata'}
        assert data['metadata']['requestId'] == response.headers['X-Request-ID']
        assert data['pagination'] == {
            'total': 2, 'limit': 100, 'offset': 0, 'hasMore': False, 'nextOffset': None,
        }

    def test_self_proposal_never_served(self, client, seeded, auth_headers):
        body = client.get(URL, headers=auth_headers(seeded['viewer'])).get_json()

        cards = body['data']['swapCards']
        assert [c['userSwap']['id'] for c in cards][0] == seeded['busy']
        assert cards[0]['proposalCount'] == 3
        assert all(
            p['proposerId'] != seeded['viewer']
            for card in cards for p in card['proposalsFromOthers']
        )
        assert cards[1]['proposalsFromOthers'] == []
        assert cards[1]['cardMetadata'] == {'hasProposals': False, 'proposalStatus': 'no_proposals'}

    def test_pagination_first_page(self, client, seeded, auth_headers):
        body = client.get(f'{URL}?limit=1&offset=0', headers=auth_headers(seeded['viewer'])).get_json()

        pagination = body['data']['pagination']
        assert len(body['data']['swapCards']) == 1
        assert pagination['hasMore'] is True
        assert pagination['nextOffset'] == 1
        assert body['data']['metadata']['totalSwaps'] == 1

    def test_limit_clamped(self, client, seeded, auth_headers):
        body = client.get(f'{URL}?limit=500', headers=auth_headers(seeded['viewer'])).get_json()
        assert body['data']['pagination']['limit'] == 100

    def test_viewer_with_no_swaps(self, client, seeded, auth_headers):
        body = client.get(URL, headers=auth_headers('user-nobody')).get_json()

        assert body['data']['swapCards'] == []
        assert body['data']['pagination']['total'] == 0
        assert body['data']['metadata']['averageProposalsPerSwap'] == 0

    def test_incoming_request_id_echoed(self, client, seeded, auth_headers):
        headers = dict(auth_headers(seeded['viewer']), **{'X-Request-ID': 'trace-abc-123'})
        response = client.get(URL, headers=headers)

        assert response.headers['X-Request-ID'] == 'trace-abc-123'
        assert response.get_json()['data']['metadata']['requestId'] == 'trace-abc-123'

    def test_viewer_scoped_headers(self, client, seeded, auth_headers):
        response = client.get(URL, headers=auth_headers(seeded['viewer']))

        assert 'no-store' in response.headers['Cache-Control']
        assert response.headers['Vary'] == 'Authorization'
        assert response.headers['X-Query-Count'] == '1'


class TestErrors:

    @pytest.mark.parametrize('query,field', [
        ('limit=0', 'limit'),
        ('limit=abc', 'limit'),
        ('offset=-1', 'offset'),
    ])
    def test_invalid_params(self, client, seeded, auth_headers, query, field):
        response = client.get(f'{URL}?{query}', headers=auth_headers(seeded['viewer']))

        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'INVALID_PARAMS'
        assert body['error']['field'] == field
        assert 'data' not in body

    def test_missing_token(self, client):
        response = client.get(URL)

        assert response.status_code == 401
        body = response.get_json()
        assert body['error']['code'] == 'UNAUTHORIZED'
        assert body['error']['requestId'] == response.headers['X-Request-ID']

    @pytest.mark.parametrize('header', ['Bearer not-a-jwt', 'Token abc', 'Bearer '])
    def test_bad_token(self, client, header):
        response = client.get(URL, headers={'Authorization': header})
        assert response.status_code == 401

    def test_expired_token(self, client):
        from utils.auth import generate_token

        token = generate_token('user-0001', expires_in_hours=-1)
        response = client.get(URL, headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401

    def test_invariant_violation_returns_no_cards(self, client, seeded, auth_headers, monkeypatch):
        # Break the primary filter: the join no longer excludes self-proposals
        monkeypatch.setattr(
            'services.swap_cards.store.exclude_self_proposals',
            lambda proposer, owner: true(),
        )

        response = client.get(URL, headers=auth_headers(seeded['viewer']))

        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'SELF_EXCLUSION_INVARIANT_VIOLATION'
        assert 'swapCards' not in response.get_data(as_text=True)

    def test_store_failure_maps_to_503(self, client, seeded, auth_headers, monkeypatch):
        monkeypatch.setattr(
            SqlSwapCardStore, 'build_query',
            lambda self, viewer_id: text('SELECT * FROM no_such_table'),
        )

        response = client.get(URL, headers=auth_headers(seeded['viewer']))

        assert response.status_code == 503
        body = response.get_json()
        assert body['error']['code'] == 'SWAP_CARDS_STORE_UNAVAILABLE'
        assert body['error']['details'] == {'errorType': 'OperationalError'}

    def test_unknown_route_uses_envelope(self, client):
        response = client.get('/api/swaps/nothing-here')

        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'NOT_FOUND'


class TestRateLimit:

    def test_limit_exceeded(self, make_app, auth_headers):
        client = make_app(SWAP_CARDS_RATE_LIMIT='2 per minute').test_client()
        headers = auth_headers('user-limited')

        statuses = [client.get(URL, headers=headers).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]

    def test_limit_is_per_viewer(self, make_app, auth_headers):
        client = make_app(SWAP_CARDS_RATE_LIMIT='1 per minute').test_client()

        first = client.get(URL, headers=auth_headers('user-a')).status_code
        second = client.get(URL, headers=auth_headers('user-b')).status_code
        blocked = client.get(URL, headers=auth_headers('user-a'))

        assert (first, second) == (200, 200)
        assert blocked.status_code == 429
        assert blocked.get_json()['error']['code'] == 'TOO_MANY_REQUESTS'


class TestHealth:

    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_ready(self, client):
        from services.health import reset_readiness_cache

        reset_readiness_cache()
        response = client.get('/api/ready')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ready'}

    def test_not_ready_when_database_fails(self, client, monkeypatch):
        from types import SimpleNamespace

        from sqlalchemy.exc import OperationalError

        from services import health as health_module

        class DownEngine:
            def begin(self):
                raise OperationalError('SELECT 1', {}, Exception('connection refused'))

        monkeypatch.setattr(health_module, 'db', SimpleNamespace(engine=DownEngine()))
        health_module.reset_readiness_cache()
        try:
            response = client.get('/api/ready')
        finally:
            health_module.reset_readiness_cache()

        assert response.status_code == 503
        assert response.get_json() == {'status': 'not_ready'}
