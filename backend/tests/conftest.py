"""
Root pytest configuration for backend tests.

Provides:
- Shared fixtures (app, client, session) on in-memory SQLite (StaticPool)
- dataset: a SwapDataset builder usable against both swap card stores
- auth_headers: Bearer headers for a viewer id
"""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

# Add backend directory to Python path so imports like
# `from services.swap_cards import ...` and `from utils.auth import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.pool import StaticPool


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'SQLALCHEMY_ENGINE_OPTIONS': {
        'poolclass': StaticPool,
        'connect_args': {'check_same_thread': False},
    },
    'RATELIMIT_STORAGE_URI': 'memory://',
}


DEFAULT_BOOKING = {
    'title': 'Harbour View Suite',
    'city': 'Lisbon',
    'country': 'Portugal',
    'provider': 'booking.com',
    'check_in_date': date(2025, 6, 1),
    'check_out_date': date(2025, 6, 5),
    'original_price': 400.0,
    'swap_value': 350.0,
    'status': 'available',
}


class SwapDataset:
    """
    Builds users, bookings, swaps and proposals as plain dicts.

    Every created record gets a created_at one minute after the previous
    one, so "created later" always means "listed first".

    Usage:
        owner = dataset.user('Ana')
        swap = dataset.swap(owner)
        dataset.proposal(swap, dataset.user('Ben'))
        store = dataset.memory_store()     # or dataset.persist(session)
    """

    def __init__(self):
        self.users = []
        self.bookings = []
        self.swaps = []
        self.proposals = []
        self._seq = 0
        self._clock = datetime(2025, 1, 1, 12, 0, 0)

    def _next_id(self, prefix):
        self._seq += 1
        return f'{prefix}-{self._seq:04d}'

    def _next_time(self):
        self._clock += timedelta(minutes=1)
        return self._clock

    def user(self, display_name='Traveller', user_id=None):
        user_id = user_id or self._next_id('user')
        self.users.append({'id': user_id, 'display_name': display_name, 'email': f'{user_id}@example.com'})
        return user_id

    def booking(self, owner, **fields):
        record = dict(DEFAULT_BOOKING, id=self._next_id('booking'), user_id=owner)
        record.update(fields)
        record['created_at'] = self._next_time()
        self.bookings.append(record)
        return record['id']

    def swap(self, owner, created_at=None, status='pending', booking_fields=None):
        booking_id = self.booking(owner, **(booking_fields or {}))
        record = {
            'id': self._next_id('swap'),
            'source_booking_id': booking_id,
            'status': status,
            'created_at': created_at or self._next_time(),
            'expires_at': None,
        }
        self.swaps.append(record)
        return record['id']

    def proposal(self, swap_id, proposer, created_at=None, booking='auto', status='pending',
                 proposal_id=None, booking_fields=None, **extra):
        if booking == 'auto':
            booking = self.booking(proposer or 'user-ghost', **(booking_fields or {}))
        record = {
            'id': proposal_id or self._next_id('proposal'),
            'swap_id': swap_id,
            'proposer_user_id': proposer,
            'proposer_booking_id': booking,
            'status': status,
            'created_at': created_at or self._next_time(),
            'expires_at': None,
            'additional_payment': extra.pop('additional_payment', None),
            'conditions': extra.pop('conditions', []),
        }
        record.update(extra)
        self.proposals.append(record)
        return record['id']

    def delete_booking(self, booking_id):
        self.bookings = [b for b in self.bookings if b['id'] != booking_id]

    def memory_store(self):
        from services.swap_cards import InMemorySwapCardStore
        return InMemorySwapCardStore(
            swaps=self.swaps,
            proposals=self.proposals,
            bookings=self.bookings,
            users=self.users,
        )

    def persist(self, session):
        from models import Booking, Proposal, Swap, User

        for u in self.users:
            session.add(User(id=u['id'], email=u['email'], display_name=u['display_name']))
        for b in self.bookings:
            session.add(Booking(**b))
        for s in self.swaps:
            session.add(Swap(**s))
        for p in self.proposals:
            session.add(Proposal(**p))
        session.commit()
        return session


@pytest.fixture
def app():
    """Create test Flask application on a private in-memory database."""
    from app import create_app
    from models.database import db

    app = create_app(dict(TEST_CONFIG))
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def session(app):
    """db.session inside an app context."""
    from models.database import db

    with app.app_context():
        yield db.session
        db.session.rollback()


@pytest.fixture
def dataset():
    return SwapDataset()


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a viewer id."""
    from utils.auth import generate_token

    def _headers(viewer_id):
        return {'Authorization': f'Bearer {generate_token(viewer_id)}'}

    return _headers


@pytest.fixture
def make_app():
    """Build extra apps with config overrides; all are torn down after the test."""
    from app import create_app
    from models.database import db

    created = []

    def _make(**overrides):
        app = create_app(dict(TEST_CONFIG, **overrides))
        created.append(app)
        return app

    yield _make

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()
