"""
Store access tests.

SqlSwapCardStore runs against in-memory SQLite through Flask-SQLAlchemy;
InMemorySwapCardStore against the same dataset. Both must agree on what
reaches the normalizer.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from constants import SELF_EXCLUSION_POST_FILTER, SELF_EXCLUSION_QUERY
from services.swap_cards.errors import StoreAccessFailure
from services.swap_cards.records import RowKind
from services.swap_cards.store import InMemorySwapCardStore, SqlSwapCardStore


@pytest.fixture
def scenario(dataset):
    """Viewer with one busy swap (incl. a self-proposal), one self-only swap, one empty swap."""
    viewer = dataset.user('Viewer')
    alice, bob = dataset.user('Alice'), dataset.user('Bob')
    stranger = dataset.user('Stranger')

    busy = dataset.swap(viewer)
    dataset.proposal(busy, alice)
    dataset.proposal(busy, viewer)
    dataset.proposal(busy, bob)

    self_only = dataset.swap(viewer)
    dataset.proposal(self_only, viewer)

    empty = dataset.swap(viewer)

    theirs = dataset.swap(stranger)
    dataset.proposal(theirs, viewer)

    return {'viewer': viewer, 'busy': busy, 'self_only': self_only, 'empty': empty, 'theirs': theirs}


def _summarize(rows):
    by_swap = {}
    for row in rows:
        proposals = by_swap.setdefault(row.swap.id, [])
        if row.kind == RowKind.PROPOSAL:
            proposals.append(row.proposal.proposer_user_id)
    return {swap_id: sorted(p) for swap_id, p in by_swap.items()}


class TestSqlSwapCardStore:

    def test_self_proposals_never_leave_the_query(self, session, dataset, scenario):
        dataset.persist(session)
        store = SqlSwapCardStore(session)

        summary = _summarize(store.iter_rows(scenario['viewer']))

        assert summary == {
            scenario['busy']: ['user-0002', 'user-0003'],
            scenario['self_only']: [],
            scenario['empty']: [],
        }
        assert store.self_exclusion_mode == SELF_EXCLUSION_QUERY
        assert store.supports_query_constraints is True

    def test_other_users_swaps_excluded(self, session, dataset, scenario):
        dataset.persist(session)
        rows = list(SqlSwapCardStore(session).iter_rows(scenario['viewer']))
        assert scenario['theirs'] not in {r.swap.id for r in rows}

    def test_self_constraint_lives_in_join_condition(self, session):
        sql = str(SqlSwapCardStore(session).build_query('viewer-x'))
        join_part, _, where_part = sql.partition('WHERE')

        assert 'proposer_user_id IS NULL' in join_part
        assert 'proposer_user_id' not in where_part

    def test_null_proposer_reaches_normalizer(self, session, dataset):
        viewer = dataset.user('Viewer')
        swap = dataset.swap(viewer)
        dataset.proposal(swap, None)
        dataset.persist(session)

        rows = list(SqlSwapCardStore(session).iter_rows(viewer))

        assert len(rows) == 1
        assert rows[0].kind == RowKind.PROPOSAL
        assert rows[0].proposal.proposer_user_id is None

    def test_values_typed(self, session, dataset):
        viewer, alice = dataset.user('Viewer'), dataset.user('Alice')
        swap = dataset.swap(viewer)
        dataset.proposal(swap, alice, additional_payment=50.0, conditions=['no smoking'])
        dataset.persist(session)

        row = next(iter(SqlSwapCardStore(session).iter_rows(viewer)))

        assert row.proposal.proposer_name == 'Alice'
        assert row.proposal.additional_payment == 50.0
        assert row.proposal.conditions == ('no smoking',)
        assert row.swap.booking.original_price == 400.0

    def test_accepts_session_or_db_handle(self, session):
        class Handle:
            pass

        handle = Handle()
        handle.session = session

        assert SqlSwapCardStore(session).session is session
        assert SqlSwapCardStore(handle).session is session

    def test_query_error_wrapped(self):
        session = MagicMock(spec=['execute'])
        session.execute.side_effect = OperationalError('SELECT 1', {}, Exception('server closed'))
        store = SqlSwapCardStore(session)

        with pytest.raises(StoreAccessFailure) as exc_info:
            list(store.iter_rows('viewer'))

        assert exc_info.value.code == 'SWAP_CARDS_STORE_UNAVAILABLE'
        assert exc_info.value.details == {'errorType': 'OperationalError'}

    def test_fetch_error_wrapped_and_result_closed(self):
        def broken_rows():
            yield {'swap_id': 's-1', 'owner_user_id': 'viewer'}
            raise OperationalError('FETCH', {}, Exception('connection reset'))

        result = MagicMock()
        result.mappings.return_value = broken_rows()
        session = MagicMock(spec=['execute'])
        session.execute.return_value = result

        with pytest.raises(StoreAccessFailure):
            list(SqlSwapCardStore(session).iter_rows('viewer'))

        result.close.assert_called_once()

    def test_early_close_releases_result(self):
        result = MagicMock()
        result.mappings.return_value = iter([
            {'swap_id': 's-1', 'owner_user_id': 'viewer'},
            {'swap_id': 's-2', 'owner_user_id': 'viewer'},
        ])
        session = MagicMock(spec=['execute'])
        session.execute.return_value = result

        rows = SqlSwapCardStore(session, batch_size=10).iter_rows('viewer')
        next(rows)
        rows.close()

        result.close.assert_called_once()
        assert session.execute.call_args.kwargs['execution_options'] == {'yield_per': 10}


class TestInMemorySwapCardStore:

    def test_post_filter_matches_query_semantics(self, dataset, scenario):
        store = dataset.memory_store()

        summary = _summarize(store.iter_rows(scenario['viewer']))

        assert summary == {
            scenario['busy']: ['user-0002', 'user-0003'],
            scenario['self_only']: [],
            scenario['empty']: [],
        }
        assert store.self_proposals_filtered == 2
        assert store.self_exclusion_mode == SELF_EXCLUSION_POST_FILTER
        assert store.supports_query_constraints is False

    def test_swap_with_missing_source_booking_skipped(self, dataset):
        viewer = dataset.user('Viewer')
        dataset.swap(viewer)
        dataset.delete_booking(dataset.swaps[0]['source_booking_id'])

        assert list(dataset.memory_store().iter_rows(viewer)) == []

    def test_empty_store(self):
        assert list(InMemorySwapCardStore().iter_rows('anyone')) == []
