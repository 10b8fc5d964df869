"""
Store row parsing tests.

Rows are parsed once at the store boundary into SwapOnlyRow / ProposalRow.
Parsing never raises: bad values become None for the normalizer to judge.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from services.swap_cards.records import (
    BookingSnapshot,
    ProposalRow,
    RowKind,
    SwapOnlyRow,
    parse_store_row,
    to_amount,
    to_conditions,
    to_datetime,
    to_id,
)


def _flat(**overrides):
    row = {
        'swap_id': 'swap-1',
        'swap_status': 'pending',
        'swap_created_at': datetime(2025, 1, 1, 9, 0),
        'swap_expires_at': None,
        'owner_user_id': 'owner',
        'swap_booking_id': 'b-1',
        'swap_booking_title': 'Loft',
        'swap_booking_city': 'Porto',
        'swap_booking_country': 'Portugal',
        'swap_booking_provider': 'expedia',
        'swap_booking_check_in_date': date(2025, 5, 1),
        'swap_booking_check_out_date': date(2025, 5, 3),
        'swap_booking_original_price': Decimal('250.00'),
        'swap_booking_swap_value': Decimal('200.00'),
    }
    row.update(overrides)
    return row


class TestCoercion:

    def test_to_id_blank_is_none(self):
        assert to_id('   ') is None
        assert to_id(None) is None
        assert to_id(42) == '42'

    def test_to_datetime_accepts_iso_and_normalizes_to_naive_utc(self):
        assert to_datetime('2025-01-01T10:00:00Z') == datetime(2025, 1, 1, 10, 0)
        aware = datetime(2025, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_datetime(aware) == datetime(2025, 1, 1, 10, 0)

    def test_to_datetime_garbage_is_none(self):
        assert to_datetime('not-a-date') is None
        assert to_datetime(12345) is None

    def test_to_amount(self):
        assert to_amount(Decimal('12.50')) == 12.5
        assert to_amount('7') == 7.0
        assert to_amount('abc') is None
        assert to_amount(True) is None

    def test_to_conditions(self):
        assert to_conditions(None) == ()
        assert to_conditions('no pets') == ('no pets',)
        assert to_conditions(['a', None, 'b']) == ('a', 'b')
        assert to_conditions([]) == ()
        assert to_conditions({}) == ()

    @pytest.mark.parametrize('value', [{'note': 'no pets'}, 42, 3.5])
    def test_unreadable_conditions_become_none(self, value):
        assert to_conditions(value) is None


class TestParseStoreRow:

    def test_left_join_miss_is_swap_only(self):
        parsed = parse_store_row(_flat())

        assert isinstance(parsed, SwapOnlyRow)
        assert parsed.kind == RowKind.SWAP_ONLY
        assert parsed.swap.owner_user_id == 'owner'
        assert parsed.swap.booking.original_price == 250.0

    def test_joined_proposal(self):
        parsed = parse_store_row(_flat(
            proposal_id='p-1',
            proposal_swap_id='swap-1',
            proposer_user_id='alice',
            proposer_name='Alice',
            proposer_email='alice@example.com',
            proposal_status='pending',
            proposal_created_at='2025-01-02T08:00:00',
            proposal_conditions=['flexible dates'],
            proposer_booking_ref='b-9',
            offered_booking_id='b-9',
            offered_booking_city='Madrid',
        ))

        assert isinstance(parsed, ProposalRow)
        assert parsed.proposal.created_at == datetime(2025, 1, 2, 8, 0)
        assert parsed.proposal.conditions == ('flexible dates',)
        assert parsed.proposal.proposer_email == 'alice@example.com'
        assert parsed.proposal.booking.exists
        assert parsed.proposal.booking.city == 'Madrid'

    def test_proposal_with_null_id_is_still_a_proposal_row(self):
        parsed = parse_store_row(_flat(proposal_swap_id='swap-1', proposer_user_id='alice'))

        assert parsed.kind == RowKind.PROPOSAL
        assert parsed.proposal.id is None

    def test_dangling_booking_reference(self):
        parsed = parse_store_row(_flat(
            proposal_id='p-1', proposer_user_id='alice', proposer_booking_ref='gone',
        ))

        assert parsed.proposal.booking_ref == 'gone'
        assert parsed.proposal.booking.exists is False


class TestBookingSnapshot:

    def test_missing_fields_in_declared_order(self):
        booking = BookingSnapshot(id='b', title='T', city=None, country='PT', provider=None)
        assert booking.missing_fields() == [
            'city', 'provider', 'check_in_date', 'check_out_date', 'original_price', 'swap_value',
        ]
