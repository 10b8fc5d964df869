"""
Swap card store access.

Fetches the viewer's swaps with every candidate proposal in ONE streamed
query and hands typed records (services.swap_cards.records) downstream.

Two implementations share the iter_rows(viewer_id) contract:

- SqlSwapCardStore: SQLAlchemy query with the self-exclusion constraint in
  the proposals JOIN condition (supports_query_constraints = True).
- InMemorySwapCardStore: plain Python rows for tooling and tests. It cannot
  take query constraints, so it post-filters with the same predicate.

Resource rules:
- iter_rows() is a generator; the DB result is closed on exhaustion, on
  error, and when the caller closes the generator early.
- No retries, no caching. Store errors surface as StoreAccessFailure.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased

from constants import OPTIONAL_BOOKING_FIELDS, SELF_EXCLUSION_POST_FILTER, SELF_EXCLUSION_QUERY
from services.swap_cards.errors import StoreAccessFailure
from services.swap_cards.records import StoreRow, parse_store_row
from services.swap_cards.self_exclusion import SelfProposalPostFilter, exclude_self_proposals

logger = logging.getLogger('swap_cards.store')

DEFAULT_BATCH_SIZE = 500


def _booking_columns(booking, prefix: str) -> List[Any]:
    return [booking.id.label(f'{prefix}_id')] + [
        getattr(booking, name).label(f'{prefix}_{name}') for name in OPTIONAL_BOOKING_FIELDS
    ]


class SqlSwapCardStore:
    """Store access over the swaps / bookings / proposals / users tables."""

    supports_query_constraints = True
    self_exclusion_mode = SELF_EXCLUSION_QUERY

    def __init__(self, db, batch_size: int = DEFAULT_BATCH_SIZE):
        # Handle both db and db.session patterns
        self.session = getattr(db, 'session', db)
        self.batch_size = batch_size
        self.rows_read = 0
        self.self_proposals_filtered = 0

    def build_query(self, viewer_id: str):
        """
        Build the swap card query for one viewer.

        Shape: viewer's swaps JOIN source booking, LEFT JOIN qualifying
        proposals, LEFT JOIN offered booking, LEFT JOIN proposer user.
        Swaps with no qualifying proposals produce one row with NULL
        proposal columns.
        """
        from models import Booking, Proposal, Swap, User

        source_booking = aliased(Booking, name='sb')
        offered_booking = aliased(Booking, name='ob')
        proposer = aliased(User, name='pu')

        columns = [
            Swap.id.label('swap_id'),
            Swap.status.label('swap_status'),
            Swap.created_at.label('swap_created_at'),
            Swap.expires_at.label('swap_expires_at'),
            source_booking.user_id.label('owner_user_id'),
            *_booking_columns(source_booking, 'swap_booking'),
            Proposal.id.label('proposal_id'),
            Proposal.swap_id.label('proposal_swap_id'),
            Proposal.proposer_user_id.label('proposer_user_id'),
            proposer.display_name.label('proposer_name'),
            proposer.email.label('proposer_email'),
            Proposal.status.label('proposal_status'),
            Proposal.created_at.label('proposal_created_at'),
            Proposal.expires_at.label('proposal_expires_at'),
            Proposal.additional_payment.label('proposal_additional_payment'),
            Proposal.conditions.label('proposal_conditions'),
            Proposal.proposer_booking_id.label('proposer_booking_ref'),
            *_booking_columns(offered_booking, 'offered_booking'),
        ]

        return (
            select(*columns)
            .select_from(Swap)
            .join(source_booking, Swap.source_booking_id == source_booking.id)
            .outerjoin(
                Proposal,
                and_(
                    Proposal.swap_id == Swap.id,
                    exclude_self_proposals(Proposal.proposer_user_id, source_booking.user_id),
                ),
            )
            .outerjoin(offered_booking, Proposal.proposer_booking_id == offered_booking.id)
            .outerjoin(proposer, Proposal.proposer_user_id == proposer.id)
            .where(source_booking.user_id == viewer_id)
            .order_by(
                Swap.created_at.desc(),
                Swap.id.asc(),
                Proposal.created_at.desc(),
                Proposal.id.asc(),
            )
        )

    def iter_rows(self, viewer_id: str) -> Iterator[StoreRow]:
        """
        Stream typed rows for the viewer.

        Raises:
            StoreAccessFailure: query could not be executed or iterated
        """
        try:
            result = self.session.execute(
                self.build_query(viewer_id),
                execution_options={'yield_per': self.batch_size},
            )
        except SQLAlchemyError as e:
            logger.error(f"swap_cards_query_failed viewer={viewer_id} err={str(e)[:200]}")
            raise StoreAccessFailure(
                "Swap card store query failed",
                details={'errorType': type(e).__name__},
            ) from e

        try:
            for mapping in result.mappings():
                self.rows_read += 1
                yield parse_store_row(mapping)
        except SQLAlchemyError as e:
            logger.error(
                f"swap_cards_fetch_failed viewer={viewer_id} rows_read={self.rows_read} "
                f"err={str(e)[:200]}"
            )
            raise StoreAccessFailure(
                "Swap card store fetch failed",
                details={'errorType': type(e).__name__},
            ) from e
        finally:
            result.close()


def _flatten_booking(booking: Optional[Mapping[str, Any]], prefix: str) -> Dict[str, Any]:
    booking = booking or {}
    flat = {f'{prefix}_id': booking.get('id')}
    for name in OPTIONAL_BOOKING_FIELDS:
        flat[f'{prefix}_{name}'] = booking.get(name)
    return flat


class InMemorySwapCardStore:
    """
    Store over plain dict records keyed like the model columns.

    Args:
        swaps: dicts with id, source_booking_id, status, created_at, expires_at
        proposals: dicts with id, swap_id, proposer_user_id, proposer_booking_id,
                   status, created_at, expires_at, additional_payment, conditions
        bookings: dicts with id, user_id and the optional booking fields
        users: dicts with id, display_name, email
    """

    supports_query_constraints = False
    self_exclusion_mode = SELF_EXCLUSION_POST_FILTER

    def __init__(
        self,
        swaps: Iterable[Mapping[str, Any]] = (),
        proposals: Iterable[Mapping[str, Any]] = (),
        bookings: Iterable[Mapping[str, Any]] = (),
        users: Iterable[Mapping[str, Any]] = (),
    ):
        self.swaps = list(swaps)
        self.proposals = list(proposals)
        self.bookings = {b['id']: b for b in bookings}
        self.users = {u['id']: u for u in users}
        self.rows_read = 0
        self.self_proposals_filtered = 0

    def _raw_rows(self, viewer_id: str) -> Iterator[Dict[str, Any]]:
        for swap in self.swaps:
            source_booking = self.bookings.get(swap.get('source_booking_id'))
            # Inner join on the source booking: no booking, no owner, no card
            if not source_booking or source_booking.get('user_id') != viewer_id:
                continue

            base = {
                'swap_id': swap.get('id'),
                'swap_status': swap.get('status'),
                'swap_created_at': swap.get('created_at'),
                'swap_expires_at': swap.get('expires_at'),
                'owner_user_id': source_booking.get('user_id'),
                **_flatten_booking(source_booking, 'swap_booking'),
            }

            candidates = [p for p in self.proposals if p.get('swap_id') == swap.get('id')]
            if not candidates:
                yield base
                continue

            for proposal in candidates:
                proposer = self.users.get(proposal.get('proposer_user_id')) or {}
                yield {
                    **base,
                    'proposal_id': proposal.get('id'),
                    'proposal_swap_id': proposal.get('swap_id'),
                    'proposer_user_id': proposal.get('proposer_user_id'),
                    'proposer_name': proposer.get('display_name'),
                    'proposer_email': proposer.get('email'),
                    'proposal_status': proposal.get('status'),
                    'proposal_created_at': proposal.get('created_at'),
                    'proposal_expires_at': proposal.get('expires_at'),
                    'proposal_additional_payment': proposal.get('additional_payment'),
                    'proposal_conditions': proposal.get('conditions'),
                    'proposer_booking_ref': proposal.get('proposer_booking_id'),
                    **_flatten_booking(
                        self.bookings.get(proposal.get('proposer_booking_id')),
                        'offered_booking',
                    ),
                }

    def iter_rows(self, viewer_id: str) -> Iterator[StoreRow]:
        post_filter = SelfProposalPostFilter()

        def parsed() -> Iterator[StoreRow]:
            for raw in self._raw_rows(viewer_id):
                self.rows_read += 1
                yield parse_store_row(raw)

        try:
            yield from post_filter.apply(parsed())
        finally:
            self.self_proposals_filtered = post_filter.filtered
