"""
Self-exclusion - CANONICAL PREDICATE

A user must never see a proposal they made against their own swap.

Enforced twice:
1. Store level (primary): exclude_self_proposals() is pushed into the
   proposals join condition by the SQL store. Stores that cannot take
   query constraints run post_filter_self_proposals() over their rows
   before anything else sees them.
2. Grouping level (invariant check): assert_not_self_proposal() raises
   InvariantViolation. A hit there means level 1 is broken, so it is
   never downgraded to a silent drop.

NEVER hand-write the comparison in a query:
    - p.proposer_user_id != :viewer_id   (ties the filter to the viewer,
                                           not to the swap owner)
    - f"... AND proposer_user_id <> '{owner}'"  (string-built SQL)
"""

import logging
from typing import Iterable, Iterator, Optional

from services.swap_cards.errors import InvariantViolation
from services.swap_cards.records import RowKind, StoreRow, SwapOnlyRow

logger = logging.getLogger('swap_cards.self_exclusion')


def is_not_self_proposal(swap_owner_id: Optional[str], proposer_user_id: Optional[str]) -> bool:
    """
    Return True (include) iff the proposer is not the swap owner.

    A missing proposer is not a self-proposal; it is a data-quality
    problem and is left to the normalizer.
    """
    if proposer_user_id is None or swap_owner_id is None:
        return True
    return proposer_user_id != swap_owner_id


def exclude_self_proposals(proposer_column, owner_column):
    """
    Return a SQLAlchemy clause that drops self-proposals.

    Usage with ORM queries:
        from services.swap_cards.self_exclusion import exclude_self_proposals

        query = session.query(...).outerjoin(
            Proposal,
            and_(
                Proposal.swap_id == Swap.id,
                exclude_self_proposals(Proposal.proposer_user_id, SourceBooking.user_id),
            ),
        )

    Put it in the JOIN condition, not in WHERE: in WHERE it would also drop
    the swap row itself when its only proposals are self-proposals.

    Args:
        proposer_column: Column holding the proposal's proposer id
        owner_column: Column holding the swap owner id (source booking user)

    Returns:
        SQLAlchemy boolean expression
    """
    # NULL proposers must survive the join so the normalizer can count them
    return (proposer_column.is_(None)) | (proposer_column != owner_column)


class SelfProposalPostFilter:
    """
    Post-filter for stores that cannot push the constraint into a query.

    Wraps a row iterator and drops self-proposal rows, counting them.
    When a swap loses every row this way, a swap-only row is emitted in
    its place so the swap still reaches the output with no proposals.
    """

    def __init__(self):
        self.filtered = 0

    def apply(self, rows: Iterable[StoreRow]) -> Iterator[StoreRow]:
        kept_swaps = set()
        dropped = {}
        for row in rows:
            if row.kind == RowKind.PROPOSAL and not is_not_self_proposal(
                row.swap.owner_user_id, row.proposal.proposer_user_id
            ):
                self.filtered += 1
                dropped.setdefault(row.swap.id, row.swap)
                continue
            kept_swaps.add(row.swap.id)
            yield row

        for swap_id, swap in dropped.items():
            if swap_id not in kept_swaps:
                yield SwapOnlyRow(swap=swap)

        if self.filtered:
            logger.info(f"self_proposals_post_filtered count={self.filtered}")


def post_filter_self_proposals(rows: Iterable[StoreRow]) -> Iterator[StoreRow]:
    """Convenience wrapper around SelfProposalPostFilter when the count is not needed."""
    return SelfProposalPostFilter().apply(rows)


def assert_not_self_proposal(
    viewer_id: str,
    swap_owner_id: Optional[str],
    proposer_user_id: Optional[str],
    proposal_id: Optional[str],
) -> None:
    """
    Second enforcement point, run while grouping.

    Raises:
        InvariantViolation: proposer is the swap owner or the viewer
    """
    if is_not_self_proposal(swap_owner_id, proposer_user_id) and \
            is_not_self_proposal(viewer_id, proposer_user_id):
        return

    logger.error(
        f"SELF_PROPOSAL_LEAK proposal_id={proposal_id} proposer={proposer_user_id} "
        f"swap_owner={swap_owner_id} viewer={viewer_id}"
    )
    raise InvariantViolation(
        "Self-proposal reached the grouping stage",
        details={'proposalId': proposal_id},
    )
