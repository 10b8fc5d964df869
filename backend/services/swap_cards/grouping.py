"""
Grouping & metadata builder.

Turns normalized (swap, proposal) entries into one SwapCard per swap owned
by the viewer, then builds card-level and response-level metadata.

Ordering (deterministic, byte-identical across calls on the same snapshot):
- cards:     swap createdAt DESC, then swap id ASC
- proposals: proposal createdAt DESC, then proposal id ASC

The second self-exclusion check runs here. A hit raises InvariantViolation.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constants import QUALITY_DEGRADED, QUALITY_VALID, get_proposal_status_label
from services.swap_cards.errors import InvariantViolation
from services.swap_cards.normalizer import DataQualityReport, NormalizedEntry
from services.swap_cards.records import BookingSnapshot, ProposalSnapshot, SwapSnapshot
from services.swap_cards.self_exclusion import assert_not_self_proposal

logger = logging.getLogger('swap_cards.grouping')


def _iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return None


def _quality_block(missing_fields: Tuple[str, ...]) -> Dict[str, Any]:
    return {
        'status': QUALITY_DEGRADED if missing_fields else QUALITY_VALID,
        'missingFields': list(missing_fields),
    }


def serialize_booking(booking: BookingSnapshot) -> Dict[str, Any]:
    """Booking details in API shape. Missing values stay None."""
    return {
        'id': booking.id,
        'title': booking.title,
        'location': {
            'city': booking.city,
            'country': booking.country,
        },
        'provider': booking.provider,
        'dateRange': {
            'checkIn': _iso(booking.check_in_date),
            'checkOut': _iso(booking.check_out_date),
        },
        'originalPrice': booking.original_price,
        'swapValue': booking.swap_value,
    }


@dataclass
class CardProposal:
    proposal: ProposalSnapshot
    missing_fields: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        p = self.proposal
        return {
            'id': p.id,
            'proposerId': p.proposer_user_id,
            'proposerName': p.proposer_name,
            'proposerEmail': p.proposer_email,
            'status': p.status,
            'createdAt': _iso(p.created_at),
            'expiresAt': _iso(p.expires_at),
            'additionalPayment': p.additional_payment,
            'conditions': list(p.conditions) if p.conditions is not None else None,
            'targetBookingDetails': serialize_booking(p.booking),
            'dataQuality': _quality_block(self.missing_fields),
        }


@dataclass
class SwapCard:
    swap: SwapSnapshot
    swap_missing_fields: Tuple[str, ...] = ()
    proposals: List[CardProposal] = field(default_factory=list)

    @property
    def proposal_count(self) -> int:
        return len(self.proposals)

    def to_dict(self) -> Dict[str, Any]:
        count = self.proposal_count
        return {
            'userSwap': {
                'id': self.swap.id,
                'status': self.swap.status,
                'createdAt': _iso(self.swap.created_at),
                'expiresAt': _iso(self.swap.expires_at),
                'bookingDetails': serialize_booking(self.swap.booking),
                'dataQuality': _quality_block(self.swap_missing_fields),
            },
            'proposalsFromOthers': [p.to_dict() for p in self.proposals],
            'proposalCount': count,
            'cardMetadata': {
                'hasProposals': count > 0,
                'proposalStatus': get_proposal_status_label(count),
            },
        }


def _order_desc_then_id(items: List[Any], created_at, identity) -> List[Any]:
    # Two stable passes: id ASC first, then createdAt DESC
    ordered = sorted(items, key=lambda item: identity(item) or '')
    return sorted(ordered, key=lambda item: created_at(item) or datetime.min, reverse=True)


def group_swap_cards(viewer_id: str, entries: Iterable[NormalizedEntry]) -> List[SwapCard]:
    """
    Group normalized entries into ordered swap cards.

    Args:
        viewer_id: The requesting user; every swap must be theirs
        entries: Output of DefensiveNormalizer.normalize()

    Returns:
        Ordered list of SwapCard (swaps with no proposals included)

    Raises:
        InvariantViolation: a foreign swap or a self-proposal is present
    """
    cards: Dict[str, SwapCard] = {}
    seen: Dict[str, set] = {}

    for entry in entries:
        swap = entry.swap
        if swap.owner_user_id != viewer_id:
            logger.error(
                f"FOREIGN_SWAP_LEAK swap_id={swap.id} owner={swap.owner_user_id} viewer={viewer_id}"
            )
            raise InvariantViolation(
                "Swap not owned by the viewer reached the grouping stage",
                details={'swapId': swap.id},
            )

        card = cards.get(swap.id)
        if card is None:
            card = SwapCard(swap=swap, swap_missing_fields=entry.swap_missing_fields)
            cards[swap.id] = card
            seen[swap.id] = set()

        proposal = entry.proposal
        if proposal is None:
            continue

        assert_not_self_proposal(viewer_id, swap.owner_user_id, proposal.proposer_user_id, proposal.id)

        if proposal.id in seen[swap.id]:
            continue
        seen[swap.id].add(proposal.id)
        card.proposals.append(CardProposal(proposal=proposal, missing_fields=entry.proposal_missing_fields))

    for card in cards.values():
        card.proposals = _order_desc_then_id(
            card.proposals,
            created_at=lambda p: p.proposal.created_at,
            identity=lambda p: p.proposal.id,
        )

    return _order_desc_then_id(
        list(cards.values()),
        created_at=lambda c: c.swap.created_at,
        identity=lambda c: c.swap.id,
    )


def build_response_metadata(
    cards: List[SwapCard],
    report: DataQualityReport,
    *,
    self_exclusion_mode: str,
    self_proposals_filtered: int,
) -> Dict[str, Any]:
    """
    Aggregate statistics over the returned cards.

    Counts are taken from the cards themselves, so they always equal the
    cardinality of the filtered, normalized set actually returned.
    """
    total_swaps = len(cards)
    total_proposals = sum(card.proposal_count for card in cards)
    with_proposals = sum(1 for card in cards if card.proposal_count > 0)
    status_breakdown = Counter(card.swap.status or 'unknown' for card in cards)

    data_quality = report.to_dict()
    data_quality.update({
        'selfExclusionMode': self_exclusion_mode,
        'selfProposalsFiltered': self_proposals_filtered,
    })

    return {
        'totalSwaps': total_swaps,
        'totalProposals': total_proposals,
        'swapsWithProposals': with_proposals,
        'swapsWithoutProposals': total_swaps - with_proposals,
        'averageProposalsPerSwap': round(total_proposals / total_swaps, 2) if total_swaps else 0,
        'statusBreakdown': dict(sorted(status_breakdown.items())),
        'dataQuality': data_quality,
    }
