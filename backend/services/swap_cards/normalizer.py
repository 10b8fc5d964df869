"""
Defensive normalizer - classify store rows before grouping.

Every proposal row is one of:
    valid    - all linkage and descriptive data present
    degraded - linkage intact, optional descriptive fields missing;
               kept, missing values stay None and are listed per entry
    corrupt  - essential linkage missing; excluded and counted

Essential linkage for a proposal: its own id, a proposer, a created_at
timestamp, an offered-booking reference, and that booking still existing.

Precedence: a row whose proposer is the swap owner is forwarded as-is,
whatever its data quality, so the grouping invariant check sees it.
Self-exclusion is a correctness rule, not a data-quality issue.

A corrupt row never raises. The report counts what was dropped and why.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Set, Tuple

from constants import (
    QUALITY_CORRUPT,
    QUALITY_DEGRADED,
    QUALITY_VALID,
    REASON_BOOKING_NOT_FOUND,
    REASON_MISSING_BOOKING_REFERENCE,
    REASON_MISSING_CREATED_AT,
    REASON_MISSING_IDENTITY,
    REASON_MISSING_PROPOSER,
)
from services.swap_cards.records import (
    ProposalSnapshot,
    RowKind,
    StoreRow,
    SwapSnapshot,
)
from services.swap_cards.self_exclusion import is_not_self_proposal

logger = logging.getLogger('swap_cards.normalizer')


@dataclass
class DataQualityReport:
    """Counts accumulated over one aggregation."""
    degraded_count: int = 0
    excluded_count: int = 0
    excluded_reasons: Counter = field(default_factory=Counter)

    def record_excluded(self, reason: str) -> None:
        self.excluded_count += 1
        self.excluded_reasons[reason] += 1

    def record_degraded(self) -> None:
        self.degraded_count += 1

    def to_dict(self) -> Dict[str, object]:
        return {
            'degradedCount': self.degraded_count,
            'excludedCount': self.excluded_count,
            'excludedReasons': dict(sorted(self.excluded_reasons.items())),
        }


@dataclass(frozen=True)
class NormalizedEntry:
    """One swap, optionally paired with one surviving proposal."""
    swap: SwapSnapshot
    swap_missing_fields: Tuple[str, ...]
    proposal: Optional[ProposalSnapshot] = None
    proposal_missing_fields: Tuple[str, ...] = ()
    quality: str = QUALITY_VALID


def classify_proposal(proposal: ProposalSnapshot) -> Tuple[str, Optional[str], Tuple[str, ...]]:
    """
    Classify one proposal.

    Returns:
        (quality, exclusion_reason or None, missing optional fields)
    """
    if proposal.id is None:
        return QUALITY_CORRUPT, REASON_MISSING_IDENTITY, ()
    if proposal.proposer_user_id is None:
        return QUALITY_CORRUPT, REASON_MISSING_PROPOSER, ()
    if proposal.created_at is None:
        return QUALITY_CORRUPT, REASON_MISSING_CREATED_AT, ()
    if proposal.booking_ref is None:
        return QUALITY_CORRUPT, REASON_MISSING_BOOKING_REFERENCE, ()
    if not proposal.booking.exists:
        return QUALITY_CORRUPT, REASON_BOOKING_NOT_FOUND, ()

    missing = []
    # The email identifies the proposer when no display name is set
    if proposal.proposer_name is None and proposal.proposer_email is None:
        missing.append('proposer_name')
    if proposal.conditions is None:
        missing.append('conditions')
    missing.extend(proposal.booking.missing_fields())
    if missing:
        return QUALITY_DEGRADED, None, tuple(missing)
    return QUALITY_VALID, None, ()


class DefensiveNormalizer:
    """
    Streams StoreRows into NormalizedEntries and keeps a DataQualityReport.

    Usage:
        normalizer = DefensiveNormalizer()
        entries = list(normalizer.normalize(rows))
        normalizer.report.to_dict()
    """

    def __init__(self):
        self.report = DataQualityReport()
        self._degraded_swaps: Set[str] = set()
        self._excluded_swaps: Set[Tuple[Optional[str], Optional[str]]] = set()
        self._seen_proposals: Set[Tuple[str, str]] = set()

    def _swap_missing_fields(self, swap: SwapSnapshot) -> Tuple[str, ...]:
        missing = tuple(swap.booking.missing_fields())
        if missing and swap.id not in self._degraded_swaps:
            # A swap repeats once per proposal row; count it once
            self._degraded_swaps.add(swap.id)
            self.report.record_degraded()
        return missing

    def normalize(self, rows: Iterable[StoreRow]) -> Iterator[NormalizedEntry]:
        for row in rows:
            swap = row.swap
            if swap.id is None or swap.owner_user_id is None:
                key = (swap.id, swap.owner_user_id)
                if key not in self._excluded_swaps:
                    # One exclusion per swap, not per joined proposal row
                    self._excluded_swaps.add(key)
                    self.report.record_excluded(REASON_MISSING_IDENTITY)
                    logger.warning(
                        "swap_excluded swap_id=%s reason=%s", swap.id, REASON_MISSING_IDENTITY
                    )
                continue

            swap_missing = self._swap_missing_fields(swap)

            if row.kind == RowKind.SWAP_ONLY:
                yield NormalizedEntry(swap=swap, swap_missing_fields=swap_missing)
                continue

            proposal = row.proposal
            if proposal.id is not None:
                key = (swap.id, proposal.id)
                if key in self._seen_proposals:
                    # Fan-out duplicate of a row already classified
                    continue
                self._seen_proposals.add(key)

            quality, reason, missing = classify_proposal(proposal)

            if not is_not_self_proposal(swap.owner_user_id, proposal.proposer_user_id):
                # Self-exclusion takes precedence: let the grouping check see it
                yield NormalizedEntry(
                    swap=swap,
                    swap_missing_fields=swap_missing,
                    proposal=proposal,
                    proposal_missing_fields=missing,
                    quality=quality,
                )
                continue

            if quality == QUALITY_CORRUPT:
                self.report.record_excluded(reason)
                logger.warning(
                    "proposal_excluded proposal_id=%s swap_id=%s reason=%s",
                    proposal.id, swap.id, reason,
                )
                # Keep the swap itself visible even if this was its only row
                yield NormalizedEntry(swap=swap, swap_missing_fields=swap_missing)
                continue

            if quality == QUALITY_DEGRADED:
                self.report.record_degraded()
                logger.debug(
                    "proposal_degraded proposal_id=%s missing=%s",
                    proposal.id, ','.join(missing),
                )

            yield NormalizedEntry(
                swap=swap,
                swap_missing_fields=swap_missing,
                proposal=proposal,
                proposal_missing_fields=missing,
                quality=quality,
            )
