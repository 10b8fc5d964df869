"""
Typed store records for the swap card pipeline.

Raw rows leave the store as flat mappings (one per swap x proposal pair,
LEFT JOIN shape). They are parsed exactly once, here, into a tagged
structure:

    SwapOnlyRow  - the viewer's swap with no joined proposal
    ProposalRow  - the viewer's swap plus one joined proposal

Parsing never raises. Missing or malformed values become None and are
classified later by the normalizer, so one bad row cannot fail a request.

Flat row keys (labels produced by the SQL store):
    swap_id, swap_status, swap_created_at, swap_expires_at, owner_user_id,
    swap_booking_<field>
    proposal_id, proposal_swap_id, proposer_user_id, proposer_name,
    proposer_email, proposal_status, proposal_created_at, proposal_expires_at,
    proposal_additional_payment, proposal_conditions,
    proposer_booking_ref, offered_booking_<field>
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union

from constants import OPTIONAL_BOOKING_FIELDS

BOOKING_COLUMNS = ('id',) + OPTIONAL_BOOKING_FIELDS


class RowKind(str, Enum):
    SWAP_ONLY = 'swap_only'
    PROPOSAL = 'proposal'


# =============================================================================
# VALUE COERCION
# =============================================================================

def to_id(value: Any) -> Optional[str]:
    """Ids are opaque strings; blank or missing means no id."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_naive_utc(value: datetime) -> datetime:
    # Mixed aware/naive values cannot be ordered against each other
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime, date or ISO-8601 text. Anything else becomes None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return _as_naive_utc(datetime.fromisoformat(value.strip().replace('Z', '+00:00')))
        except ValueError:
            return None
    return None


def to_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def to_amount(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def to_conditions(value: Any) -> Optional[Tuple[str, ...]]:
    """
    Conditions are a list of strings. An empty or NULL column means none.

    Any other shape (a JSON object, a number) is unreadable and becomes
    None, so the proposal is reported degraded instead of looking like
    it carries no conditions.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if item is not None)
    if isinstance(value, dict) and not value:
        return ()
    return None


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class BookingSnapshot:
    """A booking as seen through a join. id is None when the join found nothing."""
    id: Optional[str]
    title: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    provider: Optional[str] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    original_price: Optional[float] = None
    swap_value: Optional[float] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any], prefix: str) -> 'BookingSnapshot':
        get = lambda name: row.get(f'{prefix}_{name}')
        return cls(
            id=to_id(get('id')),
            title=to_text(get('title')),
            city=to_text(get('city')),
            country=to_text(get('country')),
            provider=to_text(get('provider')),
            check_in_date=to_date(get('check_in_date')),
            check_out_date=to_date(get('check_out_date')),
            original_price=to_amount(get('original_price')),
            swap_value=to_amount(get('swap_value')),
        )

    @property
    def exists(self) -> bool:
        return self.id is not None

    def missing_fields(self) -> List[str]:
        return [name for name in OPTIONAL_BOOKING_FIELDS if getattr(self, name) is None]


@dataclass(frozen=True)
class SwapSnapshot:
    id: Optional[str]
    owner_user_id: Optional[str]
    status: Optional[str]
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    booking: BookingSnapshot


@dataclass(frozen=True)
class ProposalSnapshot:
    id: Optional[str]
    swap_id: Optional[str]
    proposer_user_id: Optional[str]
    proposer_name: Optional[str]
    status: Optional[str]
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    additional_payment: Optional[float]
    conditions: Optional[Tuple[str, ...]]
    booking_ref: Optional[str]
    booking: BookingSnapshot
    proposer_email: Optional[str] = None


@dataclass(frozen=True)
class SwapOnlyRow:
    swap: SwapSnapshot
    kind: RowKind = field(default=RowKind.SWAP_ONLY, init=False)


@dataclass(frozen=True)
class ProposalRow:
    swap: SwapSnapshot
    proposal: ProposalSnapshot
    kind: RowKind = field(default=RowKind.PROPOSAL, init=False)


StoreRow = Union[SwapOnlyRow, ProposalRow]


# =============================================================================
# PARSING
# =============================================================================

def _parse_swap(row: Mapping[str, Any]) -> SwapSnapshot:
    return SwapSnapshot(
        id=to_id(row.get('swap_id')),
        owner_user_id=to_id(row.get('owner_user_id')),
        status=to_text(row.get('swap_status')),
        created_at=to_datetime(row.get('swap_created_at')),
        expires_at=to_datetime(row.get('swap_expires_at')),
        booking=BookingSnapshot.from_mapping(row, 'swap_booking'),
    )


def _has_joined_proposal(row: Mapping[str, Any]) -> bool:
    # A LEFT JOIN miss leaves every proposal column NULL
    return any(
        row.get(key) is not None
        for key in ('proposal_id', 'proposal_swap_id', 'proposer_user_id')
    )


def parse_store_row(row: Mapping[str, Any]) -> StoreRow:
    """
    Convert one flat store row into a typed record.

    Args:
        row: Mapping keyed by the labels listed in the module docstring

    Returns:
        SwapOnlyRow or ProposalRow
    """
    swap = _parse_swap(row)
    if not _has_joined_proposal(row):
        return SwapOnlyRow(swap=swap)

    proposal = ProposalSnapshot(
        id=to_id(row.get('proposal_id')),
        swap_id=to_id(row.get('proposal_swap_id')) or swap.id,
        proposer_user_id=to_id(row.get('proposer_user_id')),
        proposer_name=to_text(row.get('proposer_name')),
        proposer_email=to_text(row.get('proposer_email')),
        status=to_text(row.get('proposal_status')),
        created_at=to_datetime(row.get('proposal_created_at')),
        expires_at=to_datetime(row.get('proposal_expires_at')),
        additional_payment=to_amount(row.get('proposal_additional_payment')),
        conditions=to_conditions(row.get('proposal_conditions')),
        booking_ref=to_id(row.get('proposer_booking_ref')),
        booking=BookingSnapshot.from_mapping(row, 'offered_booking'),
    )
    return ProposalRow(swap=swap, proposal=proposal)
