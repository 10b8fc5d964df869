"""
Swap card error taxonomy.

Every error carries a stable machine-readable code and the HTTP status the
API boundary maps it to. Data-quality issues are NOT errors; they are
recorded in response metadata by the normalizer.
"""


class SwapCardError(Exception):
    """Base class for failures that abort a swap card aggregation."""

    code = 'SWAP_CARDS_ERROR'
    status_code = 500

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvariantViolation(SwapCardError):
    """
    A self-proposal (or a foreign swap) reached the grouping stage.

    Means the primary query-level filter is broken. Fatal: no partial data
    is returned.
    """

    code = 'SELF_EXCLUSION_INVARIANT_VIOLATION'
    status_code = 500


class StoreAccessFailure(SwapCardError):
    """The underlying store was unreachable or the query failed. Not retried."""

    code = 'SWAP_CARDS_STORE_UNAVAILABLE'
    status_code = 503


class AggregationCancelled(SwapCardError):
    """The caller abandoned the aggregation (e.g. client disconnect)."""

    code = 'AGGREGATION_CANCELLED'
    status_code = 499
