"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Data-quality reason codes, card labels and performance bands used by the
swap card pipeline. DO NOT duplicate these definitions in other files.
"""

# =============================================================================
# DATA QUALITY
# =============================================================================

# Row classification produced by the normalizer
QUALITY_VALID = 'valid'
QUALITY_DEGRADED = 'degraded'
QUALITY_CORRUPT = 'corrupt'

# Why a proposal row was excluded (keys of dataQuality.excludedReasons)
REASON_MISSING_IDENTITY = 'missing_identity'
REASON_MISSING_PROPOSER = 'missing_proposer'
REASON_MISSING_CREATED_AT = 'missing_created_at'
REASON_MISSING_BOOKING_REFERENCE = 'missing_booking_reference'
REASON_BOOKING_NOT_FOUND = 'booking_not_found'

# Optional booking fields. Absence degrades a row, never excludes it.
# The sentinel for an absent value is None (JSON null), listed in missingFields.
OPTIONAL_BOOKING_FIELDS = (
    'title',
    'city',
    'country',
    'provider',
    'check_in_date',
    'check_out_date',
    'original_price',
    'swap_value',
)


# =============================================================================
# SELF-EXCLUSION
# =============================================================================

# Where the self-exclusion predicate was applied for a given aggregation
SELF_EXCLUSION_QUERY = 'query'
SELF_EXCLUSION_POST_FILTER = 'post_filter'


# =============================================================================
# CARD / PERFORMANCE LABELS
# =============================================================================

PROPOSAL_STATUS_NONE = 'no_proposals'
PROPOSAL_STATUS_SINGLE = 'single_proposal'
PROPOSAL_STATUS_MULTIPLE = 'multiple_proposals'

# Upper bounds (ms) for performance categories; anything within the
# latency budget but above "good" is "acceptable", beyond budget is "poor".
PERF_EXCELLENT_MS = 500
PERF_GOOD_MS = 1000


def get_proposal_status_label(count: int) -> str:
    """Map a proposal count to the card-level proposal status label."""
    if count == 0:
        return PROPOSAL_STATUS_NONE
    if count == 1:
        return PROPOSAL_STATUS_SINGLE
    return PROPOSAL_STATUS_MULTIPLE


def get_performance_category(elapsed_ms: float, budget_ms: float) -> str:
    """
    Bucket an elapsed time into excellent / good / acceptable / poor.

    Args:
        elapsed_ms: Measured aggregation time
        budget_ms: Declared latency budget

    Returns:
        Category label
    """
    if elapsed_ms > budget_ms:
        return 'poor'
    if elapsed_ms <= PERF_EXCELLENT_MS:
        return 'excellent'
    if elapsed_ms <= PERF_GOOD_MS:
        return 'good'
    return 'acceptable'
