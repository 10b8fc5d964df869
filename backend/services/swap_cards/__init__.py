"""
Swap cards - the viewer's own swaps paired with proposals from other users.

Usage:
    from services.swap_cards import assemble_swap_cards, InMemorySwapCardStore, SwapCardAssembler
"""

from services.swap_cards.assembler import SwapCardAssembler, SwapCardResult, assemble_swap_cards
from services.swap_cards.errors import (
    AggregationCancelled,
    InvariantViolation,
    StoreAccessFailure,
    SwapCardError,
)
from services.swap_cards.grouping import SwapCard, build_response_metadata, group_swap_cards
from services.swap_cards.normalizer import DataQualityReport, DefensiveNormalizer
from services.swap_cards.pagination import paginate
from services.swap_cards.self_exclusion import (
    assert_not_self_proposal,
    exclude_self_proposals,
    is_not_self_proposal,
    post_filter_self_proposals,
)
from services.swap_cards.store import InMemorySwapCardStore, SqlSwapCardStore

__all__ = [
    'AggregationCancelled',
    'DataQualityReport',
    'DefensiveNormalizer',
    'InMemorySwapCardStore',
    'InvariantViolation',
    'SqlSwapCardStore',
    'StoreAccessFailure',
    'SwapCard',
    'SwapCardAssembler',
    'SwapCardError',
    'SwapCardResult',
    'assemble_swap_cards',
    'assert_not_self_proposal',
    'build_response_metadata',
    'exclude_self_proposals',
    'group_swap_cards',
    'is_not_self_proposal',
    'paginate',
    'post_filter_self_proposals',
]
