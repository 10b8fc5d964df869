"""
Swap Card API Routes

Endpoint:
- GET /api/swaps/cards - The viewer's swaps, each with proposals from other users

This is a THIN route handler - all aggregation logic lives in
services/swap_cards/. The route authenticates the viewer, validates
pagination, and wraps the result in the standard envelope.
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from api.contracts import SwapCardsParams, parse_params
from api.serializers.response import success_envelope
from utils.auth import require_viewer
from utils.rate_limiter import limiter, swap_cards_limit

logger = logging.getLogger('swap_cards.api')

swaps_bp = Blueprint('swaps', __name__)


@swaps_bp.route("/cards", methods=["GET"])
@limiter.limit(swap_cards_limit)
@require_viewer
def get_swap_cards():
    """
    Get swap cards for the authenticated viewer.

    Query params:
        - limit: int (default 100, clamped to SWAP_CARDS_MAX_LIMIT, must be > 0)
        - offset: int (default 0, must be >= 0)

    Returns:
        {
            "success": true,
            "data": {
                "swapCards": [
                    {
                        "userSwap": {...},
                        "proposalsFromOthers": [...],
                        "proposalCount": 3,
                        "cardMetadata": {"hasProposals": true, "proposalStatus": "multiple_proposals"}
                    }
                ],
                "pagination": {total, limit, offset, hasMore, nextOffset},
                "metadata": {totalSwaps, totalProposals, dataQuality, performance, requestId, ...}
            }
        }

    Errors use the standard envelope with no swapCards array:
        400 INVALID_PARAMS, 401 UNAUTHORIZED, 429 TOO_MANY_REQUESTS,
        500 SELF_EXCLUSION_INVARIANT_VIOLATION, 503 SWAP_CARDS_STORE_UNAVAILABLE
    """
    from services.swap_cards import assemble_swap_cards

    params = parse_params(SwapCardsParams, request.args.to_dict())

    result = assemble_swap_cards(
        g.viewer_id,
        limit=params.limit,
        offset=params.offset,
        latency_budget_ms=current_app.config.get('SWAP_CARDS_LATENCY_BUDGET_MS'),
        batch_size=current_app.config.get('SWAP_CARDS_STREAM_BATCH'),
    )

    logger.debug(
        f"swap_cards_served viewer={g.viewer_id} cards={len(result.cards)} "
        f"total={result.pagination['total']}"
    )
    return jsonify(success_envelope(result.to_dict()))
