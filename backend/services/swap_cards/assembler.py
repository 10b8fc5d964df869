"""
Swap Card Assembler - orchestrates the read path for one viewer.

Pipeline:
    store.iter_rows(viewer)            typed rows, self-exclusion applied
      -> DefensiveNormalizer            corrupt rows dropped, degraded flagged
      -> group_swap_cards               one card per swap, second check
      -> paginate                       slice whole cards
      -> build_response_metadata        counts over the returned page

Latency:
    elapsedMs is measured from the first store access to the end of
    assembly. Exceeding the budget never truncates a result; it sets
    performance.withinBudget = false and logs SWAP_CARDS_SLOW.

Cancellation:
    Pass a threading.Event as cancel_event. It is checked once per store
    row; when set, the store iterator is closed (releasing the DB cursor)
    and AggregationCancelled is raised. Nothing is written, so nothing is
    rolled back.

Usage:
    from services.swap_cards import assemble_swap_cards

    result = assemble_swap_cards(viewer_id, limit=20, offset=0)
    result.to_dict()   # {'swapCards': [...], 'pagination': {...}, 'metadata': {...}}
"""

import logging
import time
from contextlib import closing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from config import Config
from constants import get_performance_category
from services.swap_cards.errors import AggregationCancelled
from services.swap_cards.grouping import SwapCard, build_response_metadata, group_swap_cards
from services.swap_cards.normalizer import DefensiveNormalizer
from services.swap_cards.pagination import paginate
from services.swap_cards.records import StoreRow

logger = logging.getLogger('swap_cards.assembler')


@dataclass
class SwapCardResult:
    cards: List[SwapCard]
    pagination: Dict[str, Any]
    metadata: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'swapCards': [card.to_dict() for card in self.cards],
            'pagination': self.pagination,
            'metadata': self.metadata,
        }


class SwapCardAssembler:
    """
    Assemble paginated swap cards from any store exposing iter_rows().

    Args:
        store: SqlSwapCardStore or InMemorySwapCardStore
        latency_budget_ms: Budget for store access through assembly
        clock: Monotonic seconds source (time.perf_counter by default)
    """

    def __init__(
        self,
        store,
        latency_budget_ms: float = Config.SWAP_CARDS_LATENCY_BUDGET_MS,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.store = store
        self.latency_budget_ms = float(latency_budget_ms)
        self.clock = clock

    @staticmethod
    def _watch(rows: Iterator[StoreRow], viewer_id: str, cancel_event) -> Iterator[StoreRow]:
        for row in rows:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"swap_cards_cancelled viewer={viewer_id}")
                raise AggregationCancelled(
                    "Swap card aggregation abandoned by caller",
                    details={'viewerId': viewer_id},
                )
            yield row

    def assemble(
        self,
        viewer_id: str,
        limit: int,
        offset: int,
        cancel_event=None,
    ) -> SwapCardResult:
        """
        Build one page of swap cards for viewer_id.

        Raises:
            InvariantViolation: self-proposal or foreign swap reached grouping
            StoreAccessFailure: store query or fetch failed
            AggregationCancelled: cancel_event was set mid-stream
            ValueError: limit/offset preconditions violated
        """
        started = self.clock()
        normalizer = DefensiveNormalizer()

        if cancel_event is not None and cancel_event.is_set():
            raise AggregationCancelled(
                "Swap card aggregation abandoned by caller",
                details={'viewerId': viewer_id},
            )

        with closing(self.store.iter_rows(viewer_id)) as rows:
            cards = group_swap_cards(
                viewer_id,
                normalizer.normalize(self._watch(rows, viewer_id, cancel_event)),
            )

        page, pagination = paginate(cards, limit, offset)
        metadata = build_response_metadata(
            page,
            normalizer.report,
            self_exclusion_mode=self.store.self_exclusion_mode,
            self_proposals_filtered=self.store.self_proposals_filtered,
        )

        elapsed_ms = round((self.clock() - started) * 1000, 1)
        within_budget = elapsed_ms <= self.latency_budget_ms
        metadata['performance'] = {
            'elapsedMs': elapsed_ms,
            'budgetMs': self.latency_budget_ms,
            'withinBudget': within_budget,
            'category': get_performance_category(elapsed_ms, self.latency_budget_ms),
        }

        if not within_budget:
            logger.warning(
                f"SWAP_CARDS_SLOW viewer={viewer_id} elapsed_ms={elapsed_ms} "
                f"budget_ms={self.latency_budget_ms} cards={len(cards)} rows={self.store.rows_read}"
            )
        else:
            logger.info(
                f"swap_cards_assembled viewer={viewer_id} cards={len(page)}/{len(cards)} "
                f"proposals={metadata['totalProposals']} elapsed_ms={elapsed_ms}"
            )

        return SwapCardResult(cards=page, pagination=pagination, metadata=metadata)


def assemble_swap_cards(
    viewer_id: str,
    limit: int = Config.SWAP_CARDS_DEFAULT_LIMIT,
    offset: int = 0,
    session=None,
    cancel_event=None,
    latency_budget_ms: Optional[float] = None,
    batch_size: Optional[int] = None,
) -> SwapCardResult:
    """
    Assemble swap cards from the primary database.

    Args:
        viewer_id: Trusted viewer id from the auth layer
        limit: Page size (validated upstream)
        offset: Page offset (validated upstream)
        session: SQLAlchemy session, defaults to db.session
        cancel_event: Optional threading.Event for cooperative abandonment
        latency_budget_ms: Overrides Config.SWAP_CARDS_LATENCY_BUDGET_MS
        batch_size: Overrides Config.SWAP_CARDS_STREAM_BATCH
    """
    from models.database import db
    from services.swap_cards.store import SqlSwapCardStore

    store = SqlSwapCardStore(
        session if session is not None else db.session,
        batch_size=batch_size or Config.SWAP_CARDS_STREAM_BATCH,
    )
    assembler = SwapCardAssembler(
        store,
        latency_budget_ms=latency_budget_ms if latency_budget_ms is not None
        else Config.SWAP_CARDS_LATENCY_BUDGET_MS,
    )
    return assembler.assemble(viewer_id, limit, offset, cancel_event=cancel_event)
