"""Filter orchestrator: criteria filters, then AI classification, then storage.

Data flow:
  1. Deterministic criteria → survivors + (listing_id, reason) drops
  2. No active config or use_ai off → done (criteria-only)
  3. Classify survivors concurrently with the active config
  4. Drop irrelevant / low-confidence verdicts (unless include_irrelevant)
  5. Optional: persist survivors (insert-if-not-exists by external_id)
"""

import logging
import sqlite3
from collections.abc import Sequence

from jobpipe.core.db import insert_listing
from jobpipe.core.errors import ClassificationError
from jobpipe.core.schemas import (
    AIConfig,
    AIDroppedListing,
    CanonicalListing,
    ClassificationVerdict,
    DroppedListing,
    FilterCriteria,
    FilteredListing,
    FilteredResult,
)
from jobpipe.pipeline.classifier import ClassificationClient
from jobpipe.pipeline.matcher import build_filters, run_filter_chain

logger = logging.getLogger(__name__)


def _is_accepted(verdict: ClassificationVerdict, criteria: FilterCriteria) -> bool:
    if not verdict.is_relevant:
        return False
    if criteria.min_confidence is not None:
        return verdict.confidence_score >= criteria.min_confidence
    return True


class FilterOrchestrator:
    """Applies user criteria plus AI verdicts to a listing set.

    Output order always follows input order; this stage never re-ranks.
    """

    def __init__(self, classifier: ClassificationClient) -> None:
        self._classifier = classifier

    async def filter(
        self,
        listings: Sequence[CanonicalListing],
        criteria: FilterCriteria,
        active_config: AIConfig | None,
    ) -> FilteredResult:
        survivors, dropped = run_filter_chain(listings, build_filters(criteria))
        logger.info(
            "Criteria filters: %d of %d listings kept", len(survivors), len(listings)
        )

        if not criteria.use_ai or active_config is None or not survivors:
            if criteria.use_ai and active_config is None:
                logger.info("No active AI config, using criteria-only filtering")
            return FilteredResult(
                listings=[FilteredListing(listing=listing) for listing in survivors],
                original_count=len(listings),
                filtered_count=len(survivors),
                ai_applied=False,
                dropped=dropped,
            )

        verdicts = await self._classifier.classify_many(
            survivors, active_config, context=criteria.ai_context
        )

        kept: list[FilteredListing] = []
        ai_dropped: list[AIDroppedListing] = []
        failures: list[DroppedListing] = []
        for listing in survivors:
            outcome = verdicts[listing.external_id]
            if isinstance(outcome, ClassificationError):
                failures.append(
                    DroppedListing(listing_id=listing.external_id, reason=outcome.reason)
                )
                if criteria.include_irrelevant:
                    kept.append(FilteredListing(listing=listing))
                continue
            if _is_accepted(outcome, criteria) or criteria.include_irrelevant:
                kept.append(FilteredListing(listing=listing, verdict=outcome))
            else:
                ai_dropped.append(
                    AIDroppedListing(listing_id=listing.external_id, verdict=outcome)
                )

        logger.info(
            "AI filtering: %d kept, %d rejected, %d unclassified",
            len(kept), len(ai_dropped), len(failures),
        )
        return FilteredResult(
            listings=kept,
            original_count=len(listings),
            filtered_count=len(kept),
            ai_applied=True,
            dropped=dropped,
            ai_dropped=ai_dropped,
            classification_errors=failures,
        )


def save_filtered(
    conn: sqlite3.Connection,
    result: FilteredResult,
    user_id: str | None = None,
) -> int:
    """Persist surviving listings. Returns how many were new."""
    new_count = 0
    for item in result.listings:
        if insert_listing(conn, item.listing, item.verdict, user_id=user_id):
            new_count += 1
    logger.info("Saved %d new of %d filtered listings", new_count, len(result.listings))
    return new_count


def export_result_json(result: FilteredResult) -> str:
    """Export a filter result as a JSON string."""
    return result.model_dump_json(indent=2)
