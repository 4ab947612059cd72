"""Deduplication and ranking of merged connector output.

Dedup runs in two passes:
  1. by prefixed external_id (same id = same posting)
  2. best-effort cross-source match on normalized (title, company, location)

The second pass is a heuristic: two genuinely distinct postings with identical
metadata on different boards are merged. Listings from the same source are
never merged by it.

Ranking keys, in order:
  completeness desc → published_date desc (missing last) → source priority
  → arrival order
"""

import logging
import re
from collections.abc import Sequence

from jobpipe.core.schemas import CanonicalListing, SourceId

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")

Fingerprint = tuple[str, str, str]


def normalize_text(text: str) -> str:
    return _NON_ALNUM_RE.sub(" ", text.lower()).strip()


def fingerprint(listing: CanonicalListing) -> Fingerprint:
    return (
        normalize_text(listing.title),
        normalize_text(listing.company),
        normalize_text(listing.location),
    )


def _priority_index(source_priority: Sequence[SourceId]) -> dict[SourceId, int]:
    return {s: i for i, s in enumerate(source_priority)}


def dedupe_by_id(listings: Sequence[CanonicalListing]) -> list[CanonicalListing]:
    """Collapse listings sharing an external_id.

    The most complete copy wins (first seen on ties) and takes the slot of the
    first occurrence.
    """
    slots: dict[str, int] = {}
    result: list[CanonicalListing] = []
    for listing in listings:
        slot = slots.get(listing.external_id)
        if slot is None:
            slots[listing.external_id] = len(result)
            result.append(listing)
        elif listing.completeness_score > result[slot].completeness_score:
            result[slot] = listing
    removed = len(listings) - len(result)
    if removed:
        logger.debug("dedupe_by_id: removed %d duplicates", removed)
    return result


def dedupe_cross_source(
    listings: Sequence[CanonicalListing],
    source_priority: Sequence[SourceId],
) -> list[CanonicalListing]:
    """Drop cross-source copies of the same posting.

    Within a fingerprint group the winner is the most complete listing, then
    the higher-priority source, then the earliest. Listings from other sources
    in the group are dropped; the winner's own source keeps all of its
    listings, which keeps the pass idempotent.
    """
    priority = _priority_index(source_priority)
    groups: dict[Fingerprint, list[int]] = {}
    for index, listing in enumerate(listings):
        key = fingerprint(listing)
        if not key[0]:
            continue
        groups.setdefault(key, []).append(index)

    dropped: set[int] = set()
    for indices in groups.values():
        if len({listings[i].source for i in indices}) < 2:
            continue
        winner = min(
            indices,
            key=lambda i: (
                -listings[i].completeness_score,
                priority.get(listings[i].source, len(priority)),
                i,
            ),
        )
        winner_source = listings[winner].source
        dropped.update(i for i in indices if listings[i].source != winner_source)

    if dropped:
        logger.debug("dedupe_cross_source: removed %d cross-source duplicates", len(dropped))
    return [listing for i, listing in enumerate(listings) if i not in dropped]


def deduplicate(
    listings: Sequence[CanonicalListing],
    source_priority: Sequence[SourceId],
) -> list[CanonicalListing]:
    return dedupe_cross_source(dedupe_by_id(listings), source_priority)


def rank(
    listings: Sequence[CanonicalListing],
    source_priority: Sequence[SourceId],
) -> list[CanonicalListing]:
    """Return listings in final display order. Pure and deterministic."""
    priority = _priority_index(source_priority)

    def key(item: tuple[int, CanonicalListing]) -> tuple[int, bool, float, int, int]:
        index, listing = item
        published = listing.published_date
        return (
            -listing.completeness_score,
            published is None,
            -published.timestamp() if published is not None else 0.0,
            priority.get(listing.source, len(priority)),
            index,
        )

    return [listing for _, listing in sorted(enumerate(listings), key=key)]
