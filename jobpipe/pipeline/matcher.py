"""Deterministic criteria filters.

Filter order (cheapest first):
  1. ExcludeKeywordsFilter: title-only, case-insensitive
  2. IncludeKeywordsFilter: title OR description
  3. HiringSignalFilter: optional hiring-post heuristic
  4. LocationFilter: allowed location substrings
  5. JobTypeFilter: allowed normalized job types
  6. MinSalaryFilter: annualized upper bound of the salary

A criterion only judges listings that carry the field it looks at: a listing
with no location, job type or parseable salary passes that filter.
"""

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from jobpipe.core.schemas import CanonicalListing, DroppedListing, FilterCriteria
from jobpipe.sources.normalize import normalize_job_type, to_float

logger = logging.getLogger(__name__)

HIRING_KEYWORDS = (
    "hiring", "recruiting", "looking for", "seeking", "join our team",
    "we are hiring", "now hiring", "immediate opening", "urgent requirement",
    "apply now", "send resume", "send cv", "job opening", "vacancy",
    "position available", "career opportunity",
)

_AMOUNT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([kK])?")

# Multipliers that turn a quoted rate into a yearly figure.
_PERIODS: list[tuple[re.Pattern[str], float]] = [
    (re.compile(r"\b(hour|hr|hourly)\b", re.IGNORECASE), 2080.0),
    (re.compile(r"\b(week|weekly)\b", re.IGNORECASE), 52.0),
    (re.compile(r"\b(month|monthly|mo)\b", re.IGNORECASE), 12.0),
]


class Filter(Protocol):
    def reason(self, listing: CanonicalListing) -> str | None:
        """Why the listing is dropped, or None to keep it."""


def _normalize_keywords(keywords: Sequence[str]) -> list[str]:
    return [kw.lower().strip() for kw in keywords if kw.strip()]


class ExcludeKeywordsFilter:
    """Drop listings whose title contains any excluded keyword (case-insensitive)."""

    def __init__(self, exclude_keywords: Sequence[str]) -> None:
        self._keywords = _normalize_keywords(exclude_keywords)

    def reason(self, listing: CanonicalListing) -> str | None:
        title_lower = listing.title.lower()
        for kw in self._keywords:
            if kw in title_lower:
                return f"title contains excluded keyword '{kw}'"
        return None


class IncludeKeywordsFilter:
    """Keep only listings whose title OR description contains a required keyword."""

    def __init__(self, include_keywords: Sequence[str]) -> None:
        self._keywords = _normalize_keywords(include_keywords)

    def reason(self, listing: CanonicalListing) -> str | None:
        text = f"{listing.title} {listing.description}".lower()
        if any(kw in text for kw in self._keywords):
            return None
        return "no include keyword in title or description"


class HiringSignalFilter:
    """Keep only listings that read like an actual hiring post."""

    def reason(self, listing: CanonicalListing) -> str | None:
        text = f"{listing.title} {listing.description}".lower()
        if any(kw in text for kw in HIRING_KEYWORDS):
            return None
        return "no hiring signal in title or description"


class LocationFilter:
    def __init__(self, locations: Sequence[str]) -> None:
        self._locations = _normalize_keywords(locations)

    def reason(self, listing: CanonicalListing) -> str | None:
        location = listing.location.lower().strip()
        if not location or any(loc in location for loc in self._locations):
            return None
        return f"location '{listing.location}' not in allowed locations"


class JobTypeFilter:
    def __init__(self, job_types: Sequence[str]) -> None:
        self._job_types = {t for t in (normalize_job_type(j) for j in job_types) if t}

    def reason(self, listing: CanonicalListing) -> str | None:
        job_type = normalize_job_type(listing.job_type)
        if job_type is None or job_type in self._job_types:
            return None
        return f"job type '{job_type}' not in allowed job types"


def annual_salary_upper_bound(listing: CanonicalListing) -> float | None:
    """Best-effort yearly upper bound of a listing's salary.

    Prefers a numeric range kept in metadata by the connector, then parses the
    free-text salary ('$80k - $100k', '$45 per hour').
    """
    numeric = [
        v for v in (
            to_float(listing.metadata.get("salary_max")),
            to_float(listing.metadata.get("salary_min")),
        )
        if v is not None
    ]
    text = listing.salary or ""
    if not numeric:
        for amount, thousands in _AMOUNT_RE.findall(text):
            value = to_float(amount)
            if value is not None:
                numeric.append(value * 1000 if thousands else value)
    if not numeric:
        return None

    upper = max(numeric)
    for pattern, multiplier in _PERIODS:
        if pattern.search(text):
            return upper * multiplier
    return upper


class MinSalaryFilter:
    def __init__(self, min_salary: float) -> None:
        self._min_salary = min_salary

    def reason(self, listing: CanonicalListing) -> str | None:
        upper = annual_salary_upper_bound(listing)
        if upper is None or upper >= self._min_salary:
            return None
        return f"salary '{listing.salary}' below minimum {self._min_salary:,.0f}"


def build_filters(criteria: FilterCriteria) -> list[Filter]:
    """Build the filter chain for a criteria set, skipping empty criteria."""
    filters: list[Filter] = []
    if _normalize_keywords(criteria.exclude_keywords):
        filters.append(ExcludeKeywordsFilter(criteria.exclude_keywords))
    if _normalize_keywords(criteria.include_keywords):
        filters.append(IncludeKeywordsFilter(criteria.include_keywords))
    if criteria.hiring_posts_only:
        filters.append(HiringSignalFilter())
    if _normalize_keywords(criteria.locations):
        filters.append(LocationFilter(criteria.locations))
    if _normalize_keywords(criteria.job_types):
        filters.append(JobTypeFilter(criteria.job_types))
    if criteria.min_salary:
        filters.append(MinSalaryFilter(criteria.min_salary))
    return filters


def run_filter_chain(
    listings: Sequence[CanonicalListing],
    filters: Sequence[Filter],
) -> tuple[list[CanonicalListing], list[DroppedListing]]:
    """Apply filters in order, returning (survivors, drops with reasons).

    Input order is preserved; each listing is reported by the first filter
    that drops it.
    """
    kept: list[CanonicalListing] = []
    dropped: list[DroppedListing] = []
    for listing in listings:
        for f in filters:
            why = f.reason(listing)
            if why is not None:
                dropped.append(DroppedListing(listing_id=listing.external_id, reason=why))
                break
        else:
            kept.append(listing)
    if dropped:
        logger.debug("Criteria filters removed %d of %d listings", len(dropped), len(listings))
    return kept, dropped
