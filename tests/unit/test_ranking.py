"""Tests for deduplication and ranking of merged listings."""

from datetime import datetime, timezone

from jobpipe.core.config import DEFAULT_SOURCE_PRIORITY
from jobpipe.core.schemas import CanonicalListing, SourceId
from jobpipe.pipeline.ranking import (
    dedupe_by_id,
    dedupe_cross_source,
    deduplicate,
    fingerprint,
    rank,
)

PRIORITY = DEFAULT_SOURCE_PRIORITY


def _make_listing(external_id: str, **overrides: object) -> CanonicalListing:
    source = SourceId(external_id.split("-", 1)[0])
    defaults: dict[str, object] = {
        "external_id": external_id,
        "source": source,
        "title": f"Engineer {external_id}",
        "company": "Acme",
        "location": "Remote",
    }
    defaults.update(overrides)
    return CanonicalListing(**defaults)  # type: ignore[arg-type]


def _ids(listings: list[CanonicalListing]) -> list[str]:
    return [listing.external_id for listing in listings]


class TestFingerprint:
    def test_normalizes_case_and_punctuation(self) -> None:
        a = _make_listing("findwork-1", title="Sr. Python Engineer", company="ACME, Inc.")
        b = _make_listing("jooble-1", title="sr python engineer", company="acme inc")
        assert fingerprint(a) == fingerprint(b)


class TestDedupeById:
    def test_keeps_first_slot_and_most_complete_copy(self) -> None:
        sparse = _make_listing("jooble-1")
        other = _make_listing("jooble-2")
        rich = _make_listing("jooble-1", salary="$100k", description="Details")
        result = dedupe_by_id([sparse, other, rich])
        assert _ids(result) == ["jooble-1", "jooble-2"]
        assert result[0].salary == "$100k"

    def test_tie_keeps_first_seen(self) -> None:
        first = _make_listing("jooble-1", description="first")
        second = _make_listing("jooble-1", description="second")
        assert dedupe_by_id([first, second])[0].description == "first"


class TestDedupeCrossSource:
    def test_more_complete_copy_survives(self) -> None:
        """Same posting on two boards: only the copy with a salary survives."""
        bare = _make_listing("findwork-1", title="Data Engineer", description="x")
        with_salary = _make_listing(
            "jooble-9", title="Data Engineer", description="x", salary="$120k"
        )
        result = dedupe_cross_source([bare, with_salary], PRIORITY)
        assert _ids(result) == ["jooble-9"]

    def test_equal_completeness_uses_source_priority(self) -> None:
        a = _make_listing("usajobs-1", title="Data Engineer")
        b = _make_listing("jooble-1", title="Data Engineer")
        result = dedupe_cross_source([a, b], PRIORITY)
        assert _ids(result) == ["jooble-1"]

    def test_same_source_never_merged(self) -> None:
        a = _make_listing("jooble-1", title="Data Engineer")
        b = _make_listing("jooble-2", title="Data Engineer")
        assert _ids(dedupe_cross_source([a, b], PRIORITY)) == ["jooble-1", "jooble-2"]

    def test_different_location_not_merged(self) -> None:
        a = _make_listing("findwork-1", title="Data Engineer", location="Berlin")
        b = _make_listing("jooble-1", title="Data Engineer", location="Paris")
        assert len(dedupe_cross_source([a, b], PRIORITY)) == 2


class TestDeduplicate:
    def test_no_two_results_share_an_id(self) -> None:
        listings = [
            _make_listing("findwork-1"),
            _make_listing("findwork-1", salary="$1"),
            _make_listing("jooble-1"),
            _make_listing("jooble-1"),
        ]
        ids = _ids(deduplicate(listings, PRIORITY))
        assert len(ids) == len(set(ids))

    def test_idempotent(self) -> None:
        listings = [
            _make_listing("findwork-1", title="Data Engineer"),
            _make_listing("jooble-1", title="Data Engineer", salary="$1"),
            _make_listing("jooble-2", title="Data Engineer"),
            _make_listing("usajobs-1", title="Data Engineer", salary="$2"),
            _make_listing("findwork-2", title="Backend Developer"),
            _make_listing("findwork-2", title="Backend Developer", description="d"),
        ]
        once = deduplicate(listings, PRIORITY)
        assert deduplicate(once, PRIORITY) == once


class TestRank:
    def test_completeness_first(self) -> None:
        sparse = _make_listing("findwork-1")
        rich = _make_listing("usajobs-1", salary="$1", description="d")
        assert _ids(rank([sparse, rich], PRIORITY)) == ["usajobs-1", "findwork-1"]

    def test_newer_first_missing_date_last(self) -> None:
        old = _make_listing(
            "jooble-1", published_date=datetime(2026, 1, 1, tzinfo=timezone.utc)
        )
        new = _make_listing(
            "jooble-2", published_date=datetime(2026, 2, 1, tzinfo=timezone.utc)
        )
        undated = _make_listing("jooble-3", description="d")
        # undated has the same completeness (1) as the dated ones
        assert _ids(rank([undated, old, new], PRIORITY)) == [
            "jooble-2", "jooble-1", "jooble-3",
        ]

    def test_source_priority_then_arrival(self) -> None:
        a = _make_listing("usajobs-1")
        b = _make_listing("findwork-1")
        c = _make_listing("findwork-2")
        assert _ids(rank([a, b, c], PRIORITY)) == ["findwork-1", "findwork-2", "usajobs-1"]

    def test_deterministic(self) -> None:
        listings = [
            _make_listing("jooble-1", salary="$1"),
            _make_listing("findwork-1"),
            _make_listing("usajobs-1", description="d"),
            _make_listing("jooble-2"),
        ]
        assert rank(listings, PRIORITY) == rank(list(listings), PRIORITY)

    def test_empty(self) -> None:
        assert rank([], PRIORITY) == []
