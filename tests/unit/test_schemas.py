"""Tests for core schemas: SearchCriteria, CanonicalListing, AIConfig, verdicts."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from jobpipe.core.schemas import (
    AggregationResult,
    AIConfig,
    AIProvider,
    CanonicalListing,
    ClassificationVerdict,
    FilterCriteria,
    SearchCriteria,
    SourceId,
)


def _make_listing(**overrides: object) -> CanonicalListing:
    defaults: dict[str, object] = {
        "external_id": "jooble-123",
        "source": SourceId.JOOBLE,
        "title": "Senior Python Engineer",
        "company": "Acme Corp",
        "location": "Remote",
        "url": "https://jooble.org/desc/123",
    }
    defaults.update(overrides)
    return CanonicalListing(**defaults)  # type: ignore[arg-type]


class TestSearchCriteria:
    def test_keywords_required(self) -> None:
        with pytest.raises(ValidationError):
            SearchCriteria(keywords="   ")

    def test_keywords_stripped(self) -> None:
        assert SearchCriteria(keywords="  python  ").keywords == "python"

    def test_blank_location_is_none(self) -> None:
        assert SearchCriteria(keywords="python", location="  ").location is None

    def test_page_min(self) -> None:
        with pytest.raises(ValidationError):
            SearchCriteria(keywords="python", page=0)

    def test_frozen(self) -> None:
        c = SearchCriteria(keywords="python")
        with pytest.raises(ValidationError):
            c.keywords = "java"  # type: ignore[misc]


class TestCanonicalListing:
    def test_defaults(self) -> None:
        listing = CanonicalListing(
            external_id="findwork-1", source=SourceId.FINDWORK, title="Engineer"
        )
        assert listing.company == ""
        assert listing.salary is None
        assert listing.metadata == {}
        assert listing.completeness_score == 0

    def test_completeness_counts_optional_fields(self) -> None:
        listing = _make_listing(
            salary="$100k",
            description="Build things",
            published_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        assert listing.completeness_score == 3

    def test_whitespace_description_not_counted(self) -> None:
        assert _make_listing(description="   ").completeness_score == 0

    def test_completeness_in_json(self) -> None:
        data = _make_listing(salary="$1").model_dump(mode="json")
        assert data["completeness_score"] == 1
        assert data["source"] == "jooble"

    def test_frozen(self) -> None:
        listing = _make_listing()
        with pytest.raises(ValidationError):
            listing.title = "Other"  # type: ignore[misc]

    def test_unknown_source_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _make_listing(source="monster")


class TestAggregationResult:
    def test_source_errors_serialize_by_value(self) -> None:
        result = AggregationResult(
            source_errors={SourceId.JOOBLE: "timeout"},
            requested_sources={SourceId.JOOBLE},
        )
        data = result.model_dump(mode="json")
        assert data["source_errors"] == {"jooble": "timeout"}
        assert data["requested_sources"] == ["jooble"]


class TestAIConfig:
    def _make(self, **overrides: object) -> AIConfig:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        defaults: dict[str, object] = {
            "id": 1,
            "user_id": "alice",
            "provider": AIProvider.HOSTED_API,
            "model": "gemini-2.0-flash",
            "credential": "secret-key",
            "last_selected_at": now,
            "created_at": now,
        }
        defaults.update(overrides)
        return AIConfig(**defaults)  # type: ignore[arg-type]

    def test_credential_not_serialized(self) -> None:
        data = self._make().model_dump(mode="json")
        assert "credential" not in data
        assert data["has_credential"] is True
        assert data["provider"] == "hosted-api"

    def test_credential_not_in_repr(self) -> None:
        assert "secret-key" not in repr(self._make())

    def test_has_credential_false(self) -> None:
        assert self._make(credential=None).has_credential is False


class TestClassificationVerdict:
    def test_scores_clamped(self) -> None:
        v = ClassificationVerdict(
            listing_id="x",
            is_relevant=True,
            confidence_score=150,
            urgency_score=-20,
            quality_score=55.5,
        )
        assert v.confidence_score == 100.0
        assert v.urgency_score == 0.0
        assert v.quality_score == 55.5

    def test_non_numeric_score_rejected(self) -> None:
        with pytest.raises((ValidationError, ValueError)):
            ClassificationVerdict(listing_id="x", is_relevant=True, confidence_score="high")


class TestFilterCriteria:
    def test_defaults(self) -> None:
        c = FilterCriteria()
        assert c.use_ai is False
        assert c.include_irrelevant is False
        assert c.min_salary is None

    def test_min_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            FilterCriteria(min_confidence=101)
