"""Core data models for the job aggregation and classification pipeline."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


class SourceId(str, Enum):
    """Upstream job boards with a connector."""

    FINDWORK = "findwork"
    JOOBLE = "jooble"
    USAJOBS = "usajobs"


class AIProvider(str, Enum):
    """Language-model backends an AIConfig can point at."""

    LOCAL_INFERENCE = "local-inference"
    SELF_HOSTED = "self-hosted"
    HOSTED_API = "hosted-api"


class SearchCriteria(BaseModel):
    """A generic search query, translated by each connector."""

    model_config = ConfigDict(frozen=True)

    keywords: str
    location: str | None = None
    page: int = Field(default=1, ge=1)
    date_posted_from: datetime | None = None

    @field_validator("keywords")
    @classmethod
    def keywords_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "keywords must not be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("location")
    @classmethod
    def blank_location_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class CanonicalListing(BaseModel):
    """A job posting normalized from any source.

    Frozen: connectors build it once, downstream stages only read it.
    """

    model_config = ConfigDict(frozen=True)

    external_id: str
    source: SourceId
    title: str
    company: str = ""
    location: str = ""
    description: str = ""
    url: str = ""
    published_date: datetime | None = None
    salary: str | None = None
    job_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completeness_score(self) -> int:
        """Number of populated optional fields (salary, description, date)."""
        return sum(
            (
                bool(self.salary),
                bool(self.description.strip()),
                self.published_date is not None,
            )
        )


class ProviderResponse(BaseModel):
    """Successful connector call: raw payload plus its canonical mapping."""

    source: SourceId
    total_count: int = 0
    listings: list[CanonicalListing] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)


class AggregationResult(BaseModel):
    """Outcome of one fan-out over the requested sources."""

    listings: list[CanonicalListing] = Field(default_factory=list)
    source_errors: dict[SourceId, str] = Field(default_factory=dict)
    total_count: int = 0
    requested_sources: set[SourceId] = Field(default_factory=set)


class AIConfig(BaseModel):
    """A stored language-model provider configuration owned by one user."""

    id: int
    user_id: str
    provider: AIProvider
    model: str
    endpoint: str | None = None
    credential: str | None = Field(default=None, exclude=True, repr=False)
    has_credential: bool = False
    is_active: bool = False
    last_selected_at: datetime
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def flag_credential(cls, data: Any) -> Any:
        # credential is excluded from dumps; has_credential is not.
        if isinstance(data, dict) and "credential" in data:
            return {**data, "has_credential": bool(data["credential"])}
        return data


def _clamp_score(v: Any) -> float:
    return max(0.0, min(100.0, float(v)))


class ClassificationVerdict(BaseModel):
    """Structured model output for a single listing."""

    model_config = ConfigDict(frozen=True)

    listing_id: str
    is_relevant: bool
    confidence_score: float = Field(ge=0.0, le=100.0)
    urgency_score: float = Field(default=0.0, ge=0.0, le=100.0)
    quality_score: float = Field(default=0.0, ge=0.0, le=100.0)
    extracted_keywords: list[str] = Field(default_factory=list)
    rationale: str = ""

    @field_validator("confidence_score", "urgency_score", "quality_score", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> float:
        return _clamp_score(v)


class FilterCriteria(BaseModel):
    """User-specified criteria for the filter pass."""

    include_keywords: list[str] = Field(default_factory=list)
    exclude_keywords: list[str] = Field(default_factory=list)
    min_salary: float | None = Field(default=None, ge=0)
    locations: list[str] = Field(default_factory=list)
    job_types: list[str] = Field(default_factory=list)
    hiring_posts_only: bool = False
    use_ai: bool = False
    include_irrelevant: bool = False
    min_confidence: float | None = Field(default=None, ge=0.0, le=100.0)
    ai_context: str | None = None


class DroppedListing(BaseModel):
    """A listing removed by a deterministic criterion, with the reason."""

    listing_id: str
    reason: str


class AIDroppedListing(BaseModel):
    """A listing removed because of its verdict."""

    listing_id: str
    verdict: ClassificationVerdict


class FilteredListing(BaseModel):
    """A surviving listing, with its verdict when classification ran."""

    listing: CanonicalListing
    verdict: ClassificationVerdict | None = None


class FilteredResult(BaseModel):
    """Outcome of one filter pass."""

    listings: list[FilteredListing] = Field(default_factory=list)
    original_count: int
    filtered_count: int
    ai_applied: bool = False
    dropped: list[DroppedListing] = Field(default_factory=list)
    ai_dropped: list[AIDroppedListing] = Field(default_factory=list)
    classification_errors: list[DroppedListing] = Field(default_factory=list)
