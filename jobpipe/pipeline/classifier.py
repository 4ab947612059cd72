"""AI classification of listings against the user's active model config.

One call per listing. ``classify`` returns a ClassificationError instead of
raising, so a bad response for one listing never fails the batch.
"""

import asyncio
import json
import logging
import re
from collections.abc import Callable, Sequence

from jobpipe.core.config import ClassificationConfig
from jobpipe.core.errors import ClassificationError, ProviderError
from jobpipe.core.schemas import (
    AIConfig,
    AIProvider,
    CanonicalListing,
    ClassificationVerdict,
    SourceId,
)
from jobpipe.llm import LLMProvider, get_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[AIProvider], LLMProvider]

_MAX_DESCRIPTION_CHARS = 4000

CLASSIFICATION_SYSTEM_PROMPT = (
    "You are a job analysis assistant screening job postings for a job seeker.\n\n"
    "Given one job posting, decide whether it is a genuine, relevant hiring post "
    "(not a company profile, news article, or course advert) and rate it.\n\n"
    "Scores are integers from 0 to 100:\n"
    "  confidence: how sure you are about is_relevant\n"
    "  urgency:    how urgently the employer is hiring (immediate start, "
    "closing soon, many openings)\n"
    "  quality:    how complete and credible the posting is (clear role, "
    "company, requirements, compensation)\n\n"
    "If the user describes what they are looking for, judge relevance against it.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation):\n"
    '{"is_relevant": <true|false>, "confidence": <int>, "urgency": <int>, '
    '"quality": <int>, "keywords": [<up to 10 short skill or technology terms>], '
    '"rationale": "<1-2 sentence explanation>"}'
)

HEALTH_CHECK_LISTING = CanonicalListing(
    external_id="health-check",
    source=SourceId.FINDWORK,
    title="Senior JavaScript Developer",
    company="Example Co",
    location="Remote",
    description="We are hiring a Senior JavaScript Developer with 5+ years experience.",
)


def build_user_prompt(listing: CanonicalListing, context: str | None = None) -> str:
    """Assemble the user prompt from the listing and optional user context."""
    description = listing.description.strip()
    if len(description) > _MAX_DESCRIPTION_CHARS:
        description = description[:_MAX_DESCRIPTION_CHARS] + " ..."

    job_section = (
        "JOB POSTING\n"
        f"Title: {listing.title}\n"
        f"Company: {listing.company or 'not provided'}\n"
        f"Location: {listing.location or 'not provided'}\n"
        f"Salary: {listing.salary or 'not specified'}\n"
        f"Job type: {listing.job_type or 'not specified'}\n"
    )
    if description:
        job_section += f"Description:\n{description}\n"

    if context and context.strip():
        return f"WHAT THE USER IS LOOKING FOR\n{context.strip()}\n\n{job_section}"
    return job_section


def _strip_fences(raw_text: str) -> str:
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    return re.sub(r"\n?```\s*$", "", cleaned)


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    msg = f"'is_relevant' must be a boolean, got {value!r}"
    raise ValueError(msg)


def _as_keywords(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        msg = f"'keywords' must be a list, got {type(value).__name__}"
        raise ValueError(msg)
    seen: dict[str, None] = {}
    for item in value:
        text = str(item).strip()
        if text:
            seen.setdefault(text, None)
    return list(seen)


def parse_verdict(raw_text: str, listing_id: str) -> ClassificationVerdict:
    """Parse a model response into a verdict.

    Handles markdown-wrapped JSON and JSON embedded in prose. Scores are
    clamped to 0-100. Raises ValueError on a malformed response.
    """
    cleaned = _strip_fences(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        embedded = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if embedded is None:
            msg = f"Failed to parse classification response as JSON: {e}"
            raise ValueError(msg) from e
        try:
            data = json.loads(embedded.group(0))
        except json.JSONDecodeError as inner:
            msg = f"Failed to parse classification response as JSON: {inner}"
            raise ValueError(msg) from inner

    if not isinstance(data, dict):
        msg = "classification response is not a JSON object"
        raise ValueError(msg)
    for field in ("is_relevant", "confidence"):
        if field not in data:
            msg = f"classification response missing '{field}' field"
            raise ValueError(msg)

    try:
        return ClassificationVerdict(
            listing_id=listing_id,
            is_relevant=_as_bool(data["is_relevant"]),
            confidence_score=float(data["confidence"]),
            urgency_score=float(data.get("urgency", 0)),
            quality_score=float(data.get("quality", 0)),
            extracted_keywords=_as_keywords(data.get("keywords")),
            rationale=str(data.get("rationale") or ""),
        )
    except TypeError as e:
        msg = f"classification response has a non-numeric score: {e}"
        raise ValueError(msg) from e


class ClassificationClient:
    """Classifies listings through whichever backend an AIConfig selects."""

    def __init__(
        self,
        config: ClassificationConfig | None = None,
        provider_factory: ProviderFactory = get_provider,
    ) -> None:
        self._config = config or ClassificationConfig()
        self._provider_factory = provider_factory

    async def classify(
        self,
        listing: CanonicalListing,
        config: AIConfig,
        *,
        context: str | None = None,
    ) -> ClassificationVerdict | ClassificationError:
        listing_id = listing.external_id
        try:
            provider = self._provider_factory(config.provider)
        except ValueError as e:
            return self._error(listing_id, "provider_error", str(e))

        prompt = build_user_prompt(listing, context)
        timeout = self._config.timeout
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(
                    provider.complete,
                    prompt,
                    config.model or None,
                    system=CLASSIFICATION_SYSTEM_PROMPT,
                    endpoint=config.endpoint,
                    credential=config.credential,
                    timeout=timeout,
                    temperature=self._config.temperature,
                    max_tokens=self._config.max_tokens,
                ),
                timeout,
            )
        except asyncio.TimeoutError:
            return self._error(listing_id, "timeout", f"no response after {timeout:.0f}s")
        except ProviderError as e:
            return self._error(listing_id, e.reason, e.detail)
        except Exception as e:
            logger.warning(
                "Classification backend failed for '%s'", listing_id, exc_info=True
            )
            return ClassificationError(
                listing_id=listing_id, reason="provider_error", detail=str(e)
            )

        try:
            return parse_verdict(raw, listing_id)
        except ValueError as e:
            return self._error(listing_id, "unparsable_response", str(e))

    async def classify_many(
        self,
        listings: Sequence[CanonicalListing],
        config: AIConfig,
        *,
        context: str | None = None,
    ) -> dict[str, ClassificationVerdict | ClassificationError]:
        """Classify listings concurrently, at most max_concurrency in flight.

        Results are keyed by listing external_id, independent of completion order.
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def bounded(
            listing: CanonicalListing,
        ) -> ClassificationVerdict | ClassificationError:
            async with semaphore:
                return await self.classify(listing, config, context=context)

        unique = list({item.external_id: item for item in listings}.values())
        outcomes = await asyncio.gather(*(bounded(item) for item in unique))
        results = {item.external_id: o for item, o in zip(unique, outcomes)}

        failed = sum(isinstance(o, ClassificationError) for o in outcomes)
        logger.info(
            "Classified %d listings with %s (%d failed)",
            len(unique), config.provider.value, failed,
        )
        return results

    @staticmethod
    def _error(listing_id: str, reason: str, detail: str) -> ClassificationError:
        logger.warning("Classification failed for '%s' (%s): %s", listing_id, reason, detail)
        return ClassificationError(listing_id=listing_id, reason=reason, detail=detail)
