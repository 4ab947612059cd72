"""Jooble connector (POST JSON body, API key in the URL path)."""

from typing import Any

import httpx

from jobpipe.core.schemas import CanonicalListing, SearchCriteria, SourceId
from jobpipe.sources.base import SourceConnector
from jobpipe.sources.normalize import (
    clean_text,
    make_external_id,
    normalize_job_type,
    parse_datetime,
)

_PROMOTED = {
    "id", "title", "company", "location", "snippet", "link", "updated", "salary", "type",
}


class JoobleConnector(SourceConnector):
    @property
    def source_id(self) -> SourceId:
        return SourceId.JOOBLE

    @property
    def default_base_url(self) -> str:
        return "https://jooble.org/api/"

    async def _send(self, criteria: SearchCriteria, timeout: float) -> httpx.Response:
        body: dict[str, str] = {
            "keywords": criteria.keywords,
            "location": criteria.location or "",
            "page": str(criteria.page),
        }
        if criteria.date_posted_from is not None:
            body["datecreatedfrom"] = criteria.date_posted_from.date().isoformat()
        return await self._client.post(
            f"{self.base_url.rstrip('/')}/{self._api_key()}",
            json=body,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    def _parse(self, payload: dict[str, Any]) -> tuple[int, list[CanonicalListing]]:
        jobs = payload["jobs"]
        if not isinstance(jobs, list):
            msg = "'jobs' is not a list"
            raise TypeError(msg)
        listings = [self._to_listing(item) for item in jobs]
        return int(payload.get("totalCount") or 0), listings

    def _to_listing(self, item: dict[str, Any]) -> CanonicalListing:
        title = clean_text(item.get("title")) or "Unknown Title"
        return CanonicalListing(
            external_id=make_external_id(
                self.source_id.value, item.get("id"), item.get("link"), title
            ),
            source=self.source_id,
            title=title,
            company=clean_text(item.get("company")),
            location=clean_text(item.get("location")),
            description=clean_text(item.get("snippet")),
            url=item.get("link") or "",
            published_date=parse_datetime(item.get("updated")),
            salary=clean_text(item.get("salary")) or None,
            job_type=normalize_job_type(item.get("type")),
            metadata={k: v for k, v in item.items() if k not in _PROMOTED},
        )
