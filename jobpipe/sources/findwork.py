"""FindWork connector (GET, ``Authorization: Token <key>``)."""

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
    "id", "role", "company_name", "location", "text", "url", "date_posted",
    "employment_type",
}


class FindWorkConnector(SourceConnector):
    @property
    def source_id(self) -> SourceId:
        return SourceId.FINDWORK

    @property
    def default_base_url(self) -> str:
        return "https://findwork.dev/api/jobs/"

    async def _send(self, criteria: SearchCriteria, timeout: float) -> httpx.Response:
        params: dict[str, str] = {"search": criteria.keywords, "sort_by": "relevance"}
        if criteria.location:
            params["location"] = criteria.location
        if criteria.page > 1:
            params["page"] = str(criteria.page)
        return await self._client.get(
            self.base_url,
            params=params,
            headers={
                "Authorization": f"Token {self._api_key()}",
                "Accept": "application/json",
            },
            timeout=timeout,
        )

    def _parse(self, payload: dict[str, Any]) -> tuple[int, list[CanonicalListing]]:
        results = payload["results"]
        if not isinstance(results, list):
            msg = "'results' is not a list"
            raise TypeError(msg)
        listings = [self._to_listing(item) for item in results]
        return int(payload.get("count") or 0), listings

    def _to_listing(self, item: dict[str, Any]) -> CanonicalListing:
        title = clean_text(item.get("role")) or "Unknown Title"
        location = clean_text(item.get("location"))
        if not location and item.get("remote"):
            location = "Remote"
        return CanonicalListing(
            external_id=make_external_id(
                self.source_id.value, item.get("id"), item.get("url"), title
            ),
            source=self.source_id,
            title=title,
            company=clean_text(item.get("company_name")),
            location=location,
            description=clean_text(item.get("text")),
            url=item.get("url") or "",
            published_date=parse_datetime(item.get("date_posted")),
            job_type=normalize_job_type(item.get("employment_type")),
            metadata={k: v for k, v in item.items() if k not in _PROMOTED},
        )
