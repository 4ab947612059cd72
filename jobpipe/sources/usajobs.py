"""USAJOBS connector (GET, ``Authorization-Key`` plus a registered User-Agent)."""

import os
from datetime import datetime, timezone
from typing import Any

import httpx

from jobpipe.core.schemas import CanonicalListing, SearchCriteria, SourceId
from jobpipe.sources.base import SourceConnector
from jobpipe.sources.normalize import (
    clean_text,
    format_salary_range,
    make_external_id,
    normalize_job_type,
    parse_datetime,
    to_float,
)

# USAJOBS only filters on "posted within the last N days", up to 60.
_MAX_DATE_POSTED_DAYS = 60


def _first(items: Any) -> dict[str, Any]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


class USAJobsConnector(SourceConnector):
    @property
    def source_id(self) -> SourceId:
        return SourceId.USAJOBS

    @property
    def default_base_url(self) -> str:
        return "https://data.usajobs.gov/api/search"

    def _user_agent(self) -> str | None:
        if not self._config.user_agent_env:
            return None
        return os.environ.get(self._config.user_agent_env) or None

    def _missing_configuration(self) -> str | None:
        missing = super()._missing_configuration()
        if missing:
            return missing
        if self._config.user_agent_env and not self._user_agent():
            return f"{self._config.user_agent_env} environment variable is not set"
        return None

    async def _send(self, criteria: SearchCriteria, timeout: float) -> httpx.Response:
        params: dict[str, str] = {
            "Keyword": criteria.keywords,
            "ResultsPerPage": str(self._config.results_per_page),
            "Page": str(criteria.page),
        }
        if criteria.location:
            params["LocationName"] = criteria.location
        if criteria.date_posted_from is not None:
            params["DatePosted"] = str(self._days_since(criteria.date_posted_from))
        return await self._client.get(
            self.base_url,
            params=params,
            headers={
                "Host": "data.usajobs.gov",
                "User-Agent": self._user_agent() or "",
                "Authorization-Key": self._api_key() or "",
                "Accept": "application/json",
            },
            timeout=timeout,
        )

    @staticmethod
    def _days_since(since: datetime) -> int:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        days = (datetime.now(timezone.utc) - since).days
        return max(0, min(_MAX_DATE_POSTED_DAYS, days))

    def _parse(self, payload: dict[str, Any]) -> tuple[int, list[CanonicalListing]]:
        result = payload["SearchResult"]
        items = result.get("SearchResultItems") or []
        if not isinstance(items, list):
            msg = "'SearchResultItems' is not a list"
            raise TypeError(msg)
        listings = [
            self._to_listing(item["MatchedObjectDescriptor"], item.get("MatchedObjectId"))
            for item in items
        ]
        return int(result.get("SearchResultCountAll") or 0), listings

    def _to_listing(self, job: dict[str, Any], matched_id: Any = None) -> CanonicalListing:
        title = clean_text(job.get("PositionTitle")) or "Unknown Title"
        url = job.get("PositionURI") or ""
        details = (job.get("UserArea") or {}).get("Details") or {}
        description = clean_text(details.get("JobSummary")) or clean_text(
            job.get("QualificationSummary")
        )

        pay = _first(job.get("PositionRemuneration"))
        salary_min = to_float(pay.get("MinimumRange"))
        salary_max = to_float(pay.get("MaximumRange"))
        salary = format_salary_range(salary_min, salary_max, pay.get("Description") or "")

        metadata: dict[str, Any] = {
            "position_id": job.get("PositionID"),
            "department_name": job.get("DepartmentName"),
            "job_category": _first(job.get("JobCategory")).get("Name"),
            "job_grade": _first(job.get("JobGrade")).get("Code"),
            "position_offering_type": _first(job.get("PositionOfferingType")).get("Name"),
            "application_close_date": job.get("ApplicationCloseDate"),
            "apply_url": (job.get("ApplyURI") or [None])[0],
        }
        if salary_min is not None or salary_max is not None:
            metadata["salary_min"] = salary_min
            metadata["salary_max"] = salary_max
            metadata["salary_interval"] = pay.get("RateIntervalCode")

        return CanonicalListing(
            external_id=make_external_id(
                self.source_id.value, matched_id or job.get("PositionID"),
                url, title,
            ),
            source=self.source_id,
            title=title,
            company=clean_text(job.get("OrganizationName")) or "U.S. Government",
            location=self._location(job),
            description=description,
            url=url,
            published_date=parse_datetime(job.get("PublicationStartDate")),
            salary=salary,
            job_type=normalize_job_type(_first(job.get("PositionSchedule")).get("Name")),
            metadata={k: v for k, v in metadata.items() if v is not None},
        )

    @staticmethod
    def _location(job: dict[str, Any]) -> str:
        first = _first(job.get("PositionLocation"))
        city = str(first.get("CityName") or "").strip()
        region = str(first.get("CountrySubDivisionCode") or "").strip()
        # CityName is often already "City, State".
        if city and ("," in city or not region):
            return city
        if city or region:
            return ", ".join(p for p in (city, region) if p)
        return clean_text(job.get("PositionLocationDisplay")) or "Various Locations"
