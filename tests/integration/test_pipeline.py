"""Integration test: real connectors over a mock transport through filter and storage."""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from jobpipe.core.config import Settings
from jobpipe.core.db import init_db, is_listing_stored
from jobpipe.core.schemas import FilterCriteria, SearchCriteria, SourceId
from jobpipe.pipeline.aggregator import Aggregator
from jobpipe.pipeline.classifier import ClassificationClient
from jobpipe.pipeline.config_manager import AIConfigManager
from jobpipe.pipeline.orchestrator import FilterOrchestrator, save_filtered

ENV = {
    "FINDWORK_API_KEY": "fw-key",
    "JOOBLE_API_KEY": "jb-key",
    "USAJOBS_API_KEY": "us-key",
    "USAJOBS_USER_AGENT": "me@example.com",
}

FINDWORK = {
    "count": 2,
    "results": [
        {
            "id": 1,
            "role": "Data Engineer",
            "company_name": "Acme",
            "location": "Denver, CO",
            "text": "Pipelines in Python. We are hiring.",
            "url": "https://findwork.dev/1",
            "date_posted": "2026-03-01T00:00:00Z",
        },
        {
            "id": 2,
            "role": "Junior Frontend Developer",
            "company_name": "Initech",
            "location": "Remote",
            "text": "React work.",
            "url": "https://findwork.dev/2",
            "date_posted": "2026-03-05T00:00:00Z",
        },
    ],
}

USAJOBS = {
    "SearchResult": {
        "SearchResultCountAll": 1,
        "SearchResultItems": [
            {
                "MatchedObjectId": "777",
                "MatchedObjectDescriptor": {
                    "PositionTitle": "Data Engineer",
                    "OrganizationName": "Acme",
                    "PositionURI": "https://www.usajobs.gov/job/777",
                    "PositionLocation": [
                        {"CityName": "Denver", "CountrySubDivisionCode": "CO"}
                    ],
                    "PositionRemuneration": [
                        {"MinimumRange": "90000", "MaximumRange": "120000",
                         "Description": "Per Year"}
                    ],
                    "PublicationStartDate": "2026-03-02T00:00:00",
                    "UserArea": {"Details": {"JobSummary": "Federal data pipelines."}},
                },
            }
        ],
    }
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "findwork.dev":
        return httpx.Response(200, json=FINDWORK)
    if request.url.host == "jooble.org":
        return httpx.Response(500, text="upstream down")
    if request.url.host == "data.usajobs.gov":
        return httpx.Response(200, json=USAJOBS)
    return httpx.Response(404)


@pytest.fixture()
def conn(tmp_path):  # type: ignore[no-untyped-def]
    connection = init_db(tmp_path / "pipeline.db")
    yield connection
    connection.close()


async def test_search_filter_classify_store(conn) -> None:  # type: ignore[no-untyped-def]
    settings = Settings()
    transport = httpx.MockTransport(_handler)

    with patch.dict("os.environ", ENV):
        async with httpx.AsyncClient(transport=transport) as client:
            aggregation = await Aggregator(settings, client).aggregate(
                SearchCriteria(keywords="data engineer")
            )

    # Jooble failed; the USAJOBS copy of the Acme posting has a salary and wins.
    assert aggregation.source_errors == {SourceId.JOOBLE: "http_error"}
    assert aggregation.total_count == 3
    ids = [listing.external_id for listing in aggregation.listings]
    assert ids == ["usajobs-777", "findwork-2"]

    manager = AIConfigManager(conn)
    cfg = manager.create_config("alice", "local-inference", "local-model")
    manager.activate("alice", cfg.id)

    provider = MagicMock()
    provider.complete.return_value = json.dumps(
        {"is_relevant": True, "confidence": 82, "urgency": 30, "quality": 70}
    )
    orchestrator = FilterOrchestrator(
        ClassificationClient(settings.classification, provider_factory=lambda name: provider)
    )
    result = await orchestrator.filter(
        aggregation.listings,
        FilterCriteria(exclude_keywords=["junior"], use_ai=True),
        manager.get_active("alice"),
    )

    assert result.ai_applied is True
    assert [item.listing.external_id for item in result.listings] == ["usajobs-777"]
    assert result.listings[0].verdict is not None
    assert result.listings[0].verdict.confidence_score == 82.0
    assert provider.complete.call_count == 1

    assert save_filtered(conn, result, user_id="alice") == 1
    assert is_listing_stored(conn, "usajobs-777")
    assert not is_listing_stored(conn, "findwork-2")


async def test_unconfigured_sources_reported(conn) -> None:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(_handler)
    with patch.dict("os.environ", {}, clear=True):
        async with httpx.AsyncClient(transport=transport) as client:
            aggregation = await Aggregator(Settings(), client).aggregate(
                SearchCriteria(keywords="python")
            )

    assert aggregation.listings == []
    assert set(aggregation.source_errors.values()) == {"not_configured"}
