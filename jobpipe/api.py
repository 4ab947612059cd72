"""HTTP entry points for aggregation, filtering, and AI config management.

User identity arrives in the ``X-User-Id`` header; authenticating it is the
job of whatever sits in front of this app.
"""

import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import httpx
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from jobpipe.core.config import Settings
from jobpipe.core.db import init_db, insert_search_run, utcnow
from jobpipe.core.errors import (
    ClassificationError,
    ConfigNotFoundError,
    ConfigValidationError,
    InputError,
)
from jobpipe.core.schemas import (
    AggregationResult,
    AIConfig,
    CanonicalListing,
    FilterCriteria,
    FilteredListing,
    FilteredResult,
    SearchCriteria,
)
from jobpipe.llm import get_provider
from jobpipe.pipeline.aggregator import Aggregator, ConnectorFactory
from jobpipe.pipeline.classifier import (
    HEALTH_CHECK_LISTING,
    ClassificationClient,
    ProviderFactory,
)
from jobpipe.pipeline.config_manager import AIConfigManager
from jobpipe.pipeline.orchestrator import FilterOrchestrator, save_filtered
from jobpipe.sources import get_connector

logger = logging.getLogger(__name__)


class FilterRequest(BaseModel):
    listings: list[CanonicalListing]
    criteria: FilterCriteria = Field(default_factory=FilterCriteria)
    use_ai: bool | None = None


class SaveRequest(BaseModel):
    listings: list[FilteredListing]


class SaveResponse(BaseModel):
    received: int
    saved: int


class CreateConfigRequest(BaseModel):
    provider: str | None = None
    model: str | None = None
    endpoint: str | None = None
    credential: str | None = None


class HealthResponse(BaseModel):
    status: str
    provider: str | None = None
    model: str | None = None
    detail: str = ""
    checked_at: datetime


def get_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    return x_user_id.strip()


def _parse_sources(raw: str | None) -> list[str] | None:
    if raw is None or not raw.strip() or raw.strip().lower() == "all":
        return None
    return [s.strip().lower() for s in raw.split(",") if s.strip()]


router = APIRouter()


def _record_search(
    state: Any, criteria: SearchCriteria, result: AggregationResult, started_at: datetime
) -> None:
    with state.store_lock:
        insert_search_run(state.store_conn, criteria, result, started_at, utcnow())


@router.get("/jobs/search", response_model=AggregationResult)
async def search_jobs(
    request: Request,
    keywords: str = Query(""),
    location: str | None = None,
    page: int = Query(1, ge=1),
    sources: str | None = None,
    date_posted_from: datetime | None = None,
    timeout: float | None = Query(None, gt=0),
) -> AggregationResult:
    try:
        criteria = SearchCriteria(
            keywords=keywords,
            location=location,
            page=page,
            date_posted_from=date_posted_from,
        )
    except ValidationError as e:
        raise InputError(e.errors()[0]["msg"]) from None

    state = request.app.state
    started_at = utcnow()
    result = await state.aggregator.aggregate(criteria, _parse_sources(sources), timeout)
    await run_in_threadpool(_record_search, state, criteria, result, started_at)
    return result


@router.post("/jobs/filter", response_model=FilteredResult)
async def filter_jobs(
    request: Request,
    body: FilterRequest,
    user_id: str = Depends(get_user_id),
) -> FilteredResult:
    state = request.app.state
    criteria = body.criteria
    if body.use_ai is not None:
        criteria = criteria.model_copy(update={"use_ai": body.use_ai})
    active = state.config_manager.get_active(user_id) if criteria.use_ai else None
    return await state.orchestrator.filter(body.listings, criteria, active)


@router.post("/jobs/save", response_model=SaveResponse)
def save_jobs(
    request: Request,
    body: SaveRequest,
    user_id: str = Depends(get_user_id),
) -> SaveResponse:
    state = request.app.state
    result = FilteredResult(
        listings=body.listings,
        original_count=len(body.listings),
        filtered_count=len(body.listings),
    )
    with state.store_lock:
        saved = save_filtered(state.store_conn, result, user_id=user_id)
    return SaveResponse(received=len(body.listings), saved=saved)


@router.get("/ai-config", response_model=list[AIConfig])
def list_configs(request: Request, user_id: str = Depends(get_user_id)) -> list[AIConfig]:
    return request.app.state.config_manager.list_configs(user_id)


@router.post("/ai-config", response_model=AIConfig, status_code=201)
def create_config(
    request: Request,
    body: CreateConfigRequest,
    user_id: str = Depends(get_user_id),
) -> AIConfig:
    return request.app.state.config_manager.create_config(
        user_id,
        body.provider,
        body.model,
        endpoint=body.endpoint,
        credential=body.credential,
    )


@router.get("/ai-config/active", response_model=AIConfig | None)
def get_active_config(
    request: Request, user_id: str = Depends(get_user_id)
) -> AIConfig | None:
    return request.app.state.config_manager.get_active(user_id)


@router.patch("/ai-config/{config_id}/activate", response_model=AIConfig)
def activate_config(
    request: Request,
    config_id: int,
    user_id: str = Depends(get_user_id),
) -> AIConfig:
    return request.app.state.config_manager.activate(user_id, config_id)


@router.get("/health/ai", response_model=HealthResponse)
async def ai_health(request: Request, user_id: str = Depends(get_user_id)) -> JSONResponse:
    state = request.app.state
    active = state.config_manager.get_active(user_id)
    if active is None:
        body = HealthResponse(
            status="unavailable", detail="no active AI config", checked_at=utcnow()
        )
        return JSONResponse(body.model_dump(mode="json"), status_code=503)

    outcome = await state.classifier.classify(HEALTH_CHECK_LISTING, active)
    healthy = not isinstance(outcome, ClassificationError)
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        provider=active.provider.value,
        model=active.model,
        detail="" if healthy else outcome.reason,
        checked_at=utcnow(),
    )
    return JSONResponse(body.model_dump(mode="json"), status_code=200 if healthy else 503)


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=status_code)


def create_app(
    settings: Settings | None = None,
    *,
    database_path: str | None = None,
    http_client: httpx.AsyncClient | None = None,
    provider_factory: ProviderFactory = get_provider,
    connector_factory: ConnectorFactory = get_connector,
) -> FastAPI:
    """Build the app with its collaborators injected into ``app.state``."""
    settings = settings or Settings()
    db_path = database_path or settings.database.path

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        # Separate connections: config activation runs its own transactions.
        config_conn = init_db(db_path)
        store_conn = init_db(db_path)
        classifier = ClassificationClient(settings.classification, provider_factory)
        app.state.settings = settings
        app.state.aggregator = Aggregator(settings, http_client, connector_factory)
        app.state.classifier = classifier
        app.state.orchestrator = FilterOrchestrator(classifier)
        app.state.config_manager = AIConfigManager(config_conn)
        app.state.store_conn = store_conn
        app.state.store_lock = threading.Lock()
        try:
            yield
        finally:
            config_conn.close()
            store_conn.close()

    app = FastAPI(title="Job Aggregation Pipeline", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError) -> JSONResponse:
        return _error_response(400, exc)

    @app.exception_handler(ConfigValidationError)
    async def config_validation_handler(
        request: Request, exc: ConfigValidationError
    ) -> JSONResponse:
        return _error_response(400, exc)

    @app.exception_handler(ConfigNotFoundError)
    async def config_not_found_handler(
        request: Request, exc: ConfigNotFoundError
    ) -> JSONResponse:
        return _error_response(404, exc)

    app.include_router(router)
    return app
